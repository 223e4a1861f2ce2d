"""Core domain package for lootrelay.

Core contains destination parsing, routing, and deduplication logic without
any host-runtime, HTTP or storage-specific code, keeping the business logic
portable.
"""
