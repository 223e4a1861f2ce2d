"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DedupConfig:
    """Time windows used by the deduplication filter, in milliseconds."""

    collection_log_window_ms: int = 5000
    pet_correlation_window_ms: int = 3000
    eviction_ms: int = 30000


@dataclass(frozen=True)
class TrackingConfig:
    """User toggles gating which drop kinds are relayed."""

    track_loot: bool = True
    track_collection_log: bool = True
    track_pets: bool = True
    capture_screenshots: bool = True
