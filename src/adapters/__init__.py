"""Adapters connecting the lootrelay core to the host, the backend and storage."""
