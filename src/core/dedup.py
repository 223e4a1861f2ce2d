"""Deduplication helpers (core domain).

``DedupStore`` is the only shared mutable state in the core. It is owned by
the processor, injectable for tests, and every read-modify-write happens
under a single lock.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from core.config import DedupConfig

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_item_key(item_name: str) -> str:
    """Normalize an item name for deterministic dedup keys."""

    return _collapse_whitespace(item_name).lower()


class DedupStore:
    """Time-bounded record of recent collection-log entries."""

    def __init__(self, config: Optional[DedupConfig] = None, clock: Clock = _monotonic_ms) -> None:
        self._config = config or DedupConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: Dict[str, int] = {}
        self._last_entry: Optional[Tuple[str, int]] = None

    def accept_collection_log(self, item_name: str) -> bool:
        """Return False for a repeat within the dedup window, else record it."""

        key = normalize_item_key(item_name)
        with self._lock:
            now = self._clock()
            last = self._seen.get(key)
            if last is not None and now - last < self._config.collection_log_window_ms:
                LOGGER.debug("Skipping duplicate collection log entry for %s (%sms ago)", item_name, now - last)
                return False

            self._seen[key] = now
            # Amortized cleanup instead of a separate timer.
            horizon = self._config.eviction_ms
            for stale in [k for k, seen_at in self._seen.items() if now - seen_at > horizon]:
                del self._seen[stale]

            self._last_entry = (item_name, now)
            return True

    def resolve_pet_name(
        self,
        without_follower: bool,
        follower_lookup: Callable[[], Optional[str]],
    ) -> Optional[str]:
        """Best-effort pet name for a pet message.

        Order: the current follower (only when the pet actually followed),
        then a collection-log entry recorded within the correlation window,
        which is consumed so a later pet cannot reuse it.
        """

        if not without_follower:
            follower = follower_lookup()
            if follower:
                return follower

        with self._lock:
            if self._last_entry is None:
                return None
            name, recorded_at = self._last_entry
            if self._clock() - recorded_at > self._config.pet_correlation_window_ms:
                return None
            self._last_entry = None
            return name

    def reset(self) -> None:
        with self._lock:
            self._seen.clear()
            self._last_entry = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
