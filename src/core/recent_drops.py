"""Bounded recent-drops projection read by UI collaborators."""

from __future__ import annotations

import threading
from collections import deque
from typing import Iterable, Tuple

from core.models import RecentDropRecord, RoutingDecision, ScreenshotResult

DEFAULT_MAX_ENTRIES = 10


def records_for(decision: RoutingDecision, screenshot: "ScreenshotResult | None") -> list[RecentDropRecord]:
    """One record per submitted item; a single record for log/pet drops."""

    candidate = decision.candidate
    screenshot_ref = screenshot.reference if screenshot else None
    if candidate.items:
        return [
            RecentDropRecord(
                player_name=candidate.player_name,
                name=item.name,
                quantity=item.quantity,
                value=item.value,
                source_name=candidate.source_name,
                kind=candidate.kind,
                screenshot_ref=screenshot_ref,
                timestamp=candidate.captured_at,
            )
            for item in candidate.items
        ]
    return [
        RecentDropRecord(
            player_name=candidate.player_name,
            name=candidate.subject or candidate.source_name,
            quantity=1,
            value=0,
            source_name=candidate.source_name,
            kind=candidate.kind,
            screenshot_ref=screenshot_ref,
            timestamp=candidate.captured_at,
        )
    ]


class RecentDrops:
    """Newest-first list capped at ``max_entries``; oldest entries drop off.

    Appends and snapshots share one lock, so a reader sees either the state
    before a batch was added or after, never half of it.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._entries: deque[RecentDropRecord] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def extend(self, records: Iterable[RecentDropRecord]) -> None:
        batch = list(records)
        with self._lock:
            for record in batch:
                self._entries.appendleft(record)

    def snapshot(self) -> Tuple[RecentDropRecord, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
