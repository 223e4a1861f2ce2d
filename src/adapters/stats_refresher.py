"""Aggregate stats refresh adapter (StatsPort)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from adapters.http_client import BackendApiClient
from core.ports import TransportError

LOGGER = logging.getLogger(__name__)


class BackendStatsRefresher:
    """Fetch ``/plugin/stats`` in the background and keep the last result."""

    def __init__(self, client: BackendApiClient) -> None:
        self._client = client
        self._tasks: set[asyncio.Task] = set()
        self.latest: Optional[dict[str, Any]] = None

    def request_refresh(self, player_name: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop, skipping stats refresh")
            return
        task = loop.create_task(self.refresh(player_name))
        # Keep a reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def refresh(self, player_name: Optional[str]) -> Optional[dict[str, Any]]:
        try:
            stats = await asyncio.to_thread(self._client.get_user_stats, player_name)
        except TransportError as exc:
            LOGGER.warning("Failed to refresh stats for %s: %s", player_name, exc)
            return None
        if not isinstance(stats, dict):
            LOGGER.warning("Stats returned nothing - check if %s is linked to your account", player_name)
            return None
        self.latest = stats
        LOGGER.info(
            "Stats for %s: %s drops, %s GP",
            player_name,
            stats.get("total_drops"),
            stats.get("total_value"),
        )
        return stats

    async def drain(self) -> None:
        """Wait for outstanding refreshes, e.g. before shutdown."""

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
