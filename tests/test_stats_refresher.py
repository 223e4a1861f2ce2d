from __future__ import annotations

import asyncio
from typing import Any, Optional

from adapters.stats_refresher import BackendStatsRefresher
from core.ports import TransportError


class FakeClient:
    def __init__(self, stats: Any = None, fail: bool = False) -> None:
        self.stats = stats
        self.fail = fail
        self.players: list[Optional[str]] = []

    def get_user_stats(self, player_name: Optional[str]) -> Any:
        self.players.append(player_name)
        if self.fail:
            raise TransportError("/plugin/stats", 503)
        return self.stats


def test_refresh_keeps_latest_stats() -> None:
    refresher = BackendStatsRefresher(FakeClient(stats={"total_drops": 4, "total_value": 1000}))

    result = asyncio.run(refresher.refresh("Zezima"))

    assert result == {"total_drops": 4, "total_value": 1000}
    assert refresher.latest == result


def test_refresh_failure_is_logged_not_raised() -> None:
    refresher = BackendStatsRefresher(FakeClient(fail=True))

    assert asyncio.run(refresher.refresh("Zezima")) is None
    assert refresher.latest is None


def test_request_refresh_runs_in_background() -> None:
    client = FakeClient(stats={"total_drops": 1})
    refresher = BackendStatsRefresher(client)

    async def _run() -> None:
        refresher.request_refresh("Zezima")
        await refresher.drain()

    asyncio.run(_run())

    assert client.players == ["Zezima"]
    assert refresher.latest == {"total_drops": 1}


def test_request_refresh_without_loop_is_ignored() -> None:
    client = FakeClient(stats={})
    BackendStatsRefresher(client).request_refresh("Zezima")

    assert client.players == []
