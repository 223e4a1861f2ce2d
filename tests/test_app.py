from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional

import pytest

import app
from adapters.http_client import ChannelInfo, EventInfo, ServerInfo
from adapters.signal_mapper import HostSession
from core.models import LootSignal


class FakeProcessor:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.handled: list[object] = []

    async def handle(self, signal: object) -> None:
        self.handled.append(signal)
        if self.fail:
            raise RuntimeError("boom")


class FakeStats:
    def __init__(self) -> None:
        self.requested: list[str] = []
        self.drained = False

    def request_refresh(self, player_name: str) -> None:
        self.requested.append(player_name)

    async def drain(self) -> None:
        self.drained = True


class FakeStore:
    def __init__(self, values: dict[str, str]) -> None:
        self.values = values

    def read(self, key: str) -> Optional[str]:
        return self.values.get(key)


class FakeAuth:
    def __init__(self) -> None:
        self.token: Optional[str] = None

    def auth_token(self) -> Optional[str]:
        return self.token


class FakeBackend:
    def __init__(self, values: dict[str, str]) -> None:
        self.store = FakeStore(values)
        self.auth = FakeAuth()


class FakeDiscoveryApi:
    def get_servers(self) -> list[ServerInfo]:
        return [ServerInfo("123", "Clan Hall", has_bot=True), ServerInfo("456", "Ironmen")]

    def get_server_channels(self, server_id: str) -> list[ChannelInfo]:
        return [ChannelInfo("111", "drops", category="Loot"), ChannelInfo("222", "pets", type="announcement")]

    def get_server_events(self, server_id: str) -> list[EventInfo]:
        return [EventInfo("evt-1", "Summer bingo", type="bingo", status="active")]


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("x", logging.INFO, __file__, 1, message, (), None)


def test_redacting_formatter_masks_secrets() -> None:
    formatter = app._RedactingFormatter(lambda: ["s3cret", None], fmt="%(message)s")

    assert formatter.format(_record("token=s3cret")) == "token=***"


def test_credential_source_reads_store_env_and_live_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_TOKEN", "env-token")
    backend = FakeBackend({"authToken": "stored-token", "discordId": "4242"})
    redact_cfg = {"enabled": True, "patterns": ["AUTH_TOKEN"], "store_keys": ["authToken", "discordId"]}
    formatter = app._RedactingFormatter(app._credential_source(redact_cfg, backend), fmt="%(message)s")

    assert formatter.format(_record("env-token stored-token 4242")) == "*** *** ***"

    # A token activated after logging was configured is masked as well.
    backend.auth.token = "fresh-login-token"
    assert formatter.format(_record("using fresh-login-token")) == "using ***"


def test_credential_source_disabled() -> None:
    source = app._credential_source({"enabled": False}, FakeBackend({"authToken": "x"}))

    assert list(source()) == []


def test_print_servers(capsys: pytest.CaptureFixture[str]) -> None:
    app._print_servers(FakeDiscoveryApi())

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["123 | Clan Hall | bot installed", "456 | Ironmen | bot missing"]


def test_print_server_details(capsys: pytest.CaptureFixture[str]) -> None:
    app._print_server_details(FakeDiscoveryApi(), "123")

    out = capsys.readouterr().out
    assert "111 | [Loot] #drops (text)" in out
    assert "222 | #pets (announcement)" in out
    assert "evt-1 | Summer bingo | bingo | active" in out


def test_process_stream_isolates_bad_lines() -> None:
    stream = io.StringIO(
        '{"type": "login", "player": "Zezima"}\n'
        "not json\n"
        '{"type": "teleport"}\n'
        '{"type": "loot", "source": "Goblin", "items": [{"id": 526}]}\n'
    )
    processor = FakeProcessor()
    stats = FakeStats()

    asyncio.run(app._process_stream(stream, processor, HostSession(), stats))

    assert stats.requested == ["Zezima"]
    assert stats.drained
    assert len(processor.handled) == 1
    assert isinstance(processor.handled[0], LootSignal)
    assert processor.handled[0].player_name == "Zezima"


def test_process_stream_survives_processor_errors() -> None:
    stream = io.StringIO(
        '{"type": "chat", "chat_type": "GAMEMESSAGE", "message": "a"}\n'
        '{"type": "chat", "chat_type": "GAMEMESSAGE", "message": "b"}\n'
    )
    processor = FakeProcessor(fail=True)

    asyncio.run(app._process_stream(stream, processor, HostSession(), FakeStats()))

    assert len(processor.handled) == 2
