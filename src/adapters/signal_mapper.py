"""Host-to-core signal mapping adapter.

This keeps the host's JSON event format out of the core pipeline. The host
writes one JSON object per line, for example::

    {"type": "loot", "player": "Zezima", "source": "Vorkath",
     "loot_type": "NPC", "items": [{"id": 536, "quantity": 2}]}
    {"type": "chat", "chat_type": "GAMEMESSAGE", "message": "..."}
    {"type": "follower", "name": "Abyssal orphan"}
    {"type": "login", "player": "Zezima"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from core.models import ChatSignal, ItemStack, LootSignal


@dataclass(frozen=True)
class LoginEvent:
    player_name: Optional[str]


HostEvent = Union[LootSignal, ChatSignal, LoginEvent]


class HostSession:
    """Session state reported by the host: player name and active follower.

    Also serves as the core FollowerPort.
    """

    def __init__(self) -> None:
        self.player_name: Optional[str] = None
        self._follower: Optional[str] = None

    def follower_name(self) -> Optional[str]:
        return self._follower

    def _player(self, raw: dict) -> Optional[str]:
        player = raw.get("player")
        if isinstance(player, str) and player:
            self.player_name = player
        return self.player_name

    def map_event(self, raw: dict[str, Any]) -> Optional[HostEvent]:
        """Map one decoded host event; returns None for session-only updates."""

        event_type = raw.get("type")
        if event_type == "loot":
            items = tuple(
                ItemStack(item_id=int(item["id"]), quantity=int(item.get("quantity", 1)))
                for item in raw.get("items", [])
            )
            return LootSignal(
                player_name=self._player(raw),
                source_name=str(raw.get("source") or "Unknown"),
                items=items,
                loot_type=str(raw.get("loot_type") or "NPC"),
            )
        if event_type == "chat":
            return ChatSignal(
                player_name=self._player(raw),
                chat_type=str(raw.get("chat_type") or ""),
                message=str(raw.get("message") or ""),
            )
        if event_type == "follower":
            name = raw.get("name")
            self._follower = str(name) if name else None
            return None
        if event_type == "login":
            return LoginEvent(player_name=self._player(raw))
        if event_type == "logout":
            self.player_name = None
            self._follower = None
            return None
        raise ValueError(f"Unsupported host event type: {event_type!r}")

    def map_line(self, line: str) -> Optional[HostEvent]:
        line = line.strip()
        if not line:
            return None
        raw = json.loads(line)
        if not isinstance(raw, dict):
            raise ValueError("Host event must be a JSON object")
        return self.map_event(raw)
