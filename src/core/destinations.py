"""Destination configuration parsing (core domain).

Two wire shapes are accepted for the persisted destination list:

- legacy: ``{"guildId": "...", "channelIds": ["..."], "eventId": "..."}``
- current: ``{"guildId": "...", "channels": [{"channelId": "...", "minValue": 0,
  "acceptsValuableDrops": true, "acceptsCollectionLog": true,
  "acceptsPets": true}], "eventId": "..."}``

Both are normalized into ``DestinationConfig`` right here so nothing
downstream needs to know which shape was stored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

from core.models import ChannelConfig, DestinationConfig
from core.ports import ConfigStorePort

LOGGER = logging.getLogger(__name__)

DESTINATIONS_KEY = "dropDestinations"
LEGACY_SERVER_KEY = "selectedServerId"
LEGACY_EVENT_KEY = "selectedEventId"

_FLAG_FIELDS = (
    ("acceptsValuableDrops", "accepts_valuable_drops"),
    ("acceptsCollectionLog", "accepts_collection_log"),
    ("acceptsPets", "accepts_pets"),
)


class _MalformedEntry(ValueError):
    pass


def _as_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _parse_min_value(raw: Any) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise _MalformedEntry(f"minValue must be numeric, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise _MalformedEntry(f"minValue must be numeric, got {raw!r}") from None
    if value < 0:
        raise _MalformedEntry(f"minValue must not be negative, got {value}")
    return value


def _parse_channel(entry: Any) -> ChannelConfig:
    if not isinstance(entry, dict):
        raise _MalformedEntry(f"channel entry must be an object, got {type(entry).__name__}")

    channel_id = _as_id(entry.get("channelId"))
    if not channel_id:
        raise _MalformedEntry("channel entry is missing channelId")

    flags = {}
    for wire_name, field_name in _FLAG_FIELDS:
        raw = entry.get(wire_name, True)
        if not isinstance(raw, bool):
            raise _MalformedEntry(f"{wire_name} must be a boolean, got {raw!r}")
        flags[field_name] = raw

    return ChannelConfig(
        channel_id=channel_id,
        min_value=_parse_min_value(entry.get("minValue")),
        **flags,
    )


def _parse_channels(server_id: str, entry: dict) -> Tuple[ChannelConfig, ...]:
    channels: List[ChannelConfig] = []
    raw_channels = entry.get("channels")

    if isinstance(raw_channels, list) and raw_channels:
        for raw_channel in raw_channels:
            try:
                channels.append(_parse_channel(raw_channel))
            except _MalformedEntry as exc:
                LOGGER.warning("Skipping malformed channel for server %s: %s", server_id, exc)
        return tuple(channels)

    # Legacy flat ids accept everything with no threshold.
    raw_ids = entry.get("channelIds") or []
    if not isinstance(raw_ids, list):
        LOGGER.warning("Ignoring non-list channelIds for server %s", server_id)
        return ()
    for raw_id in raw_ids:
        channel_id = _as_id(raw_id)
        if not channel_id:
            LOGGER.warning("Skipping empty legacy channel id for server %s", server_id)
            continue
        channels.append(ChannelConfig(channel_id=channel_id))
    return tuple(channels)


def parse_destinations(raw_config: Union[str, list, None]) -> Tuple[DestinationConfig, ...]:
    """Parse the persisted destination list.

    Fails soft: malformed input yields an empty tuple and malformed entries
    are skipped individually, each with a logged warning. The input is never
    mutated, so parsing the same payload twice gives equal results.
    """

    if raw_config is None:
        return ()

    if isinstance(raw_config, str):
        if not raw_config.strip():
            return ()
        try:
            decoded = json.loads(raw_config)
        except ValueError as exc:
            LOGGER.warning("Destination configuration is not valid JSON: %s", exc)
            return ()
    else:
        decoded = raw_config

    if not isinstance(decoded, list):
        LOGGER.warning("Destination configuration must be a list, got %s", type(decoded).__name__)
        return ()

    destinations: List[DestinationConfig] = []
    seen: set[str] = set()
    for entry in decoded:
        if not isinstance(entry, dict):
            LOGGER.warning("Skipping non-object destination entry: %r", entry)
            continue
        server_id = _as_id(entry.get("guildId", entry.get("serverId")))
        if not server_id:
            LOGGER.warning("Skipping destination without a server id")
            continue
        if server_id in seen:
            LOGGER.warning("Skipping duplicate destination for server %s", server_id)
            continue
        seen.add(server_id)
        destinations.append(
            DestinationConfig(
                server_id=server_id,
                channels=_parse_channels(server_id, entry),
                event_id=_as_id(entry.get("eventId")),
            )
        )
    return tuple(destinations)


def serialize_destinations(destinations: Iterable[DestinationConfig]) -> str:
    """Serialize destinations in the current (structured) wire shape."""

    payload = []
    for destination in destinations:
        entry: dict[str, Any] = {
            "guildId": destination.server_id,
            "channels": [
                {
                    "channelId": channel.channel_id,
                    "minValue": channel.min_value,
                    "acceptsValuableDrops": channel.accepts_valuable_drops,
                    "acceptsCollectionLog": channel.accepts_collection_log,
                    "acceptsPets": channel.accepts_pets,
                }
                for channel in destination.channels
            ],
        }
        if destination.event_id:
            entry["eventId"] = destination.event_id
        payload.append(entry)
    return json.dumps(payload)


@dataclass(frozen=True)
class DestinationSet:
    """Immutable snapshot of every configured destination.

    The structured list wins; the legacy single server id is only consulted
    when the structured list is empty.
    """

    destinations: Tuple[DestinationConfig, ...] = ()
    legacy_server_id: Optional[str] = None
    legacy_event_id: Optional[str] = None

    @property
    def uses_legacy_fallback(self) -> bool:
        return not self.destinations and bool(self.legacy_server_id)

    @property
    def is_configured(self) -> bool:
        return bool(self.destinations) or self.uses_legacy_fallback

    def legacy_fallback(self) -> Optional[DestinationConfig]:
        if not self.uses_legacy_fallback:
            return None
        return DestinationConfig(server_id=self.legacy_server_id, event_id=self.legacy_event_id)

    def lowest_active_threshold(self) -> int:
        """Lowest ``minValue`` across every configured channel, 0 if none."""

        thresholds = [
            channel.min_value
            for destination in self.destinations
            for channel in destination.channels
        ]
        return min(thresholds) if thresholds else 0


def load_destination_set(store: ConfigStorePort) -> DestinationSet:
    """Read a fresh snapshot from the configuration store."""

    return DestinationSet(
        destinations=parse_destinations(store.read(DESTINATIONS_KEY)),
        legacy_server_id=_as_id(store.read(LEGACY_SERVER_KEY)),
        legacy_event_id=_as_id(store.read(LEGACY_EVENT_KEY)),
    )


def save_destinations(store: ConfigStorePort, destinations: Iterable[DestinationConfig]) -> None:
    store.write(DESTINATIONS_KEY, serialize_destinations(destinations))


def save_legacy_server(store: ConfigStorePort, server_id: str, event_id: Optional[str] = None) -> None:
    store.write(LEGACY_SERVER_KEY, server_id)
    store.write(LEGACY_EVENT_KEY, event_id or "")
