from __future__ import annotations

import copy
import json
from typing import Optional

from core.destinations import (
    DESTINATIONS_KEY,
    LEGACY_SERVER_KEY,
    DestinationSet,
    load_destination_set,
    parse_destinations,
    save_destinations,
    serialize_destinations,
)
from core.models import ChannelConfig, DestinationConfig


class FakeStore:
    def __init__(self, values: "dict[str, str] | None" = None) -> None:
        self.values = dict(values or {})

    def read(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        self.values[key] = value


STRUCTURED = [
    {
        "guildId": "123",
        "eventId": "bingo",
        "channels": [
            {
                "channelId": "111",
                "minValue": 100000,
                "acceptsValuableDrops": True,
                "acceptsCollectionLog": False,
                "acceptsPets": True,
            },
            {"channelId": "222"},
        ],
    }
]


def test_parse_structured_shape() -> None:
    destinations = parse_destinations(json.dumps(STRUCTURED))

    assert len(destinations) == 1
    destination = destinations[0]
    assert destination.server_id == "123"
    assert destination.event_id == "bingo"
    assert destination.channels[0] == ChannelConfig(
        channel_id="111",
        min_value=100000,
        accepts_valuable_drops=True,
        accepts_collection_log=False,
        accepts_pets=True,
    )
    # Missing fields fall back to "accept everything, no threshold".
    assert destination.channels[1] == ChannelConfig(channel_id="222")


def test_parse_legacy_channel_ids_accept_everything() -> None:
    raw = json.dumps([{"guildId": "9", "channelIds": ["1", "2"]}])

    destinations = parse_destinations(raw)

    assert destinations == (
        DestinationConfig(
            server_id="9",
            channels=(ChannelConfig(channel_id="1"), ChannelConfig(channel_id="2")),
        ),
    )


def test_parse_numeric_ids_are_normalized_to_strings() -> None:
    destinations = parse_destinations([{"guildId": 9, "channelIds": [1]}])

    assert destinations[0].server_id == "9"
    assert destinations[0].channels[0].channel_id == "1"


def test_parse_malformed_json_returns_empty() -> None:
    assert parse_destinations("{not json") == ()
    assert parse_destinations('{"guildId": "1"}') == ()
    assert parse_destinations("") == ()
    assert parse_destinations(None) == ()


def test_parse_skips_malformed_channels_individually() -> None:
    raw = [
        {
            "guildId": "1",
            "channels": [
                {"minValue": 5},
                {"channelId": "bad-threshold", "minValue": "lots"},
                {"channelId": "negative", "minValue": -1},
                {"channelId": "bad-flag", "acceptsPets": "yes"},
                {"channelId": "ok", "minValue": "250"},
            ],
        }
    ]

    destinations = parse_destinations(raw)

    assert [c.channel_id for c in destinations[0].channels] == ["ok"]
    assert destinations[0].channels[0].min_value == 250


def test_parse_skips_destinations_without_server_and_duplicates() -> None:
    raw = [
        {"channelIds": ["1"]},
        "garbage",
        {"guildId": "5", "channelIds": ["1"]},
        {"guildId": "5", "channelIds": ["2"]},
    ]

    destinations = parse_destinations(raw)

    assert len(destinations) == 1
    assert destinations[0].channels[0].channel_id == "1"


def test_parse_is_idempotent_and_does_not_mutate_input() -> None:
    raw = copy.deepcopy(STRUCTURED)

    first = parse_destinations(raw)
    second = parse_destinations(raw)

    assert first == second
    assert raw == STRUCTURED


def test_serialize_round_trips_through_parse() -> None:
    destinations = parse_destinations(STRUCTURED)

    assert parse_destinations(serialize_destinations(destinations)) == destinations


def test_lowest_active_threshold() -> None:
    destinations = DestinationSet(
        destinations=(
            DestinationConfig("1", (ChannelConfig("a", min_value=500), ChannelConfig("b", min_value=200))),
            DestinationConfig("2", (ChannelConfig("c", min_value=1000),)),
        )
    )
    assert destinations.lowest_active_threshold() == 200


def test_lowest_active_threshold_legacy_channels_contribute_zero() -> None:
    destinations = DestinationSet(
        destinations=parse_destinations(
            [
                {"guildId": "1", "channels": [{"channelId": "a", "minValue": 500}]},
                {"guildId": "2", "channelIds": ["b"]},
            ]
        )
    )
    assert destinations.lowest_active_threshold() == 0


def test_lowest_active_threshold_without_channels_is_zero() -> None:
    assert DestinationSet().lowest_active_threshold() == 0
    assert not DestinationSet().is_configured


def test_structured_list_takes_precedence_over_legacy_server() -> None:
    store = FakeStore({DESTINATIONS_KEY: json.dumps(STRUCTURED), LEGACY_SERVER_KEY: "999"})

    destinations = load_destination_set(store)

    assert not destinations.uses_legacy_fallback
    assert destinations.legacy_fallback() is None
    assert destinations.destinations[0].server_id == "123"


def test_legacy_server_used_when_structured_list_empty() -> None:
    store = FakeStore({DESTINATIONS_KEY: "[]", LEGACY_SERVER_KEY: "123", "selectedEventId": ""})

    destinations = load_destination_set(store)

    assert destinations.uses_legacy_fallback
    assert destinations.is_configured
    assert destinations.legacy_fallback() == DestinationConfig(server_id="123")


def test_save_destinations_writes_structured_shape() -> None:
    store = FakeStore()
    save_destinations(store, parse_destinations([{"guildId": "1", "channelIds": ["7"]}]))

    stored = json.loads(store.values[DESTINATIONS_KEY])
    assert stored[0]["guildId"] == "1"
    assert stored[0]["channels"][0]["channelId"] == "7"
    assert stored[0]["channels"][0]["minValue"] == 0
