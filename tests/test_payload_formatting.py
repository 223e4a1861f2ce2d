from __future__ import annotations

from adapters.payload_formatting import format_destinations, format_screenshot_upload, format_submission
from core.models import (
    CandidateDrop,
    DropItem,
    DropKind,
    OutboundSubmission,
    QualifyingDestination,
    ScreenshotResult,
)


def _submission(candidate: CandidateDrop, *destinations: QualifyingDestination, screenshot=None) -> OutboundSubmission:
    return OutboundSubmission(candidate=candidate, destinations=destinations, screenshot=screenshot)


def test_item_batch_body() -> None:
    candidate = CandidateDrop(
        player_name="Zezima",
        kind=DropKind.ITEM_DROP,
        source_name="Vorkath",
        items=(DropItem("Dragon bones", 2, 6000), DropItem("Vorkath's head", 1, 75000)),
        loot_type="NPC",
    )

    body = format_submission(_submission(candidate, QualifyingDestination("123", ("111", "222"), "bingo")))

    assert body == {
        "username": "Zezima",
        "monster_name": "Vorkath",
        "drop_type": "NPC",
        "items": [
            {"item_name": "Dragon bones", "quantity": 2, "item_value": 6000},
            {"item_name": "Vorkath's head", "quantity": 1, "item_value": 75000},
        ],
        "total_value": 81000,
        "destinations": [{"guild_id": "123", "channel_ids": ["111", "222"], "event_id": "bingo"}],
    }


def test_collection_log_body_with_url_screenshot() -> None:
    candidate = CandidateDrop(
        player_name="Zezima",
        kind=DropKind.COLLECTION_LOG,
        source_name="Collection Log",
        subject="Ranger boots",
    )

    body = format_submission(
        _submission(
            candidate,
            QualifyingDestination("123", ("111",)),
            screenshot=ScreenshotResult(url="https://cdn.example/a.png", base64="ignored"),
        )
    )

    assert body["item_name"] == "Ranger boots"
    assert body["screenshot_url"] == "https://cdn.example/a.png"
    assert "screenshot_base64" not in body
    assert body["destinations"] == [{"guild_id": "123", "channel_ids": ["111"]}]


def test_pet_body_with_inline_screenshot() -> None:
    candidate = CandidateDrop(
        player_name="Zezima",
        kind=DropKind.PET,
        source_name="Pet",
        subject="Abyssal orphan",
        raw_message="You feel something weird sneaking into your backpack.",
    )

    body = format_submission(
        _submission(candidate, QualifyingDestination("1", ("2",)), screenshot=ScreenshotResult(base64="aGk="))
    )

    assert body["pet_name"] == "Abyssal orphan"
    assert body["message"] == "You feel something weird sneaking into your backpack."
    assert body["screenshot_base64"] == "aGk="


def test_legacy_destination_is_top_level() -> None:
    assert format_destinations([QualifyingDestination("123", None, None)]) == {"guild_id": "123"}
    assert format_destinations([QualifyingDestination("123", None, "evt")]) == {
        "guild_id": "123",
        "event_id": "evt",
    }


def test_screenshot_upload_body() -> None:
    assert format_screenshot_upload("aGk=", "123") == {"image": "aGk=", "guild_id": "123"}
