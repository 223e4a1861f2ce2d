"""Backend wire payload formatting.

Keeping the JSON shapes here prevents drift between endpoints and keeps the
core free of backend field names.
"""

from __future__ import annotations

from typing import Any, Iterable

from core.models import DropKind, OutboundSubmission, QualifyingDestination
from core.ports import Endpoint

ENDPOINT_PATHS = {
    Endpoint.ITEM_DROP_BATCH: "/plugin/drops/batch",
    Endpoint.COLLECTION_LOG: "/plugin/collection-log",
    Endpoint.PET_DROP: "/plugin/pets",
    Endpoint.SCREENSHOT_UPLOAD: "/plugin/upload-screenshot",
}


def format_destinations(destinations: Iterable[QualifyingDestination]) -> dict[str, Any]:
    """Return the routing fields of a body.

    The legacy single server is sent as a top-level ``guild_id`` without
    channel ids; structured destinations go into a ``destinations`` array.
    """

    destinations = list(destinations)
    if len(destinations) == 1 and destinations[0].is_legacy:
        legacy = destinations[0]
        fields: dict[str, Any] = {"guild_id": legacy.server_id}
        if legacy.event_id:
            fields["event_id"] = legacy.event_id
        return fields

    formatted = []
    for destination in destinations:
        entry: dict[str, Any] = {
            "guild_id": destination.server_id,
            "channel_ids": list(destination.channel_ids or ()),
        }
        if destination.event_id:
            entry["event_id"] = destination.event_id
        formatted.append(entry)
    return {"destinations": formatted}


def _format_item_batch(submission: OutboundSubmission) -> dict[str, Any]:
    candidate = submission.candidate
    return {
        "username": candidate.player_name,
        "monster_name": candidate.source_name,
        "drop_type": candidate.loot_type or "NPC",
        "items": [
            {"item_name": item.name, "quantity": item.quantity, "item_value": item.value}
            for item in candidate.items
        ],
        "total_value": candidate.total_value,
    }


def _format_collection_log(submission: OutboundSubmission) -> dict[str, Any]:
    candidate = submission.candidate
    return {
        "username": candidate.player_name,
        "item_name": candidate.subject,
    }


def _format_pet(submission: OutboundSubmission) -> dict[str, Any]:
    candidate = submission.candidate
    return {
        "username": candidate.player_name,
        "message": candidate.raw_message or "",
        "pet_name": candidate.subject,
    }


_FORMATTERS = {
    DropKind.ITEM_DROP: _format_item_batch,
    DropKind.COLLECTION_LOG: _format_collection_log,
    DropKind.PET: _format_pet,
}


def format_submission(submission: OutboundSubmission) -> dict[str, Any]:
    """Return the JSON body for a drop submission."""

    body = _FORMATTERS[submission.candidate.kind](submission)
    body.update(format_destinations(submission.destinations))

    screenshot = submission.screenshot
    if screenshot is not None:
        if screenshot.url:
            body["screenshot_url"] = screenshot.url
        elif screenshot.base64:
            body["screenshot_base64"] = screenshot.base64
    return body


def format_screenshot_upload(image_base64: str, server_id: str) -> dict[str, Any]:
    return {"image": image_base64, "guild_id": server_id}
