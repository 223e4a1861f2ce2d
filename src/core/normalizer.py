"""Inbound signal normalization (core domain).

Turns loot events and game chat messages into ``CandidateDrop`` records. This
module is a pure transform; price and name lookups are delegated to the item
catalog port.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from core.models import (
    COLLECTION_LOG_SOURCE,
    PET_SOURCE,
    UNKNOWN_PLAYER,
    CandidateDrop,
    ChatSignal,
    DropItem,
    DropKind,
    LootSignal,
)
from core.ports import ItemCatalogPort

LOGGER = logging.getLogger(__name__)

GAME_MESSAGE = "GAMEMESSAGE"
COLLECTION_LOG_MARKER = "New item added to your collection log:"
PET_MARKERS = ("You have a funny feeling", "You feel something weird")
# Phrasings meaning the pet did not become the active follower.
NO_FOLLOWER_MARKERS = ("would have been followed", "sneaking into your backpack")

_COLOR_OPEN = re.compile(r"<col=[0-9a-fA-F]+>")
_COLOR_CLOSE = re.compile(r"</col>")


def _player(name: Optional[str]) -> str:
    if name is None or not name.strip():
        return UNKNOWN_PLAYER
    return name


def strip_color_tags(text: str) -> str:
    """Remove ``<col=HEX>`` / ``</col>`` markup and surrounding whitespace."""

    text = _COLOR_OPEN.sub("", text)
    return _COLOR_CLOSE.sub("", text).strip()


def extract_collection_log_item(message: str) -> Optional[str]:
    """Return the item name after the final colon, or None if there is none."""

    colon = message.rfind(":")
    if colon == -1 or colon == len(message) - 1:
        return None
    item_name = strip_color_tags(message[colon + 1 :])
    return item_name or None


def normalize_loot(signal: LootSignal, catalog: ItemCatalogPort) -> Optional[CandidateDrop]:
    """Build an ITEM_DROP candidate, pricing every stack through the catalog.

    Returns None when no stack has a positive quantity.
    """

    items: List[DropItem] = []
    for stack in signal.items:
        if stack.quantity < 1:
            LOGGER.debug("Ignoring stack of item %s with quantity %s", stack.item_id, stack.quantity)
            continue
        value = max(catalog.price_of(stack.item_id), 0) * stack.quantity
        items.append(DropItem(name=catalog.name_of(stack.item_id), quantity=stack.quantity, value=value))

    if not items:
        LOGGER.debug("Loot from %s has no items, ignoring", signal.source_name)
        return None

    return CandidateDrop(
        player_name=_player(signal.player_name),
        kind=DropKind.ITEM_DROP,
        source_name=signal.source_name,
        items=tuple(items),
        loot_type=signal.loot_type,
    )


def normalize_chat(signal: ChatSignal) -> Optional[CandidateDrop]:
    """Build a COLLECTION_LOG or PET candidate from a game message.

    Returns None for messages that carry neither, or a collection-log message
    with no extractable item name.
    """

    if signal.chat_type != GAME_MESSAGE:
        return None

    message = signal.message
    if COLLECTION_LOG_MARKER in message:
        item_name = extract_collection_log_item(message)
        if item_name is None:
            LOGGER.info("No item name found in collection log message: %r", message)
            return None
        return CandidateDrop(
            player_name=_player(signal.player_name),
            kind=DropKind.COLLECTION_LOG,
            source_name=COLLECTION_LOG_SOURCE,
            subject=item_name,
        )

    if any(marker in message for marker in PET_MARKERS):
        return CandidateDrop(
            player_name=_player(signal.player_name),
            kind=DropKind.PET,
            source_name=PET_SOURCE,
            raw_message=message,
            without_follower=any(marker in message for marker in NO_FOLLOWER_MARKERS),
        )

    return None
