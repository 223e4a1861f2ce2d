"""Destination routing and filtering logic (core domain)."""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, List, Optional, Tuple

from core.destinations import DestinationSet
from core.models import (
    CandidateDrop,
    ChannelConfig,
    DestinationConfig,
    DropItem,
    DropKind,
    QualifyingDestination,
    RoutingDecision,
)

LOGGER = logging.getLogger(__name__)


def filter_items(items: Iterable[DropItem], threshold: int) -> Tuple[DropItem, ...]:
    """Keep only the items whose own value reaches ``threshold``."""

    return tuple(item for item in items if item.value >= threshold)


def channel_qualifies(channel: ChannelConfig, kind: DropKind, total_value: int) -> bool:
    """Return True if a channel should receive a drop.

    Matching logic:
    - The channel's content-type toggle for the drop kind must be on.
    - Item drops must also reach the channel's ``min_value`` (inclusive).
    - Collection-log and pet drops skip the value test entirely.
    """

    if not channel.accepts(kind):
        return False
    if kind is DropKind.ITEM_DROP:
        return total_value >= channel.min_value
    return True


def _qualify_destination(
    destination: DestinationConfig,
    kind: DropKind,
    total_value: int,
) -> Optional[QualifyingDestination]:
    channel_ids = tuple(
        channel.channel_id
        for channel in destination.channels
        if channel_qualifies(channel, kind, total_value)
    )
    if not channel_ids:
        return None
    return QualifyingDestination(
        server_id=destination.server_id,
        channel_ids=channel_ids,
        event_id=destination.event_id,
    )


def _decision(candidate: CandidateDrop, qualifying: List[QualifyingDestination], capture: bool) -> RoutingDecision:
    return RoutingDecision(
        candidate=candidate,
        qualifying_destinations=tuple(qualifying),
        attach_screenshot=capture and bool(qualifying),
    )


def route(
    candidate: CandidateDrop,
    destinations: DestinationSet,
    capture_screenshots: bool = False,
) -> RoutingDecision:
    """Compute which destinations should receive ``candidate``.

    Item drops are first narrowed to the items reaching the lowest active
    threshold; the returned decision carries that narrowed candidate.
    """

    fallback = destinations.legacy_fallback()
    if fallback is not None:
        # The legacy single server is never filtered per channel.
        qualifying = [QualifyingDestination(fallback.server_id, None, fallback.event_id)]
        if candidate.kind is DropKind.ITEM_DROP and not candidate.items:
            qualifying = []
        return _decision(candidate, qualifying, capture_screenshots)

    if candidate.kind is DropKind.ITEM_DROP:
        threshold = destinations.lowest_active_threshold()
        kept = filter_items(candidate.items, threshold)
        if not kept:
            LOGGER.debug(
                "No items from %s meet the lowest threshold of %sgp",
                candidate.source_name,
                threshold,
            )
            return _decision(candidate, [], capture_screenshots)
        if len(kept) != len(candidate.items):
            LOGGER.debug("%s/%s items passed the %sgp threshold", len(kept), len(candidate.items), threshold)
            candidate = dataclasses.replace(candidate, items=kept)

    total_value = candidate.total_value
    qualifying: List[QualifyingDestination] = []
    for destination in destinations.destinations:
        match = _qualify_destination(destination, candidate.kind, total_value)
        if match is None:
            LOGGER.debug("Server %s has no channel accepting this %s", destination.server_id, candidate.kind.value)
            continue
        qualifying.append(match)

    return _decision(candidate, qualifying, capture_screenshots)
