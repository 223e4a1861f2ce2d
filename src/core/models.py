"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any host-runtime or backend-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

UNKNOWN_PLAYER = "Unknown"
PET_PLACEHOLDER = "Pet Drop"
COLLECTION_LOG_SOURCE = "Collection Log"
PET_SOURCE = "Pet"


class DropKind(str, Enum):
    ITEM_DROP = "ITEM_DROP"
    COLLECTION_LOG = "COLLECTION_LOG"
    PET = "PET"


# Inbound signals, as delivered by the host adapter.


@dataclass(frozen=True)
class ItemStack:
    item_id: int
    quantity: int


@dataclass(frozen=True)
class LootSignal:
    """A multi-item loot event (NPC kill, raid chest, pickpocket...)."""

    player_name: Optional[str]
    source_name: str
    items: Tuple[ItemStack, ...]
    loot_type: str = "NPC"


@dataclass(frozen=True)
class ChatSignal:
    """A chat message observed by the host."""

    player_name: Optional[str]
    chat_type: str
    message: str


# Normalized records.


@dataclass(frozen=True)
class DropItem:
    name: str
    quantity: int
    value: int


@dataclass(frozen=True)
class CandidateDrop:
    """Normalized, source-agnostic unit of work.

    ``items`` is only populated for ITEM_DROP; collection-log and pet drops
    carry their display name in ``subject`` instead.
    """

    player_name: str
    kind: DropKind
    source_name: str
    items: Tuple[DropItem, ...] = ()
    subject: Optional[str] = None
    raw_message: Optional[str] = None
    loot_type: Optional[str] = None
    without_follower: bool = False
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_value(self) -> int:
        if self.kind is not DropKind.ITEM_DROP:
            return 0
        return sum(item.value for item in self.items)


# Destination configuration.


@dataclass(frozen=True)
class ChannelConfig:
    channel_id: str
    min_value: int = 0
    accepts_valuable_drops: bool = True
    accepts_collection_log: bool = True
    accepts_pets: bool = True

    def accepts(self, kind: DropKind) -> bool:
        """Return the content-type toggle for the given drop kind."""

        if kind is DropKind.ITEM_DROP:
            return self.accepts_valuable_drops
        if kind is DropKind.COLLECTION_LOG:
            return self.accepts_collection_log
        return self.accepts_pets


@dataclass(frozen=True)
class DestinationConfig:
    server_id: str
    channels: Tuple[ChannelConfig, ...] = ()
    event_id: Optional[str] = None


# Routing output.


@dataclass(frozen=True)
class QualifyingDestination:
    """A destination that should receive a drop.

    ``channel_ids`` is None for the legacy single-server fallback, which is
    never filtered per channel.
    """

    server_id: str
    channel_ids: Optional[Tuple[str, ...]]
    event_id: Optional[str] = None

    @property
    def is_legacy(self) -> bool:
        return self.channel_ids is None


@dataclass(frozen=True)
class RoutingDecision:
    candidate: CandidateDrop
    qualifying_destinations: Tuple[QualifyingDestination, ...]
    attach_screenshot: bool

    @property
    def should_submit(self) -> bool:
        return bool(self.qualifying_destinations)


# Submission artefacts.


@dataclass(frozen=True)
class ScreenshotResult:
    """Outcome of a screenshot capture.

    ``url`` is set when the backend persisted the image (premium tier);
    otherwise ``base64`` carries the inline image.
    """

    url: Optional[str] = None
    base64: Optional[str] = None

    @property
    def reference(self) -> Optional[str]:
        return self.url


@dataclass(frozen=True)
class OutboundSubmission:
    """Semantic outbound payload handed to the transport."""

    candidate: CandidateDrop
    destinations: Tuple[QualifyingDestination, ...]
    screenshot: Optional[ScreenshotResult] = None


@dataclass(frozen=True)
class RecentDropRecord:
    """UI-facing projection of one submitted item."""

    player_name: str
    name: str
    quantity: int
    value: int
    source_name: str
    kind: DropKind
    screenshot_ref: Optional[str]
    timestamp: datetime
