"""Core drop processing pipeline.

This module is integration-agnostic. It only relies on ports for the host,
the backend and configuration, enabling other hosts or adapters without
changes here.

Per candidate drop the pipeline runs a strict sequence:
1) Normalize the inbound signal
2) Gate on authentication and the tracking toggle for the drop kind
3) Collection-log dedup / pet name resolution
4) Route against a fresh destination snapshot
5) Optional screenshot capture
6) Build and dispatch exactly one submission
7) Update recent drops and request a stats refresh
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from core.config import TrackingConfig
from core.dedup import DedupStore
from core.destinations import load_destination_set
from core.models import (
    PET_PLACEHOLDER,
    CandidateDrop,
    ChatSignal,
    DropKind,
    LootSignal,
    OutboundSubmission,
    RoutingDecision,
    ScreenshotResult,
)
from core.normalizer import normalize_chat, normalize_loot
from core.ports import (
    AuthPort,
    ConfigStorePort,
    Endpoint,
    FollowerPort,
    ItemCatalogPort,
    ScreenshotError,
    ScreenshotPort,
    StatsPort,
    TransportError,
    TransportPort,
)
from core.recent_drops import RecentDrops, records_for
from core.routing import route

LOGGER = logging.getLogger(__name__)

InboundSignal = Union[LootSignal, ChatSignal]

ENDPOINT_BY_KIND = {
    DropKind.ITEM_DROP: Endpoint.ITEM_DROP_BATCH,
    DropKind.COLLECTION_LOG: Endpoint.COLLECTION_LOG,
    DropKind.PET: Endpoint.PET_DROP,
}


class SubmissionState(str, Enum):
    NORMALIZED = "NORMALIZED"
    AWAITING_SCREENSHOT = "AWAITING_SCREENSHOT"
    BUILDING_PAYLOAD = "BUILDING_PAYLOAD"
    DISPATCHED = "DISPATCHED"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class SubmissionOutcome:
    state: SubmissionState
    decision: Optional[RoutingDecision] = None
    submission: Optional[OutboundSubmission] = None
    reason: str = ""

    @property
    def dispatched(self) -> bool:
        return self.state is SubmissionState.DISPATCHED


def _aborted(reason: str, decision: Optional[RoutingDecision] = None) -> SubmissionOutcome:
    return SubmissionOutcome(state=SubmissionState.ABORTED, decision=decision, reason=reason)


def _transition(current: SubmissionState, target: SubmissionState) -> SubmissionState:
    LOGGER.debug("Submission %s -> %s", current.value, target.value)
    return target


class DropProcessor:
    """Orchestrates gating, dedup, routing, screenshots and dispatch."""

    def __init__(
        self,
        *,
        auth: AuthPort,
        store: ConfigStorePort,
        catalog: ItemCatalogPort,
        follower: FollowerPort,
        transport: TransportPort,
        screenshots: Optional[ScreenshotPort],
        stats: Optional[StatsPort],
        tracking: TrackingConfig,
        dedup: Optional[DedupStore] = None,
        recent_drops: Optional[RecentDrops] = None,
    ) -> None:
        self._auth = auth
        self._store = store
        self._catalog = catalog
        self._follower = follower
        self._transport = transport
        self._screenshots = screenshots
        self._stats = stats
        self._tracking = tracking
        self._dedup = dedup if dedup is not None else DedupStore()
        self.recent_drops = recent_drops if recent_drops is not None else RecentDrops()

    def normalize(self, signal: InboundSignal) -> Optional[CandidateDrop]:
        if isinstance(signal, LootSignal):
            return normalize_loot(signal, self._catalog)
        if isinstance(signal, ChatSignal):
            return normalize_chat(signal)
        raise TypeError(f"Unsupported inbound signal: {type(signal).__name__}")

    def _tracking_enabled(self, kind: DropKind) -> bool:
        if kind is DropKind.ITEM_DROP:
            return self._tracking.track_loot
        if kind is DropKind.COLLECTION_LOG:
            return self._tracking.track_collection_log
        return self._tracking.track_pets

    def evaluate(self, candidate: CandidateDrop) -> Optional[RoutingDecision]:
        """Gate, dedup and route one candidate.

        Returns None when the candidate is gated off or suppressed as a
        duplicate; otherwise the routing decision (possibly with no
        qualifying destination).
        """

        if not self._auth.is_authenticated():
            LOGGER.info("Not authenticated, skipping %s", candidate.kind.value)
            return None

        # Collection log entries are recorded even when their own tracking is
        # off, so a pet message right after can still be named.
        if candidate.kind is DropKind.COLLECTION_LOG:
            if not self._dedup.accept_collection_log(candidate.subject or ""):
                return None

        if not self._tracking_enabled(candidate.kind):
            LOGGER.info("%s tracking disabled, skipping", candidate.kind.value)
            return None

        if candidate.kind is DropKind.PET:
            pet_name = self._dedup.resolve_pet_name(candidate.without_follower, self._follower.follower_name)
            if pet_name is None:
                LOGGER.info("Pet name unresolved, submitting as %r", PET_PLACEHOLDER)
            candidate = dataclasses.replace(candidate, subject=pet_name or PET_PLACEHOLDER)

        # Each decision reads its own snapshot of the destination config.
        destinations = load_destination_set(self._store)
        return route(candidate, destinations, self._tracking.capture_screenshots)

    async def handle(self, signal: InboundSignal) -> SubmissionOutcome:
        """Process one inbound signal through the whole pipeline."""

        candidate = self.normalize(signal)
        if candidate is None:
            return _aborted("not a trackable event")
        return await self.submit(candidate)

    async def submit(self, candidate: CandidateDrop) -> SubmissionOutcome:
        decision = self.evaluate(candidate)
        if decision is None:
            return _aborted("gated or duplicate")
        if not decision.should_submit:
            LOGGER.info(
                "No destination qualifies for %s from %s, nothing submitted",
                candidate.kind.value,
                candidate.source_name,
            )
            return _aborted("no qualifying destination", decision)

        state = SubmissionState.NORMALIZED
        screenshot: Optional[ScreenshotResult] = None
        if decision.attach_screenshot and self._screenshots is not None:
            state = _transition(state, SubmissionState.AWAITING_SCREENSHOT)
            screenshot = await self._capture_screenshot(decision)

        state = _transition(state, SubmissionState.BUILDING_PAYLOAD)
        submission = OutboundSubmission(
            candidate=decision.candidate,
            destinations=decision.qualifying_destinations,
            screenshot=screenshot,
        )
        endpoint = ENDPOINT_BY_KIND[submission.candidate.kind]

        try:
            await self._transport.submit(endpoint, submission)
        except TransportError as exc:
            LOGGER.error("Failed to submit %s: %s", candidate.kind.value, exc)
            _transition(state, SubmissionState.ABORTED)
            return _aborted(f"transport failure: {exc}", decision)

        LOGGER.info(
            "Submitted %s from %s to %s destination(s) with screenshot: %s",
            submission.candidate.kind.value,
            submission.candidate.source_name,
            len(submission.destinations),
            screenshot is not None,
        )
        self.recent_drops.extend(records_for(decision, screenshot))
        if self._stats is not None:
            self._stats.request_refresh(submission.candidate.player_name)

        return SubmissionOutcome(
            state=_transition(state, SubmissionState.DISPATCHED),
            decision=decision,
            submission=submission,
        )

    async def _capture_screenshot(self, decision: RoutingDecision) -> Optional[ScreenshotResult]:
        target = decision.qualifying_destinations[0]
        try:
            return await self._screenshots.capture(target)
        except (ScreenshotError, TransportError, OSError):
            # A failed screenshot never blocks the drop itself.
            LOGGER.exception("Failed to capture screenshot, submitting without one")
            return None
