"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the host runtime, the backend and the
configuration store so that the core can be reused with different adapters.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from core.models import OutboundSubmission, QualifyingDestination, ScreenshotResult


class Endpoint(str, Enum):
    """Logical backend endpoints the core submits to."""

    ITEM_DROP_BATCH = "item_drop_batch"
    COLLECTION_LOG = "collection_log"
    PET_DROP = "pet_drop"
    SCREENSHOT_UPLOAD = "screenshot_upload"


class TransportError(RuntimeError):
    """A backend call failed (HTTP error, network error, or client closed)."""

    def __init__(self, endpoint: str, status: Optional[int], body: str = "") -> None:
        self.endpoint = endpoint
        self.status = status
        self.body = body
        detail = f"status {status}" if status is not None else "no response"
        super().__init__(f"{endpoint} failed with {detail}: {body}" if body else f"{endpoint} failed with {detail}")


class ScreenshotError(RuntimeError):
    """The host could not provide a frame to capture."""


class ItemCatalogPort(Protocol):
    """Item pricing and name resolution owned by the host."""

    def price_of(self, item_id: int) -> int:
        ...

    def name_of(self, item_id: int) -> str:
        ...


class AuthPort(Protocol):
    def is_authenticated(self) -> bool:
        ...

    def auth_token(self) -> Optional[str]:
        ...


class FollowerPort(Protocol):
    """Reports the player's current companion, if any."""

    def follower_name(self) -> Optional[str]:
        ...


class ScreenshotPort(Protocol):
    async def capture(self, destination: QualifyingDestination) -> Optional[ScreenshotResult]:
        ...


class TransportPort(Protocol):
    """Outbound transport. Raises on failure; returns the response body."""

    async def submit(self, endpoint: Endpoint, submission: OutboundSubmission) -> str:
        ...


class StatsPort(Protocol):
    def request_refresh(self, player_name: str) -> None:
        ...


class ConfigStorePort(Protocol):
    """Persisted key/value configuration."""

    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, value: str) -> None:
        ...
