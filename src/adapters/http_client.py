"""Backend HTTP adapter.

Implements the core TransportPort against the loot tracker web backend using
JSON over HTTPS with a bearer token.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Optional

from adapters.payload_formatting import ENDPOINT_PATHS, format_screenshot_upload, format_submission
from core.models import OutboundSubmission
from core.ports import Endpoint, TransportError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerInfo:
    id: str
    name: str
    has_bot: bool = False


@dataclass(frozen=True)
class ChannelInfo:
    id: str
    name: str
    type: str = "text"
    category: Optional[str] = None

    @property
    def label(self) -> str:
        prefix = f"[{self.category}] " if self.category else ""
        return f"{prefix}#{self.name}"


@dataclass(frozen=True)
class EventInfo:
    id: str
    name: str
    type: str = ""
    status: str = ""


class BackendApiClient:
    """Thin urllib wrapper that satisfies the TransportPort contract."""

    def __init__(
        self,
        base_url: str,
        token_supplier: Callable[[], Optional[str]],
        timeout: float = 10,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_supplier = token_supplier
        self._timeout = timeout
        self._closed = False

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        """Refuse further calls; in-flight ones finish or fail on their own."""

        self._closed = True

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> str:
        if self._closed:
            raise TransportError(path, None, "client is closed")

        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(self._base_url + path, data=data, method=method)
        request.add_header("Content-Type", "application/json")
        bearer = token if token is not None else self._token_supplier()
        if bearer:
            request.add_header("Authorization", f"Bearer {bearer}")

        LOGGER.debug("%s request to %s", method, path)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise TransportError(path, e.code, body) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(path, None, str(e)) from e

    def post_json(self, path: str, payload: dict[str, Any]) -> str:
        return self._request("POST", path, payload)

    def get_json(self, path: str) -> Any:
        response = self._request("GET", path)
        try:
            return json.loads(response) if response else None
        except ValueError as e:
            raise TransportError(path, 200, f"invalid JSON response: {response[:200]}") from e

    async def submit(self, endpoint: Endpoint, submission: OutboundSubmission) -> str:
        """Send one drop submission; raises TransportError on failure."""

        path = ENDPOINT_PATHS[endpoint]
        body = format_submission(submission)
        try:
            response = await asyncio.to_thread(self.post_json, path, body)
        except TransportError as e:
            LOGGER.error("POST %s failed with status %s: %s", path, e.status, e.body)
            raise
        LOGGER.debug("%s response: %s", path, response)
        return response

    def upload_screenshot(self, image_base64: str, server_id: str) -> dict[str, Any]:
        """Validate a screenshot for a server; returns the decoded response."""

        path = ENDPOINT_PATHS[Endpoint.SCREENSHOT_UPLOAD]
        response = self.post_json(path, format_screenshot_upload(image_base64, server_id))
        try:
            decoded = json.loads(response) if response else {}
        except ValueError as e:
            raise TransportError(path, 200, "invalid JSON response") from e
        return decoded if isinstance(decoded, dict) else {}

    def get_user_stats(self, player_name: Optional[str]) -> Any:
        path = "/plugin/stats"
        if player_name:
            path += "?" + urllib.parse.urlencode({"rsn": player_name})
        return self.get_json(path)

    def _get_list(self, path: str) -> list[dict[str, Any]]:
        decoded = self.get_json(path)
        if not isinstance(decoded, list):
            LOGGER.warning("Expected a list from %s, got %s", path, type(decoded).__name__)
            return []
        return [entry for entry in decoded if isinstance(entry, dict) and entry.get("id")]

    def get_servers(self) -> list[ServerInfo]:
        """Servers the linked account can post to."""

        return [
            ServerInfo(
                id=str(entry["id"]),
                name=str(entry.get("name") or ""),
                has_bot=bool(entry.get("hasBot", False)),
            )
            for entry in self._get_list("/plugin/servers")
        ]

    def get_server_channels(self, server_id: str) -> list[ChannelInfo]:
        path = f"/plugin/servers/{urllib.parse.quote(server_id, safe='')}/channels"
        return [
            ChannelInfo(
                id=str(entry["id"]),
                name=str(entry.get("name") or ""),
                type=str(entry.get("type") or "text"),
                category=str(entry["category"]) if entry.get("category") else None,
            )
            for entry in self._get_list(path)
        ]

    def get_server_events(self, server_id: str) -> list[EventInfo]:
        path = f"/plugin/servers/{urllib.parse.quote(server_id, safe='')}/events"
        return [
            EventInfo(
                id=str(entry["id"]),
                name=str(entry.get("name") or ""),
                type=str(entry.get("type") or ""),
                status=str(entry.get("status") or ""),
            )
            for entry in self._get_list(path)
        ]

    def token_status(self, token: str) -> int:
        """Return the HTTP status of ``/auth/me`` for ``token``, -1 on network errors."""

        try:
            self._request("GET", "/auth/me", token=token)
        except TransportError as e:
            if e.status is None:
                LOGGER.error("Network error validating token: %s", e.body)
                return -1
            return e.status
        return 200
