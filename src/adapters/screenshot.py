"""Screenshot capture adapter.

Grabs a frame from the host, then validates it with the backend for the
destination server. Premium servers persist the image and answer with a URL;
for everyone else the image travels inline with the drop.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from typing import Callable, Optional

from adapters.http_client import BackendApiClient
from core.models import QualifyingDestination, ScreenshotResult
from core.ports import ScreenshotError

LOGGER = logging.getLogger(__name__)


class DirectoryFrameSource:
    """Use the newest PNG written by the host into ``directory`` as the frame."""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    def __call__(self) -> bytes:
        try:
            names = [name for name in os.listdir(self._directory) if name.lower().endswith(".png")]
        except FileNotFoundError:
            raise ScreenshotError(f"Screenshot directory not found: {self._directory}") from None
        if not names:
            raise ScreenshotError(f"No frame available in {self._directory}")
        newest = max(names, key=lambda name: os.path.getmtime(os.path.join(self._directory, name)))
        with open(os.path.join(self._directory, newest), "rb") as handle:
            return handle.read()


class BackendScreenshotCapture:
    """ScreenshotPort implementation backed by the upload-validation endpoint."""

    def __init__(self, frame_source: Callable[[], bytes], client: BackendApiClient) -> None:
        self._frame_source = frame_source
        self._client = client

    async def capture(self, destination: QualifyingDestination) -> Optional[ScreenshotResult]:
        return await asyncio.to_thread(self._capture_sync, destination.server_id)

    def _capture_sync(self, server_id: str) -> ScreenshotResult:
        image = self._frame_source()
        encoded = base64.b64encode(image).decode("ascii")
        LOGGER.info("Screenshot captured for server %s, validating...", server_id)

        response = self._client.upload_screenshot(encoded, server_id)
        url = response.get("url")
        if url:
            return ScreenshotResult(url=str(url))
        return ScreenshotResult(base64=response.get("base64") or encoded)
