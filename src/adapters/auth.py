"""Stored-credential authentication.

Satisfies the core AuthPort. The browser login that issues tokens lives in
the web backend; here we only restore, validate, store and clear them.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from core.ports import ConfigStorePort

LOGGER = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
DISCORD_ID_KEY = "discordId"
DISCORD_USERNAME_KEY = "discordUsername"

STATUS_AUTHENTICATED = "authenticated"
STATUS_UNVERIFIED = "unverified"
STATUS_LOGGED_OUT = "logged_out"


class AuthenticationManager:
    """Holds the active bearer token and a status flag for UI collaborators."""

    def __init__(self, store: ConfigStorePort, validate: Callable[[str], int]) -> None:
        self._store = store
        self._validate = validate
        self._token: Optional[str] = None
        self.status = STATUS_LOGGED_OUT

    def is_authenticated(self) -> bool:
        return self._token is not None

    def auth_token(self) -> Optional[str]:
        return self._token

    @property
    def username(self) -> Optional[str]:
        return self._store.read(DISCORD_USERNAME_KEY) or None

    def check_stored_auth(self, fallback_token: Optional[str] = None) -> bool:
        """Restore a stored token after validating it with the backend.

        401/403 clear the credential. Network errors and unexpected statuses
        keep the stored token so an outage does not log the user out.
        """

        token = self._store.read(AUTH_TOKEN_KEY) or fallback_token
        if not token:
            LOGGER.info("No stored authentication found")
            return False

        LOGGER.info("Found stored token, validating...")
        status = self._validate(token)
        if status == 200:
            self._activate(token, STATUS_AUTHENTICATED)
            LOGGER.info("Restored authentication for user: %s", self.username)
        elif status in (401, 403):
            LOGGER.info("Stored token is invalid (%s), clearing authentication", status)
            self.logout()
        elif status == -1:
            LOGGER.info("Network error during validation, trusting stored token")
            self._activate(token, STATUS_UNVERIFIED)
        else:
            LOGGER.warning("Unexpected validation response (%s), trusting stored token", status)
            self._activate(token, STATUS_UNVERIFIED)
        return self.is_authenticated()

    def login(self, token: str, discord_id: str = "", discord_username: str = "") -> bool:
        """Validate and persist a token obtained from the web login."""

        status = self._validate(token)
        if status != 200:
            LOGGER.error("Token rejected by backend (status %s)", status)
            return False
        self._store.write(AUTH_TOKEN_KEY, token)
        self._store.write(DISCORD_ID_KEY, discord_id)
        self._store.write(DISCORD_USERNAME_KEY, discord_username)
        self._activate(token, STATUS_AUTHENTICATED)
        LOGGER.info("Authentication successful for user: %s", discord_username or "<unknown>")
        return True

    def logout(self) -> None:
        self._token = None
        self.status = STATUS_LOGGED_OUT
        for key in (AUTH_TOKEN_KEY, DISCORD_ID_KEY, DISCORD_USERNAME_KEY):
            self._store.write(key, "")
        LOGGER.info("User logged out")

    def _activate(self, token: str, status: str) -> None:
        self._token = token
        self.status = status
        # Persist a token seeded from the environment.
        if self._store.read(AUTH_TOKEN_KEY) != token:
            self._store.write(AUTH_TOKEN_KEY, token)
