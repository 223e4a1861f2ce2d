"""Backend client factory for lootrelay.

The store, authentication manager and HTTP client depend on each other (the
client needs the token, validation needs the client), so they are wired in
one place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import settings
from adapters.auth import AuthenticationManager
from adapters.http_client import BackendApiClient
from adapters.sqlite_config_store import SQLiteConfigStore


@dataclass
class Backend:
    store: SQLiteConfigStore
    auth: AuthenticationManager
    api: BackendApiClient


def build_backend() -> Backend:
    """Create the store, API client and auth manager from settings."""

    store = SQLiteConfigStore(settings.DB_PATH)
    store.init_db()

    # The supplier resolves `auth` at call time, after it is bound below.
    api = BackendApiClient(
        settings.API_ENDPOINT,
        token_supplier=lambda: auth.auth_token(),
        timeout=settings.API_TIMEOUT_SECONDS,
    )
    auth = AuthenticationManager(store, validate=api.token_status)

    logging.getLogger(__name__).info("Using API endpoint %s", api.base_url)
    return Backend(store=store, auth=auth, api=api)
