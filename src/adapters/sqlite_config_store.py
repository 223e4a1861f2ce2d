"""SQLite configuration store adapter.

Implements the core ConfigStorePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional


class SQLiteConfigStore:
    """Thin SQLite wrapper that satisfies the ConfigStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - config: persisted key/value settings (destinations, credentials)
        """

        with self._connect() as conn:
            # config holds one row per key so values can be replaced atomically.
            # Fields:
            # - key: setting name, e.g. dropDestinations (PRIMARY KEY)
            # - value: serialized value, always text
            # - updated_at: timestamp of the last write
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS config (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )

    def read(self, key: str) -> Optional[str]:
        """Return the stored value for a key, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM config WHERE key = ?",
                (key,),
            ).fetchone()
        return row["value"] if row else None

    def write(self, key: str, value: str) -> None:
        """Upsert a value."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO config (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, now.isoformat()),
            )

    def delete(self, key: str) -> bool:
        """Remove a key and report whether it existed."""

        with self._connect() as conn:
            cur = conn.execute("DELETE FROM config WHERE key = ?", (key,))
            return cur.rowcount > 0
