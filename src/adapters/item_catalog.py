"""JSON-backed item catalog.

Implements ItemCatalogPort from a file shaped like
``{"4151": {"name": "Abyssal whip", "price": 1500000}}``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class JsonItemCatalog:
    def __init__(self, entries: dict[int, dict[str, Any]]) -> None:
        self._entries = entries

    @classmethod
    def from_file(cls, path: str) -> "JsonItemCatalog":
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)

        entries: dict[int, dict[str, Any]] = {}
        for key, value in raw.items():
            try:
                item_id = int(key)
            except ValueError:
                LOGGER.warning("Skipping catalog entry with non-numeric id %r", key)
                continue
            if isinstance(value, dict):
                entries[item_id] = value
        LOGGER.info("Loaded %s catalog items from %s", len(entries), path)
        return cls(entries)

    def price_of(self, item_id: int) -> int:
        try:
            return int(self._entries.get(item_id, {}).get("price", 0))
        except (TypeError, ValueError):
            return 0

    def name_of(self, item_id: int) -> str:
        name = self._entries.get(item_id, {}).get("name")
        return str(name) if name else f"Item {item_id}"
