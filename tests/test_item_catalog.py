from __future__ import annotations

import json
from pathlib import Path

from adapters.item_catalog import JsonItemCatalog


def test_from_file(tmp_path: Path) -> None:
    path = tmp_path / "items.json"
    path.write_text(
        json.dumps(
            {
                "4151": {"name": "Abyssal whip", "price": 1500000},
                "536": {"name": "Dragon bones", "price": "3000"},
                "coins": {"name": "Coins", "price": 1},
                "13231": {"name": "Primordial crystal", "price": None},
            }
        ),
        encoding="utf-8",
    )

    catalog = JsonItemCatalog.from_file(str(path))

    assert catalog.price_of(4151) == 1500000
    assert catalog.price_of(536) == 3000
    assert catalog.name_of(536) == "Dragon bones"
    assert catalog.price_of(13231) == 0


def test_unknown_item() -> None:
    catalog = JsonItemCatalog({})

    assert catalog.price_of(1) == 0
    assert catalog.name_of(1) == "Item 1"
