import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from catalog_rag.catalog.models import CatalogEntry
from catalog_rag.catalog.store import CatalogStore

RAW_ENTRIES: list[dict[str, Any]] = [
    {
        "id": "dex-volume",
        "domain": "dex",
        "title": "DEX Trading Volume Over Time",
        "url": "https://api.example.com/dex/volume",
        "method": "GET",
        "response_schema": {"block_date": "date", "volume_usd": "USD volume"},
        "keywords": ["dex", "trading", "volume", "swaps"],
        "chart_types": ["area", "line"],
    },
    {
        "id": "stable-supply",
        "domain": "stablecoins",
        "title": "Stablecoin Supply",
        "url": "https://api.example.com/stablecoins/supply",
        "method": "GET",
        "response_schema": {
            "date": "date",
            "total_supply": "total supply",
            "circulating_supply": "circulating supply",
        },
        "keywords": ["stablecoin", "supply", "usdc", "usdt"],
        "chart_types": ["line"],
    },
    {
        "id": "mev-extraction",
        "domain": "mev",
        "title": "MEV Extraction By Searcher",
        "url": "https://api.example.com/mev/searchers",
        "method": "GET",
        "response_schema": {"searcher": "address", "profit_usd": "profit", "bundle_count": "bundles"},
        "keywords": ["mev", "arbitrage", "sandwich"],
    },
    {
        "id": "compute-fees",
        "domain": "compute-units",
        "title": "Compute Unit Fees",
        "url": "https://api.example.com/compute/fees",
        "method": "GET",
        "description": "Monthly priority fees paid for compute units",
        "response_schema": {"month": "month", "avg_fee": "lamports", "tx_count": "transactions"},
        "keywords": ["compute", "fees", "priority"],
    },
    {
        "id": "wbtc-holders",
        "domain": "wrapped-btc",
        "title": "Wrapped BTC Holders",
        "url": "https://api.example.com/wbtc/holders",
        "method": "GET",
        "response_schema": {"category": "bucket", "holders": "count"},
        "keywords": ["wbtc", "bitcoin", "holders"],
    },
]


def make_entry(**overrides: Any) -> CatalogEntry:
    payload: dict[str, Any] = {
        "id": "entry",
        "domain": "test",
        "title": "Test Entry",
        "response_schema": {"value": "number"},
        "keywords": [],
    }
    payload.update(overrides)
    return CatalogEntry.model_validate(payload)


@pytest.fixture
def entry_factory() -> Callable[..., CatalogEntry]:
    return make_entry


@pytest.fixture
def entries() -> list[CatalogEntry]:
    return [CatalogEntry.model_validate(raw) for raw in RAW_ENTRIES]


@pytest.fixture
def store(entries: list[CatalogEntry]) -> CatalogStore:
    return CatalogStore(entries)


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "api-catalog.json"
    path.write_text(
        json.dumps({"entries": RAW_ENTRIES, "version": "1.0.0", "last_updated": "2025-01-01"}),
        encoding="utf-8",
    )
    return path
