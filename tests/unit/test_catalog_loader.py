import json
from pathlib import Path

import pytest

from catalog_rag.catalog.enhancement import default_enhancement, resolve_view
from catalog_rag.catalog.store import CatalogStore
from catalog_rag.errors import CatalogLoadError, UnknownEntryError
from catalog_rag.ingest.loader import load_catalog


def _enhanced_payload(raw: dict, *, complexity: str = "advanced", completeness: float = 0.95) -> dict:
    return {
        **raw,
        "sample_response": {
            "data": [{"block_date": "2025-01-01", "volume_usd": 1}, {"block_date": "2025-01-02"}, {}],
            "row_count": 3,
            "data_freshness": "daily",
            "last_updated": "2025-01-03",
        },
        "data_quality": {
            "completeness": completeness,
            "accuracy": 0.97,
            "freshness": 0.9,
            "reliability": 0.92,
            "volatility": "high",
        },
        "usage_context": {
            "primary_use_cases": ["Liquidity analysis"],
            "typical_queries": ["dex volume"],
            "business_insights": ["Volume leads fees"],
            "decision_support": [],
            "complexity_level": complexity,
        },
        "performance": {
            "avg_response_time_ms": 120,
            "typical_data_volume": "large",
            "cache_duration": "1 hour",
        },
        "visualization": {
            "recommended_charts": [{"type": "area", "confidence": 0.9, "use_case": "Volume"}],
            "axis_suggestions": {"x_axis": [], "y_axis": []},
            "trending_patterns": [],
            "anomaly_detection": True,
        },
    }


def test_basic_catalog_loads_all_entries(catalog_file: Path) -> None:
    result = load_catalog(catalog_file)

    assert not result.enhanced
    assert len(result.store) == 5
    assert result.skipped_ids == []
    assert result.store.domain_counts()["dex"] == 1


def test_malformed_and_duplicate_entries_are_skipped_and_reported(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "entries": [
                    {"id": "ok", "domain": "dex", "title": "OK", "response_schema": {"date": "d"}},
                    {"id": "no-title", "domain": "dex", "response_schema": {}},
                    {"id": "ok", "domain": "mev", "title": "Again"},
                    "not-an-object",
                ]
            }
        ),
        encoding="utf-8",
    )

    result = load_catalog(path)

    assert [entry.id for entry in result.store] == ["ok"]
    assert result.skipped_ids == ["no-title", "ok", "#3"]


def test_enhanced_catalog_is_preferred(tmp_path: Path, catalog_file: Path) -> None:
    raw = json.loads(catalog_file.read_text(encoding="utf-8"))["entries"]
    enhanced_path = tmp_path / "api-catalog-enhanced.json"
    enhanced_path.write_text(
        json.dumps({"entries": [_enhanced_payload(raw[0]), raw[1]]}), encoding="utf-8"
    )

    result = load_catalog(catalog_file, enhanced_path)

    assert result.enhanced
    assert len(result.store) == 2
    assert result.store.enhanced_count == 1
    dex = result.store.view(result.store.require("dex-volume"))
    assert dex.enhanced
    assert dex.enhancement.usage_context.complexity_level == "advanced"
    # Object-form samples are reduced to the first two rows.
    assert json.loads(dex.entry.sample_response or "[]") == [
        {"block_date": "2025-01-01", "volume_usd": 1},
        {"block_date": "2025-01-02"},
    ]
    stable = result.store.view(result.store.require("stable-supply"))
    assert not stable.enhanced


def test_invalid_overlay_falls_back_to_defaults(tmp_path: Path, catalog_file: Path) -> None:
    raw = json.loads(catalog_file.read_text(encoding="utf-8"))["entries"]
    broken = _enhanced_payload(raw[0], completeness=3.0)
    enhanced_path = tmp_path / "api-catalog-enhanced.json"
    enhanced_path.write_text(json.dumps({"entries": [broken]}), encoding="utf-8")

    result = load_catalog(catalog_file, enhanced_path)

    view = result.store.view(result.store.require("dex-volume"))
    assert not view.enhanced
    assert view.enhancement.data_quality.completeness == 0.85


def test_missing_catalog_raises(tmp_path: Path) -> None:
    with pytest.raises(CatalogLoadError):
        load_catalog(tmp_path / "missing.json", tmp_path / "also-missing.json")


def test_catalog_without_entries_array_raises(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"version": "1"}), encoding="utf-8")

    with pytest.raises(CatalogLoadError):
        load_catalog(path)


def test_default_enhancement_values(entries) -> None:
    overlay = default_enhancement(entries[0])

    assert overlay.data_quality.completeness == 0.85
    assert overlay.data_quality.accuracy == 0.9
    assert overlay.data_quality.freshness == 0.8
    assert overlay.data_quality.reliability == 0.85
    assert overlay.usage_context.complexity_level == "intermediate"
    assert overlay.usage_context.typical_queries == [entries[0].title]
    assert [chart.type for chart in overlay.visualization.recommended_charts] == ["line", "bar"]
    assert overlay.search_context.domain_expertise == [entries[0].domain]


def test_resolve_view_marks_discriminant(entries) -> None:
    overlay = default_enhancement(entries[1])

    assert resolve_view(entries[0], None).enhanced is False
    assert resolve_view(entries[0], overlay).enhanced is True
    assert resolve_view(entries[0], None).to_dict()["enhanced"] is False


def test_store_lookups(store: CatalogStore) -> None:
    assert store.get("nope") is None
    assert [entry.id for entry in store.by_domain("mev")] == ["mev-extraction"]
    with pytest.raises(UnknownEntryError):
        store.require("nope")
    with pytest.raises(ValueError):
        store.add(store.require("dex-volume"))


def test_keywords_are_normalized(entry_factory) -> None:
    entry = entry_factory(keywords=[" DEX ", "dex", "Swaps", ""])

    assert entry.keywords == ["dex", "swaps"]
