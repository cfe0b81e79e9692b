import pytest

from catalog_rag.catalog.store import CatalogStore
from catalog_rag.charts.spec_builder import (
    SERIES_COLORS,
    ChartSpecBuilder,
    build_chart_spec,
    classify_column,
    format_column_label,
    suggest_chart_type,
    validate_chart_spec,
)
from catalog_rag.errors import UnknownEntryError


@pytest.mark.parametrize(
    ("column", "expected"),
    [
        ("block_date", "time"),
        ("Month", "time"),
        ("fiscal_quarter", "time"),
        ("volume_usd", "volume"),
        ("avg_price", "price"),
        ("trade_count", "count"),
        ("holders", "count"),
        ("fee_pct", "percentage"),
        ("total_supply", "supply"),
        ("burned", "supply"),
        ("tvl_usd", "tvl"),
        ("value_locked", "tvl"),
        ("fees_usd", "revenue"),
        ("category", "metric"),
        ("weekly_volume", "time"),
    ],
)
def test_classify_column(column: str, expected: str) -> None:
    assert classify_column(column) == expected


def test_time_and_volume_without_intent_yields_area(entry_factory) -> None:
    entry = entry_factory(response_schema={"block_date": "time", "volume_usd": "volume"})

    assert suggest_chart_type(entry) == "area"


def test_categorical_counts_without_intent_yield_bar(entry_factory) -> None:
    entry = entry_factory(response_schema={"category": "metric", "count": "count"})

    assert suggest_chart_type(entry) == "bar"


@pytest.mark.parametrize(
    ("intent", "expected"),
    [
        ("compare volume over time", "bar"),
        ("Solana vs Ethereum", "bar"),
        ("show the trend", "line"),
        ("fees over time", "line"),
        ("fill the volume", "area"),
        ("correlation of price and fees", "scatter"),
        ("composition of holders", "stacked_bar"),
        ("breakdown by category", "stacked_bar"),
    ],
)
def test_intent_keywords_take_priority(entry_factory, intent: str, expected: str) -> None:
    entry = entry_factory(response_schema={"category": "metric"})

    assert suggest_chart_type(entry, intent) == expected


@pytest.mark.parametrize(
    ("schema", "expected"),
    [
        ({"date": "d", "price": "p", "tvl": "t"}, "line"),
        ({"date": "d"}, "line"),
        ({"price": "p", "holders": "h"}, "bar"),
        ({"volume": "v"}, "area"),
        ({"price": "p"}, "bar"),
        ({"fees": "f"}, "bar"),
    ],
)
def test_data_pattern_fallback(entry_factory, schema: dict[str, str], expected: str) -> None:
    assert suggest_chart_type(entry_factory(response_schema=schema), "show me") == expected


def test_build_binds_axes_series_and_colors(entry_factory) -> None:
    entry = entry_factory(
        id="dex-volume",
        domain="dex",
        title="DEX Volume",
        response_schema={"block_date": "time", "volume_usd": "volume", "trade_count": "count"},
        keywords=["dex"],
    )

    spec = build_chart_spec("DEX volume", entry)

    assert spec.chart_type == "line"
    assert spec.x_axis is not None and spec.x_axis.column == "block_date"
    assert spec.x_axis.label == "Block Date"
    assert spec.y_axis is not None and spec.y_axis.column == "volume_usd"
    assert spec.y_axis.semantic_type == "volume"
    assert [series.label for series in spec.series] == ["Volume Usd", "Trade Count"]
    assert [series.color for series in spec.series] == list(SERIES_COLORS[:2])
    assert spec.metadata.suggested_columns == ["block_date", "volume_usd", "trade_count"]
    assert spec.metadata.description == "line chart showing DEX Volume"


def test_series_colors_cycle_through_palette(entry_factory) -> None:
    schema = {f"metric_{i}": "metric" for i in range(12)}
    spec = build_chart_spec("Many", entry_factory(response_schema=schema))

    assert spec.series[10].color == SERIES_COLORS[0]
    assert spec.series[11].color == SERIES_COLORS[1]
    assert len(spec.metadata.suggested_columns) == 5


def test_confidence_score_components(entry_factory) -> None:
    schema = {"block_date": "time", "volume_usd": "volume"}

    # 0.5 base + 0.2 time + 0.1 one metric + 0.1 area fit = 0.9, +0.1 domain, clamped.
    plain = build_chart_spec("t", entry_factory(domain="helium", response_schema=schema))
    relevant = build_chart_spec("t", entry_factory(domain="dex", response_schema=schema))

    assert plain.chart_type == "area"
    assert plain.metadata.confidence_score == pytest.approx(0.9)
    assert relevant.metadata.confidence_score == pytest.approx(1.0)

    no_fit = build_chart_spec(
        "t", entry_factory(domain="helium", response_schema=schema), chart_type="pie"
    )
    assert no_fit.metadata.confidence_score == pytest.approx(0.8)


@pytest.mark.parametrize(
    "base_schema",
    [
        {"block_date": "time", "volume_usd": "volume"},
        {"block_date": "time", "avg_price": "price"},
        {"category": "metric"},
        {"volume": "volume"},
        {"fees_usd": "revenue"},
    ],
)
def test_adding_a_metric_never_lowers_confidence(entry_factory, base_schema: dict[str, str]) -> None:
    extended = {**base_schema, "holders": "count"}

    before = build_chart_spec("t", entry_factory(response_schema=base_schema))
    after = build_chart_spec("t", entry_factory(response_schema=extended))

    assert after.metadata.confidence_score >= before.metadata.confidence_score
    assert 0.0 <= after.metadata.confidence_score <= 1.0


def test_format_column_label() -> None:
    assert format_column_label("transfer_volume") == "Transfer Volume"
    assert format_column_label("blockDate") == "Block Date"
    assert format_column_label("tvl") == "Tvl"


def test_builder_rejects_unknown_primary(store: CatalogStore) -> None:
    builder = ChartSpecBuilder(store)

    with pytest.raises(UnknownEntryError) as exc_info:
        builder.build("Missing", "no-such-entry")

    assert exc_info.value.entry_id == "no-such-entry"

    with pytest.raises(UnknownEntryError):
        builder.build("Missing", "dex-volume", secondary_id="ghost")


def test_from_search_results_joins_runner_up(store: CatalogStore) -> None:
    builder = ChartSpecBuilder(store)
    hits = [store.require("dex-volume"), store.require("stable-supply")]

    spec = builder.from_search_results(hits, "dex volume and stablecoin supply")

    assert spec.title == "Dex volume and stablecoin supply"
    assert spec.primary_entry_id == "dex-volume"
    assert spec.secondary_entry_id == "stable-supply"
    assert spec.transform_description == (
        "JOIN DEX Trading Volume Over Time AND Stablecoin Supply ON date/time column"
    )
    # Catalog-declared chart type wins over intent inference.
    assert spec.chart_type == "area"


def test_from_search_results_requires_entries(store: CatalogStore) -> None:
    with pytest.raises(ValueError):
        ChartSpecBuilder(store).from_search_results([], "anything")


def test_validate_chart_spec_flags_problems(entry_factory) -> None:
    spec = build_chart_spec("", entry_factory(response_schema={"fees_usd": "revenue"}))
    spec.chart_type = "donut"

    result = validate_chart_spec(spec)

    assert not result.valid
    assert "Title is required" in result.errors
    assert "Invalid chart type: donut" in result.errors
    assert "No axis specifications provided" in result.warnings


def test_validate_chart_spec_accepts_built_spec(store: CatalogStore) -> None:
    spec = ChartSpecBuilder(store).build("Supply", "stable-supply")

    result = validate_chart_spec(spec)

    assert result.valid
    assert result.errors == []
