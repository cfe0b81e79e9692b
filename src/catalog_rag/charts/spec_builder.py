"""Rule-based chart specification from catalog entry schemas."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

import structlog

from catalog_rag.catalog.models import CatalogEntry
from catalog_rag.catalog.store import CatalogStore
from catalog_rag.errors import UnknownEntryError
from catalog_rag.types import (
    CHART_TYPES,
    ChartAxis,
    ChartSeries,
    ChartSpec,
    ChartSpecMetadata,
    ChartSpecValidation,
)

logger = structlog.get_logger(__name__)

# Ordered: the first type with a matching substring wins.
COLUMN_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("time", ("date", "month", "week", "quarter", "year")),
    ("volume", ("volume", "transfer_volume")),
    ("price", ("price",)),
    ("count", ("count", "trades", "holders")),
    ("percentage", ("pct", "percent")),
    ("supply", ("supply", "minted", "burned")),
    ("tvl", ("tvl", "locked")),
    ("revenue", ("revenue", "fees", "earnings")),
)
METRIC_TYPES = frozenset({"volume", "price", "count", "percentage", "supply", "tvl", "metric"})

# Ordered: the first intent with a matching phrase wins.
INTENT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("compare", "vs"), "bar"),
    (("trend", "over time"), "line"),
    (("volume", "fill"), "area"),
    (("correlation", "relationship"), "scatter"),
    (("composition", "breakdown"), "stacked_bar"),
)

HIGH_RELEVANCE_DOMAINS = frozenset({"dex", "stablecoins", "mev", "rev"})

SERIES_COLORS: tuple[str, ...] = (
    "#3B82F6",
    "#EF4444",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#EC4899",
    "#06B6D4",
    "#84CC16",
    "#F97316",
    "#6366F1",
)

MAX_SUGGESTED_METRICS = 5


def classify_column(name: str) -> str:
    lowered = name.lower()
    for semantic_type, patterns in COLUMN_PATTERNS:
        if any(pattern in lowered for pattern in patterns):
            return semantic_type
    return "metric"


def find_time_column(entry: CatalogEntry) -> str | None:
    for column in entry.columns:
        if classify_column(column) == "time":
            return column
    return None


def find_metric_columns(entry: CatalogEntry) -> list[str]:
    return [column for column in entry.columns if classify_column(column) in METRIC_TYPES]


def format_column_label(column: str) -> str:
    """`transfer_volume` -> `Transfer Volume`, `blockDate` -> `Block Date`."""
    spaced = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", column.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def series_color(index: int) -> str:
    return SERIES_COLORS[index % len(SERIES_COLORS)]


def suggest_chart_type(entry: CatalogEntry, intent: str | None = None) -> str:
    if intent:
        lowered = intent.lower()
        for phrases, chart_type in INTENT_RULES:
            if any(phrase in lowered for phrase in phrases):
                return chart_type

    has_time = find_time_column(entry) is not None
    metrics = find_metric_columns(entry)
    has_volume = any(classify_column(column) == "volume" for column in metrics)

    if has_time and len(metrics) > 1:
        return "line"
    if has_time and has_volume:
        return "area"
    if has_time:
        return "line"
    if len(metrics) > 1:
        return "bar"
    if has_volume:
        return "area"
    return "bar"


def confidence_score(
    entry: CatalogEntry,
    chart_type: str,
    time_column: str | None,
    metric_columns: Sequence[str],
) -> float:
    """Heuristic fit of a chart type to an entry's data shape, in [0, 1]."""

    score = 0.5
    if time_column:
        score += 0.2
    score += min(0.3, 0.1 * len(metric_columns))

    has_volume = any(classify_column(column) == "volume" for column in metric_columns)
    if chart_type == "line" and time_column:
        score += 0.1
    if chart_type == "area" and time_column and has_volume:
        score += 0.1
    if chart_type == "bar" and metric_columns:
        score += 0.1

    if entry.domain in HIGH_RELEVANCE_DOMAINS:
        score += 0.1
    return max(0.0, min(score, 1.0))


class ChartSpecBuilder:
    """Builds chart specs for entries held by a catalog store."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def build(
        self,
        title: str,
        primary_id: str,
        *,
        secondary_id: str | None = None,
        chart_type: str | None = None,
        intent: str | None = None,
        transform: str | None = None,
    ) -> ChartSpec:
        primary = self.store.get(primary_id)
        if primary is None:
            raise UnknownEntryError(primary_id)
        secondary = None
        if secondary_id is not None:
            secondary = self.store.get(secondary_id)
            if secondary is None:
                raise UnknownEntryError(secondary_id)
        return build_chart_spec(
            title,
            primary,
            secondary,
            chart_type=chart_type,
            intent=intent,
            transform=transform,
        )

    def from_search_results(
        self,
        entries: Iterable[CatalogEntry],
        query: str,
        preferred_chart_type: str | None = None,
    ) -> ChartSpec:
        """Chart the top hit, joining the runner-up when there is one."""

        candidates = list(entries)
        if not candidates:
            raise ValueError("No catalog entries provided for chart specification")

        primary = candidates[0]
        secondary = candidates[1] if len(candidates) > 1 else None
        transform = (
            f"JOIN {primary.title} AND {secondary.title} ON date/time column"
            if secondary is not None
            else None
        )
        catalog_chart = next((item for item in primary.chart_types if item in CHART_TYPES), None)
        return build_chart_spec(
            query[:1].upper() + query[1:],
            primary,
            secondary,
            chart_type=preferred_chart_type or catalog_chart,
            intent=query,
            transform=transform,
        )


def build_chart_spec(
    title: str,
    primary: CatalogEntry,
    secondary: CatalogEntry | None = None,
    *,
    chart_type: str | None = None,
    intent: str | None = None,
    transform: str | None = None,
) -> ChartSpec:
    final_chart_type = chart_type or suggest_chart_type(primary, intent)
    time_column = find_time_column(primary)
    metric_columns = find_metric_columns(primary)

    x_axis = (
        ChartAxis(column=time_column, semantic_type="time", label=format_column_label(time_column))
        if time_column
        else None
    )
    y_axis = (
        ChartAxis(
            column=metric_columns[0],
            semantic_type=classify_column(metric_columns[0]),
            label=format_column_label(metric_columns[0]),
        )
        if metric_columns
        else None
    )
    series = [
        ChartSeries(
            column=column,
            semantic_type=classify_column(column),
            label=format_column_label(column),
            color=series_color(index),
        )
        for index, column in enumerate(metric_columns)
    ]
    suggested = ([time_column] if time_column else []) + metric_columns[:MAX_SUGGESTED_METRICS]
    score = confidence_score(primary, final_chart_type, time_column, metric_columns)

    logger.debug(
        "chart_spec_built",
        primary_id=primary.id,
        chart_type=final_chart_type,
        confidence=score,
    )
    return ChartSpec(
        title=title,
        primary_entry_id=primary.id,
        secondary_entry_id=secondary.id if secondary is not None else None,
        transform_description=transform,
        chart_type=final_chart_type,
        x_axis=x_axis,
        y_axis=y_axis,
        series=series,
        metadata=ChartSpecMetadata(
            description=f"{final_chart_type} chart showing {primary.title}",
            domain=primary.domain,
            keywords=list(primary.keywords),
            suggested_columns=suggested,
            confidence_score=score,
        ),
    )


def validate_chart_spec(spec: ChartSpec) -> ChartSpecValidation:
    errors: list[str] = []
    warnings: list[str] = []

    if not spec.title:
        errors.append("Title is required")
    if not spec.primary_entry_id:
        errors.append("Primary entry is required")
    if not spec.chart_type:
        errors.append("Chart type is required")
    elif spec.chart_type not in CHART_TYPES:
        errors.append(f"Invalid chart type: {spec.chart_type}")

    if spec.metadata.confidence_score < 0.5:
        warnings.append("Low confidence score - chart spec may need refinement")
    if spec.x_axis is None and spec.y_axis is None:
        warnings.append("No axis specifications provided")

    return ChartSpecValidation(valid=not errors, errors=errors, warnings=warnings)
