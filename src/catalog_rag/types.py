"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from catalog_rag.catalog.enhancement import CatalogView
from catalog_rag.catalog.models import CatalogEntry

ChartType = Literal["line", "bar", "area", "scatter", "stacked_bar", "pie"]
CHART_TYPES: tuple[str, ...] = ("line", "bar", "area", "scatter", "stacked_bar", "pie")


@dataclass(slots=True)
class EmbeddingRecord:
    """One indexed catalog entry and the vector derived from its search text."""

    id: str
    vector: list[float]
    source_text: str
    entry: CatalogEntry


@dataclass(slots=True)
class RankedResult:
    """A search hit; lists of these are sorted by descending score."""

    entry_id: str
    score: float
    entry: CatalogEntry

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "score": self.score,
            "title": self.entry.title,
            "domain": self.entry.domain,
        }


@dataclass(slots=True)
class IndexBuildReport:
    indexed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ChartAxis:
    column: str
    semantic_type: str
    label: str


@dataclass(slots=True)
class ChartSeries:
    column: str
    semantic_type: str
    label: str
    color: str


@dataclass(slots=True)
class ChartSpecMetadata:
    description: str
    domain: str
    keywords: list[str]
    suggested_columns: list[str]
    confidence_score: float


@dataclass(slots=True)
class ChartSpec:
    """Chart recommendation bound to one (optionally two) catalog entries."""

    title: str
    primary_entry_id: str
    chart_type: str
    metadata: ChartSpecMetadata
    secondary_entry_id: str | None = None
    transform_description: str | None = None
    x_axis: ChartAxis | None = None
    y_axis: ChartAxis | None = None
    series: list[ChartSeries] = field(default_factory=list)


@dataclass(slots=True)
class ChartSpecValidation:
    valid: bool
    errors: list[str]
    warnings: list[str]


@dataclass(slots=True)
class IntelligenceSummary:
    """Aggregate quality/complexity/visualization report over a result set."""

    avg_data_quality: float = 0.0
    complexity_distribution: dict[str, int] = field(default_factory=dict)
    recommended_visualizations: list[str] = field(default_factory=list)
    business_insights: list[str] = field(default_factory=list)
    avg_response_time_ms: float = 0.0
    data_volume_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class SearchResponse:
    query: str
    entries: list[CatalogView]
    ranked_results: list[RankedResult]
    total_results: int
    execution_time_ms: float
    backend: str
    intelligence_summary: IntelligenceSummary
