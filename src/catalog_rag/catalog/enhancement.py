"""Enhancement overlay resolution with synthesized defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from catalog_rag.catalog.models import (
    AxisSuggestion,
    AxisSuggestions,
    CatalogEntry,
    ChartRecommendation,
    DataQuality,
    Enhancement,
    Performance,
    SearchContext,
    UsageContext,
    Visualization,
)


@dataclass(slots=True, frozen=True)
class CatalogView:
    """A catalog entry paired with its overlay.

    `enhanced` is False when the overlay was synthesized by
    `default_enhancement` because the enhanced catalog had no record for the id.
    """

    entry: CatalogEntry
    enhancement: Enhancement
    enhanced: bool

    @property
    def id(self) -> str:
        return self.entry.id

    def to_dict(self) -> dict[str, Any]:
        payload = self.entry.model_dump()
        payload.update(self.enhancement.model_dump())
        payload["enhanced"] = self.enhanced
        return payload


def default_enhancement(entry: CatalogEntry) -> Enhancement:
    return Enhancement(
        data_quality=DataQuality(
            completeness=0.85,
            accuracy=0.9,
            freshness=0.8,
            reliability=0.85,
            volatility="medium",
        ),
        usage_context=UsageContext(
            primary_use_cases=["Analytics", "Reporting"],
            typical_queries=[entry.title],
            business_insights=["General analytics insights"],
            decision_support=["Data-driven decisions"],
            complexity_level="intermediate",
        ),
        performance=Performance(
            avg_response_time_ms=300.0,
            typical_data_volume="medium",
            cache_duration="5 minutes",
        ),
        visualization=Visualization(
            recommended_charts=[
                ChartRecommendation(type="line", confidence=0.8, use_case="Time series"),
                ChartRecommendation(type="bar", confidence=0.7, use_case="Comparisons"),
            ],
            axis_suggestions=AxisSuggestions(
                x_axis=[AxisSuggestion(column="date", label="Date")],
                y_axis=[AxisSuggestion(column="value", label="Value")],
            ),
            trending_patterns=["upward", "seasonal"],
            anomaly_detection=False,
        ),
        search_context=SearchContext(
            semantic_tags=list(entry.keywords),
            domain_expertise=[entry.domain],
            temporal_scope="historical",
            market_relevance=0.7,
        ),
    )


def resolve_view(entry: CatalogEntry, enhancement: Enhancement | None) -> CatalogView:
    if enhancement is None:
        return CatalogView(entry=entry, enhancement=default_enhancement(entry), enhanced=False)
    return CatalogView(entry=entry, enhancement=enhancement, enhanced=True)
