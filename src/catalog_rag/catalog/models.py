"""Catalog entry and enhancement overlay models."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ComplexityLevel = Literal["beginner", "intermediate", "advanced"]
Volatility = Literal["low", "medium", "high"]


class CatalogEntry(BaseModel):
    """Descriptor of one externally queryable analytics data endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    domain: str = Field(min_length=1)
    title: str = Field(min_length=1)
    url: str = ""
    method: str = "GET"
    params: dict[str, str] = Field(default_factory=dict)
    response_schema: dict[str, str] = Field(default_factory=dict)
    keywords: list[str] = Field(default_factory=list)
    description: str | None = None
    aggregation_types: list[str] = Field(default_factory=list)
    chart_types: list[str] = Field(default_factory=list)
    sample_call: str | None = None
    sample_response: str | None = None

    @field_validator("keywords")
    @classmethod
    def _normalize_keywords(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for keyword in value:
            token = keyword.strip().lower()
            if token and token not in normalized:
                normalized.append(token)
        return normalized

    @field_validator("response_schema", "params", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        return value

    @field_validator("sample_response", mode="before")
    @classmethod
    def _flatten_sample_response(cls, value: Any) -> Any:
        # Enhanced catalogs ship sample data as {"data": [...], ...}.
        if isinstance(value, dict):
            rows = value.get("data") or []
            return json.dumps(rows[:2], ensure_ascii=False)
        if isinstance(value, list):
            return json.dumps(value[:2], ensure_ascii=False)
        return value

    @property
    def columns(self) -> list[str]:
        return list(self.response_schema.keys())


class DataQuality(BaseModel):
    completeness: float = Field(ge=0.0, le=1.0)
    accuracy: float = Field(ge=0.0, le=1.0)
    freshness: float = Field(ge=0.0, le=1.0)
    reliability: float = Field(ge=0.0, le=1.0)
    volatility: Volatility = "medium"

    @property
    def average(self) -> float:
        return (self.completeness + self.accuracy + self.freshness + self.reliability) / 4


class UsageContext(BaseModel):
    primary_use_cases: list[str] = Field(default_factory=list)
    typical_queries: list[str] = Field(default_factory=list)
    business_insights: list[str] = Field(default_factory=list)
    decision_support: list[str] = Field(default_factory=list)
    complexity_level: ComplexityLevel = "intermediate"


class Performance(BaseModel):
    avg_response_time_ms: float = Field(default=300.0, ge=0.0)
    typical_data_volume: str = "medium"
    cache_duration: str = "5 minutes"
    rate_limits: str | None = None


class ChartRecommendation(BaseModel):
    type: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    use_case: str = ""
    color_scheme: str | None = None


class AxisSuggestion(BaseModel):
    column: str
    label: str
    format: str | None = None


class AxisSuggestions(BaseModel):
    x_axis: list[AxisSuggestion] = Field(default_factory=list)
    y_axis: list[AxisSuggestion] = Field(default_factory=list)


class Visualization(BaseModel):
    recommended_charts: list[ChartRecommendation] = Field(default_factory=list)
    axis_suggestions: AxisSuggestions = Field(default_factory=AxisSuggestions)
    trending_patterns: list[str] = Field(default_factory=list)
    anomaly_detection: bool = False


class Relationships(BaseModel):
    similar_apis: list[str] = Field(default_factory=list)
    complementary_apis: list[str] = Field(default_factory=list)
    prerequisite_apis: list[str] = Field(default_factory=list)
    derived_metrics: list[str] = Field(default_factory=list)


class SearchContext(BaseModel):
    semantic_tags: list[str] = Field(default_factory=list)
    domain_expertise: list[str] = Field(default_factory=list)
    temporal_scope: str = "historical"
    geographical_scope: str | None = None
    market_relevance: float = Field(default=0.7, ge=0.0, le=1.0)


class Enhancement(BaseModel):
    """Overlay produced by the offline enhancement generator, keyed by entry id."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    data_quality: DataQuality
    usage_context: UsageContext = Field(default_factory=UsageContext)
    performance: Performance = Field(default_factory=Performance)
    visualization: Visualization = Field(default_factory=Visualization)
    relationships: Relationships = Field(default_factory=Relationships)
    search_context: SearchContext = Field(default_factory=SearchContext)
