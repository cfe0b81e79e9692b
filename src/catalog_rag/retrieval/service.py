"""Catalog search orchestration over the embedding or keyword backend."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from catalog_rag.catalog.enhancement import CatalogView
from catalog_rag.catalog.models import CatalogEntry, ComplexityLevel
from catalog_rag.catalog.store import CatalogStore
from catalog_rag.charts.spec_builder import ChartSpecBuilder
from catalog_rag.config import IndexConfig, SearchConfig
from catalog_rag.errors import (
    CatalogLoadError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
)
from catalog_rag.ingest.embedder import Embedder
from catalog_rag.obs.tracing import SearchTraceStore, Timer
from catalog_rag.retrieval.backend import SearchBackend
from catalog_rag.retrieval.embedding_index import EmbeddingIndex
from catalog_rag.retrieval.keyword_index import KeywordIndex
from catalog_rag.types import ChartSpec, IndexBuildReport, IntelligenceSummary, SearchResponse

logger = structlog.get_logger(__name__)

MAX_BUSINESS_INSIGHTS = 5


class CatalogSearchService:
    """Selects a search backend once and serves filtered, summarized searches.

    Owned by the caller's composition root. Backend selection happens on the
    first `initialize()` (or the first search) and is serialized by a lock, so
    concurrent first callers trigger exactly one build. After that the backend
    is read-only and searches may run concurrently.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        embedder: Embedder | None = None,
        index_path: str | Path | None = None,
        index_config: IndexConfig | None = None,
        config: SearchConfig | None = None,
        trace_store: SearchTraceStore | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.index_path = Path(index_path) if index_path is not None else None
        self.config = config or SearchConfig()
        if index_config is None:
            index_config = IndexConfig(max_results=self.config.max_results)
            if embedder is not None:
                index_config = index_config.model_copy(update={"embedding_model": embedder.model_name})
        self.index_config = index_config
        self.trace_store = trace_store or SearchTraceStore()
        self.chart_builder = ChartSpecBuilder(store)
        self.index_report: IndexBuildReport | None = None
        self._backend: SearchBackend | None = None
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._backend is not None

    @property
    def backend_name(self) -> str | None:
        return self._backend.name if self._backend is not None else None

    def initialize(self) -> str:
        """Select the backend on first call; later calls return immediately."""

        return self._ensure_backend().name

    def _ensure_backend(self) -> SearchBackend:
        backend = self._backend
        if backend is not None:
            return backend
        with self._init_lock:
            if self._backend is None:
                self._backend = self._select_backend()
                logger.info(
                    "search_backend_ready",
                    backend=self._backend.name,
                    entry_count=len(self.store),
                )
            return self._backend

    def _select_backend(self) -> SearchBackend:
        if self.embedder is None:
            logger.info("embedding_provider_missing", fallback="keyword")
            return self._keyword_backend()

        if self.index_path is not None and self.index_path.exists():
            try:
                index = EmbeddingIndex.load(self.index_path, self.embedder, self.index_config)
            except (CatalogLoadError, EmbeddingDimensionError) as exc:
                logger.warning("index_load_failed", path=str(self.index_path), error=str(exc))
            else:
                if not self._is_stale(index):
                    return index

        index = EmbeddingIndex(self.embedder, self.index_config)
        try:
            self.index_report = index.build(self.store.entries())
        except (EmbeddingProviderError, EmbeddingDimensionError) as exc:
            logger.warning("embedding_index_build_failed", error=str(exc), fallback="keyword")
            return self._keyword_backend()

        if self.index_path is not None:
            try:
                index.save(self.index_path)
            except OSError as exc:
                logger.warning("index_save_failed", path=str(self.index_path), error=str(exc))
        return index

    def _keyword_backend(self) -> KeywordIndex:
        index = KeywordIndex(max_results=self.config.max_results)
        self.index_report = index.build(self.store.entries())
        return index

    def _is_stale(self, index: EmbeddingIndex) -> bool:
        """A saved index is reusable only for the same model and the same ids."""

        artifact_model = index.config.embedding_model
        if self.embedder is not None and artifact_model != self.embedder.model_name:
            logger.warning(
                "index_model_mismatch",
                path=str(self.index_path),
                artifact_model=artifact_model,
                embedder_model=self.embedder.model_name,
                action="rebuild",
            )
            return True

        indexed = {record.id for record in index.records()}
        catalog = {entry.id for entry in self.store}
        if indexed != catalog:
            logger.warning(
                "index_catalog_mismatch",
                path=str(self.index_path),
                missing_from_index=len(catalog - indexed),
                unknown_to_catalog=len(indexed - catalog),
                action="rebuild",
            )
            return True
        return False

    def search(
        self,
        query: str,
        top_k: int | None = None,
        domain_filter: str | None = None,
        complexity_filter: ComplexityLevel | None = None,
        quality_threshold: float | None = None,
    ) -> SearchResponse:
        """Rank catalog entries for a natural-language query.

        Over-fetches `overfetch_factor * top_k` candidates so that quality and
        complexity filtering can still fill `top_k` slots.
        """

        limit = top_k if top_k is not None else self.config.default_top_k
        threshold = (
            quality_threshold if quality_threshold is not None else self.config.quality_threshold
        )

        with Timer() as timer:
            backend = self._ensure_backend()
            candidates = backend.search(
                query, limit * self.config.overfetch_factor, domain_filter
            )
            views = [self.store.view(result.entry) for result in candidates]
            selected = [
                view
                for view in views
                if view.enhancement.data_quality.completeness >= threshold
                and (
                    complexity_filter is None
                    or view.enhancement.usage_context.complexity_level == complexity_filter
                )
            ][:limit]
            summary = summarize_results(selected)

        self.trace_store.create_record(
            query=query,
            backend=backend.name,
            domain_filter=domain_filter,
            candidate_count=len(candidates),
            result_ids=[view.id for view in selected],
            avg_data_quality=summary.avg_data_quality,
            latency_ms=timer.elapsed_ms,
        )
        logger.info(
            "catalog_search",
            backend=backend.name,
            candidates=len(candidates),
            returned=len(selected),
            latency_ms=round(timer.elapsed_ms, 2),
        )
        return SearchResponse(
            query=query,
            entries=selected,
            ranked_results=candidates[:limit],
            total_results=len(candidates),
            execution_time_ms=timer.elapsed_ms,
            backend=backend.name,
            intelligence_summary=summary,
        )

    def get_entry(self, entry_id: str) -> CatalogView:
        return self.store.view(self.store.require(entry_id))

    def get_entries_by_domain(self, domain: str) -> list[CatalogView]:
        return [self.store.view(entry) for entry in self.store.by_domain(domain)]

    def build_chart_spec(
        self,
        title: str,
        primary_id: str,
        chart_type: str | None = None,
        secondary_id: str | None = None,
        intent: str | None = None,
        transform: str | None = None,
    ) -> ChartSpec:
        return self.chart_builder.build(
            title,
            primary_id,
            secondary_id=secondary_id,
            chart_type=chart_type,
            intent=intent,
            transform=transform,
        )

    def chart_spec_from_results(
        self,
        entries: Iterable[CatalogView | CatalogEntry],
        query: str,
        preferred_chart_type: str | None = None,
    ) -> ChartSpec:
        plain = [item.entry if isinstance(item, CatalogView) else item for item in entries]
        return self.chart_builder.from_search_results(plain, query, preferred_chart_type)

    def stats(self) -> dict[str, Any]:
        backend = self.initialize()
        payload: dict[str, Any] = {
            "total_entries": len(self.store),
            "domains": self.store.domain_counts(),
            "initialized": True,
            "backend": backend,
            "skipped_ids": list(self.index_report.skipped_ids) if self.index_report else [],
        }
        enhancements = self.store.enhancements()
        if enhancements:
            complexity: dict[str, int] = {}
            chart_types: list[str] = []
            for enhancement in enhancements:
                level = enhancement.usage_context.complexity_level
                complexity[level] = complexity.get(level, 0) + 1
                for chart in enhancement.visualization.recommended_charts:
                    if chart.type not in chart_types:
                        chart_types.append(chart.type)
            payload["enhancement_stats"] = {
                "enhanced_entries": len(enhancements),
                "avg_data_quality": sum(item.data_quality.average for item in enhancements)
                / len(enhancements),
                "complexity_distribution": complexity,
                "visualization_types": chart_types,
            }
        return payload


def summarize_results(views: list[CatalogView]) -> IntelligenceSummary:
    """Aggregate quality, complexity, visualization and performance figures."""

    if not views:
        return IntelligenceSummary()

    count = len(views)
    complexity: dict[str, int] = {}
    volumes: dict[str, int] = {}
    chart_types: list[str] = []
    insights: list[str] = []
    for view in views:
        enhancement = view.enhancement
        level = enhancement.usage_context.complexity_level
        complexity[level] = complexity.get(level, 0) + 1
        volume = enhancement.performance.typical_data_volume
        volumes[volume] = volumes.get(volume, 0) + 1
        for chart in enhancement.visualization.recommended_charts:
            if chart.type not in chart_types:
                chart_types.append(chart.type)
        for insight in enhancement.usage_context.business_insights:
            if insight not in insights:
                insights.append(insight)

    return IntelligenceSummary(
        avg_data_quality=sum(view.enhancement.data_quality.average for view in views) / count,
        complexity_distribution=complexity,
        recommended_visualizations=chart_types,
        business_insights=insights[:MAX_BUSINESS_INSIGHTS],
        avg_response_time_ms=sum(view.enhancement.performance.avg_response_time_ms for view in views)
        / count,
        data_volume_distribution=volumes,
    )
