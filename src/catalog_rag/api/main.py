"""FastAPI entrypoint for catalog search and chart-spec endpoints."""

from __future__ import annotations

from dataclasses import asdict
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from catalog_rag.catalog.models import ComplexityLevel
from catalog_rag.charts.spec_builder import validate_chart_spec
from catalog_rag.config import Settings, get_settings
from catalog_rag.errors import (
    CatalogLoadError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    UnknownEntryError,
)
from catalog_rag.ingest.embedder import create_embedder
from catalog_rag.ingest.loader import load_catalog
from catalog_rag.obs.logging import configure_logging
from catalog_rag.retrieval.service import CatalogSearchService
from catalog_rag.types import ChartSpec, ChartType, SearchResponse


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=20)
    domain_filter: str | None = None
    complexity_filter: ComplexityLevel | None = None
    quality_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class ChartSpecRequest(BaseModel):
    title: str = Field(min_length=1)
    primary_id: str = Field(min_length=1)
    chart_type: ChartType | None = None
    secondary_id: str | None = None
    intent: str | None = None
    transform: str | None = None


class SearchChartRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=2, ge=1, le=10)
    domain_filter: str | None = None
    preferred_chart_type: ChartType | None = None


def create_service(settings: Settings) -> CatalogSearchService:
    """Composition root: catalog, embedding provider and search service."""

    loaded = load_catalog(settings.CATALOG_PATH, settings.ENHANCED_CATALOG_PATH)
    embedder = create_embedder(settings)
    return CatalogSearchService(
        loaded.store,
        embedder=embedder,
        index_path=settings.INDEX_PATH,
        index_config=settings.index_config(embedder.model_name if embedder else None),
        config=settings.search_config(),
    )


@lru_cache
def get_service() -> CatalogSearchService:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    try:
        return create_service(settings)
    except CatalogLoadError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


app = FastAPI(title="Catalog RAG", version="0.1.0")


def _search_payload(response: SearchResponse) -> dict[str, Any]:
    return {
        "query": response.query,
        "entries": [view.to_dict() for view in response.entries],
        "ranked_results": [result.to_dict() for result in response.ranked_results],
        "total_results": response.total_results,
        "execution_time_ms": response.execution_time_ms,
        "backend": response.backend,
        "intelligence_summary": asdict(response.intelligence_summary),
    }


def _chart_payload(spec: ChartSpec) -> dict[str, Any]:
    validation = validate_chart_spec(spec)
    return {"chart_spec": asdict(spec), "validation": asdict(validation)}


@app.get("/health")
def health(service: CatalogSearchService = Depends(get_service)) -> dict[str, Any]:
    return {
        "status": "ok",
        "entry_count": len(service.store),
        "initialized": service.initialized,
        "backend": service.backend_name,
        "embedding_configured": service.embedder is not None,
    }


@app.post("/search")
def search(
    request: SearchRequest, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    try:
        response = service.search(
            request.query,
            top_k=request.top_k,
            domain_filter=request.domain_filter,
            complexity_filter=request.complexity_filter,
            quality_threshold=request.quality_threshold,
        )
    except (EmbeddingProviderError, EmbeddingDimensionError) as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _search_payload(response)


@app.post("/chart-spec")
def chart_spec(
    request: ChartSpecRequest, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    try:
        spec = service.build_chart_spec(
            request.title,
            request.primary_id,
            chart_type=request.chart_type,
            secondary_id=request.secondary_id,
            intent=request.intent,
            transform=request.transform,
        )
    except UnknownEntryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _chart_payload(spec)


@app.post("/chart-spec/from-search")
def chart_spec_from_search(
    request: SearchChartRequest, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    try:
        response = service.search(
            request.query, top_k=request.top_k, domain_filter=request.domain_filter
        )
    except (EmbeddingProviderError, EmbeddingDimensionError) as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if not response.entries:
        raise HTTPException(status_code=404, detail=f"No catalog entries match: {request.query}")

    spec = service.chart_spec_from_results(
        response.entries, request.query, request.preferred_chart_type
    )
    payload = _chart_payload(spec)
    payload["search"] = _search_payload(response)
    return payload


@app.get("/entries/{entry_id}")
def entry_detail(
    entry_id: str, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    try:
        return service.get_entry(entry_id).to_dict()
    except UnknownEntryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/domains/{domain}")
def domain_entries(
    domain: str, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    return {"items": [view.to_dict() for view in service.get_entries_by_domain(domain)]}


@app.get("/stats")
def stats(service: CatalogSearchService = Depends(get_service)) -> dict[str, Any]:
    return service.stats()


@app.get("/traces")
def traces(limit: int = 20, service: CatalogSearchService = Depends(get_service)) -> dict[str, Any]:
    return {"items": [asdict(record) for record in service.trace_store.list_recent(limit=limit)]}


@app.get("/traces/{trace_id}")
def trace_detail(
    trace_id: str, service: CatalogSearchService = Depends(get_service)
) -> dict[str, Any]:
    try:
        return asdict(service.trace_store.get(trace_id))
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Trace not found: {trace_id}") from exc


@app.get("/metrics")
def metrics(service: CatalogSearchService = Depends(get_service)) -> dict[str, Any]:
    return service.trace_store.summary()
