"""Dense embedding index with exact cosine-similarity search."""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from math import sqrt
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from catalog_rag.catalog.models import CatalogEntry
from catalog_rag.config import IndexConfig
from catalog_rag.errors import (
    CatalogLoadError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    NotInitializedError,
)
from catalog_rag.ingest.embedder import Embedder
from catalog_rag.retrieval.backend import build_search_text, top_k
from catalog_rag.types import EmbeddingRecord, IndexBuildReport, RankedResult

logger = structlog.get_logger(__name__)

ARTIFACT_VERSION = "1.0.0"


class _ArtifactModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArtifactRecord(_ArtifactModel):
    id: str
    vector: list[float]
    source_text: str
    entry: CatalogEntry


class IndexArtifact(_ArtifactModel):
    """Serialized form of a built index."""

    entries: list[ArtifactRecord]
    embedding_model: str
    max_results: int = Field(ge=1)
    created_at: str
    total_entries: int = Field(ge=0)
    version: str = ARTIFACT_VERSION


class EmbeddingIndex:
    """Holds one vector per catalog entry and ranks them against a query.

    Construction is all-or-nothing: records are swapped in only after every
    batch succeeded, so a failed `build` leaves the previous state intact.
    """

    name = "embedding"

    def __init__(
        self,
        embedder: Embedder,
        config: IndexConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.embedder = embedder
        self.config = config or IndexConfig(embedding_model=embedder.model_name)
        self.max_results = self.config.max_results
        self._sleep = sleep
        self._records: dict[str, EmbeddingRecord] = {}
        self._dimension: int | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[EmbeddingRecord]:
        return list(self._records.values())

    def build(self, entries: Iterable[CatalogEntry]) -> IndexBuildReport:
        """Embed every entry in throttled, concurrently executed batches."""

        report = IndexBuildReport()
        prepared: list[tuple[CatalogEntry, str]] = []
        seen: set[str] = set()
        for entry in entries:
            text = build_search_text(entry)
            if not text or entry.id in seen:
                logger.warning(
                    "index_entry_skipped",
                    entry_id=entry.id,
                    reason="empty_text" if not text else "duplicate_id",
                )
                report.skipped_ids.append(entry.id)
                continue
            seen.add(entry.id)
            prepared.append((entry, text))

        batch_size = self.config.batch_size
        total = len(prepared)
        records: dict[str, EmbeddingRecord] = {}
        dimension: int | None = None
        start_time = time.perf_counter()

        with ThreadPoolExecutor(max_workers=batch_size) as pool:
            for start in range(0, total, batch_size):
                batch = prepared[start : start + batch_size]
                vectors = self._embed_batch(pool, [text for _, text in batch], start // batch_size)

                for (entry, text), vector in zip(batch, vectors, strict=True):
                    if dimension is None:
                        dimension = len(vector)
                    elif len(vector) != dimension:
                        raise EmbeddingDimensionError(dimension, len(vector))
                    records[entry.id] = EmbeddingRecord(
                        id=entry.id, vector=vector, source_text=text, entry=entry
                    )
                    report.indexed_ids.append(entry.id)

                processed = min(start + batch_size, total)
                logger.info("embedding_batch_processed", processed=processed, total=total)
                if processed < total:
                    self._sleep(self.config.batch_delay_seconds)

        self._records = records
        self._dimension = dimension
        self._initialized = True
        logger.info(
            "embedding_index_built",
            model=self.config.embedding_model,
            indexed=len(report.indexed_ids),
            skipped=len(report.skipped_ids),
            dimension=dimension,
            elapsed_seconds=round(time.perf_counter() - start_time, 3),
        )
        return report

    def _embed_batch(
        self, pool: ThreadPoolExecutor, texts: list[str], batch_number: int
    ) -> list[list[float]]:
        try:
            vectors = list(pool.map(self.embedder.embed_query, texts))
        except Exception as exc:
            logger.error("embedding_batch_failed", batch=batch_number, error=str(exc))
            raise EmbeddingProviderError(
                f"Embedding batch {batch_number} failed: {exc}"
            ) from exc
        if any(not vector for vector in vectors):
            raise EmbeddingProviderError(f"Embedding batch {batch_number} returned an empty vector")
        return [list(vector) for vector in vectors]

    def search(
        self,
        query: str,
        k: int,
        domain_filter: str | None = None,
    ) -> list[RankedResult]:
        if not self._initialized:
            raise NotInitializedError("Embedding index not initialized. Call build() or load() first.")

        candidates = [
            record
            for record in self._records.values()
            if not domain_filter or record.entry.domain == domain_filter
        ]
        if not candidates:
            return []

        try:
            query_vector = self.embedder.embed_query(query.lower())
        except Exception as exc:
            raise EmbeddingProviderError(f"Query embedding failed: {exc}") from exc
        if self._dimension is not None and len(query_vector) != self._dimension:
            raise EmbeddingDimensionError(self._dimension, len(query_vector))

        results = [
            RankedResult(
                entry_id=record.id,
                score=cosine_similarity(query_vector, record.vector),
                entry=record.entry,
            )
            for record in candidates
        ]
        return top_k(results, k, self.max_results)

    def get(self, entry_id: str) -> CatalogEntry | None:
        record = self._records.get(entry_id)
        return record.entry if record else None

    def by_domain(self, domain: str) -> list[CatalogEntry]:
        return [record.entry for record in self._records.values() if record.entry.domain == domain]

    def stats(self) -> dict[str, Any]:
        domains: dict[str, int] = {}
        for record in self._records.values():
            domains[record.entry.domain] = domains.get(record.entry.domain, 0) + 1
        return {
            "total_entries": len(self._records),
            "domains": domains,
            "initialized": self._initialized,
            "dimension": self._dimension,
            "embedding_model": self.config.embedding_model,
        }

    def save(self, path: str | Path) -> None:
        if not self._initialized:
            raise NotInitializedError("Cannot save an index that was never built.")
        artifact = IndexArtifact(
            entries=[
                ArtifactRecord(
                    id=record.id,
                    vector=record.vector,
                    source_text=record.source_text,
                    entry=record.entry,
                )
                for record in self._records.values()
            ],
            embedding_model=self.config.embedding_model,
            max_results=self.max_results,
            created_at=datetime.now(timezone.utc).isoformat(),
            total_entries=len(self._records),
        )
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(artifact.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        logger.info("embedding_index_saved", path=str(file_path), total_entries=len(self._records))

    @classmethod
    def load(
        cls,
        path: str | Path,
        embedder: Embedder,
        config: IndexConfig | None = None,
    ) -> EmbeddingIndex:
        """Restore a saved index; the provider is only called at query time."""

        file_path = Path(path)
        try:
            artifact = IndexArtifact.model_validate(
                json.loads(file_path.read_text(encoding="utf-8"))
            )
        except FileNotFoundError as exc:
            raise CatalogLoadError(f"Index artifact not found: {file_path}") from exc
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise CatalogLoadError(f"Index artifact unreadable: {file_path}: {exc}") from exc

        base = config or IndexConfig()
        index = cls(
            embedder,
            base.model_copy(
                update={
                    "embedding_model": artifact.embedding_model,
                    "max_results": artifact.max_results,
                }
            ),
        )
        if embedder.model_name != artifact.embedding_model:
            logger.warning(
                "index_model_mismatch",
                artifact_model=artifact.embedding_model,
                embedder_model=embedder.model_name,
            )

        dimension: int | None = None
        for item in artifact.entries:
            if dimension is None:
                dimension = len(item.vector)
            elif len(item.vector) != dimension:
                raise EmbeddingDimensionError(dimension, len(item.vector))
            index._records[item.id] = EmbeddingRecord(
                id=item.id, vector=item.vector, source_text=item.source_text, entry=item.entry
            )
        index._dimension = dimension
        index._initialized = True
        logger.info("embedding_index_loaded", path=str(file_path), total_entries=len(index._records))
        return index


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        raise EmbeddingDimensionError(len(b), len(a))
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
