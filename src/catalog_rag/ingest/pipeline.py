"""Offline index build: load catalog -> embed -> save artifact."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from catalog_rag.config import IndexConfig, get_settings
from catalog_rag.errors import CatalogRagError
from catalog_rag.ingest.embedder import Embedder, create_embedder
from catalog_rag.ingest.loader import load_catalog
from catalog_rag.obs.logging import configure_logging
from catalog_rag.retrieval.embedding_index import EmbeddingIndex

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class IndexBuildResult:
    index_path: str
    indexed_count: int
    skipped_ids: list[str] = field(default_factory=list)
    domains: dict[str, int] = field(default_factory=dict)


class IndexBuildPipeline:
    """Coordinates catalog loading, embedding and artifact persistence.

    Runs ahead of deployment so the search service can load the artifact
    instead of calling the embedding provider at startup.
    """

    def __init__(self, embedder: Embedder, config: IndexConfig | None = None) -> None:
        self._embedder = embedder
        self._config = config or IndexConfig(embedding_model=embedder.model_name)

    def run(
        self,
        catalog_path: str | Path,
        index_path: str | Path,
        *,
        enhanced_catalog_path: str | Path | None = None,
    ) -> IndexBuildResult:
        """Build and save the index; nothing is written if embedding fails."""

        loaded = load_catalog(catalog_path, enhanced_catalog_path)
        index = EmbeddingIndex(self._embedder, self._config)
        report = index.build(loaded.store.entries())
        index.save(index_path)

        skipped = loaded.skipped_ids + report.skipped_ids
        stats = index.stats()
        logger.info(
            "index_build_complete",
            index_path=str(index_path),
            indexed=len(report.indexed_ids),
            skipped=len(skipped),
            domains=len(stats["domains"]),
        )
        return IndexBuildResult(
            index_path=str(index_path),
            indexed_count=len(report.indexed_ids),
            skipped_ids=skipped,
            domains=stats["domains"],
        )


def main() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    embedder = create_embedder(settings)
    if embedder is None:
        logger.error("embedding_provider_missing", hint="set OPENAI_API_KEY or EMBEDDING_PROVIDER")
        return 1

    pipeline = IndexBuildPipeline(embedder, settings.index_config(embedder.model_name))
    try:
        pipeline.run(
            settings.CATALOG_PATH,
            settings.INDEX_PATH,
            enhanced_catalog_path=settings.ENHANCED_CATALOG_PATH,
        )
    except CatalogRagError as exc:
        logger.error("index_build_failed", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
