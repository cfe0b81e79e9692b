"""Search backend contract shared by the embedding and keyword indices."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from catalog_rag.catalog.models import CatalogEntry
from catalog_rag.types import IndexBuildReport, RankedResult


class SearchBackend(Protocol):
    """Minimal ranking contract the orchestrator depends on."""

    name: str
    max_results: int

    @property
    def initialized(self) -> bool:
        """Whether `search` may be called."""

    def build(self, entries: Iterable[CatalogEntry]) -> IndexBuildReport:
        """Index catalog entries."""

    def search(
        self,
        query: str,
        k: int,
        domain_filter: str | None = None,
    ) -> list[RankedResult]:
        """Return at most `min(k, max_results)` hits by descending score."""


def build_search_text(entry: CatalogEntry) -> str:
    """Canonical lower-cased text describing an entry for matching."""

    parts = [
        entry.title,
        entry.description or "",
        entry.domain,
        " ".join(entry.keywords),
        " ".join(entry.columns),
        " ".join(entry.aggregation_types),
        " ".join(entry.chart_types),
    ]
    return " ".join(part for part in parts if part.strip()).lower()


def top_k(results: list[RankedResult], k: int, max_results: int) -> list[RankedResult]:
    # sorted() is stable, so ties keep catalog order across runs.
    ranked = sorted(results, key=lambda item: item.score, reverse=True)
    return ranked[: max(0, min(k, max_results))]
