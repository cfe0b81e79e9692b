"""Dependency-free keyword ranking used when embeddings are unavailable."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from catalog_rag.catalog.models import CatalogEntry
from catalog_rag.errors import NotInitializedError
from catalog_rag.retrieval.backend import build_search_text, top_k
from catalog_rag.types import IndexBuildReport, RankedResult

logger = structlog.get_logger(__name__)

EXACT_MATCH_WEIGHT = 1.0
PARTIAL_MATCH_WEIGHT = 0.5
DOMAIN_BONUS = 0.5
KEYWORD_BONUS = 0.3


class KeywordIndex:
    """Token-overlap ranking over title, description, domain, keywords and columns.

    Scoring per query token (lower-cased, longer than two characters):
    - +1.0 when the token occurs anywhere in the entry text;
    - otherwise +0.5 for every entry token that contains it or is contained by it.
    The entry then gets +0.5 once if any query token occurs in its domain and
    +0.3 per keyword containing a query token. The total is divided by the
    number of query tokens. Short entry tokens can collect many partial matches;
    that bias is left uncorrected.
    """

    name = "keyword"

    def __init__(self, max_results: int = 20) -> None:
        self.max_results = max_results
        self._entries: list[CatalogEntry] = []
        self._texts: dict[str, str] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def build(self, entries: Iterable[CatalogEntry]) -> IndexBuildReport:
        self._entries = list(entries)
        self._texts = {entry.id: build_search_text(entry) for entry in self._entries}
        self._initialized = True
        logger.info("keyword_index_built", entry_count=len(self._entries))
        return IndexBuildReport(indexed_ids=[entry.id for entry in self._entries])

    def search(
        self,
        query: str,
        k: int,
        domain_filter: str | None = None,
    ) -> list[RankedResult]:
        if not self._initialized:
            raise NotInitializedError("Keyword index not initialized. Call build() first.")

        query_tokens = tokenize_query(query)
        results: list[RankedResult] = []
        for entry in self._entries:
            if domain_filter and entry.domain != domain_filter:
                continue
            score = self.score(query_tokens, entry)
            if score > 0:
                results.append(RankedResult(entry_id=entry.id, score=score, entry=entry))
        return top_k(results, k, self.max_results)

    def score(self, query_tokens: list[str], entry: CatalogEntry) -> float:
        if not query_tokens:
            return 0.0

        text = self._texts.get(entry.id)
        if text is None:
            text = build_search_text(entry)
        entry_tokens = text.split()

        score = 0.0
        for token in query_tokens:
            if token in text:
                score += EXACT_MATCH_WEIGHT
            else:
                partial = sum(
                    1 for entry_token in entry_tokens if token in entry_token or entry_token in token
                )
                score += partial * PARTIAL_MATCH_WEIGHT

        domain = entry.domain.lower()
        if any(token in domain for token in query_tokens):
            score += DOMAIN_BONUS

        keyword_hits = [
            keyword for keyword in entry.keywords if any(token in keyword for token in query_tokens)
        ]
        score += len(keyword_hits) * KEYWORD_BONUS

        return score / len(query_tokens)


def tokenize_query(query: str) -> list[str]:
    return [token for token in query.lower().split() if len(token) > 2]
