"""Exception hierarchy for catalog search and chart recommendation."""

from __future__ import annotations


class CatalogRagError(Exception):
    """Base class for all package errors."""


class CatalogLoadError(CatalogRagError):
    """Raised when a catalog artifact is missing or unreadable."""


class EmbeddingProviderError(CatalogRagError):
    """Raised when the embedding provider fails during build or query."""


class EmbeddingDimensionError(CatalogRagError):
    """Raised when a vector does not match the index dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class NotInitializedError(CatalogRagError):
    """Raised when an index is searched before it was built or loaded."""


class UnknownEntryError(CatalogRagError, KeyError):
    """Raised when a catalog id cannot be resolved."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Catalog entry not found: {entry_id}")
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"Catalog entry not found: {self.entry_id}"
