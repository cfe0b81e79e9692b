"""Embedding provider abstractions and concrete adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from hashlib import blake2b
from math import sqrt
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from catalog_rag.config import Settings


class Embedder(ABC):
    """Embedding provider boundary used by the embedding index."""

    model_name: str = "unknown"

    @abstractmethod
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed one text."""


class HashingEmbedder(Embedder):
    """Deterministic feature-hashing embedding without external calls.

    Used for tests and offline environments. Texts sharing tokens land close
    together, which is enough to exercise ranking end to end.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension
        self.model_name = f"hashing-{dimension}"

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _bucket(self, token: str) -> tuple[int, float]:
        # 4 bytes pick the slot, the fifth byte's low bit picks the sign.
        digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
        slot = int.from_bytes(digest[:4], "little") % self.dimension
        return slot, (-1.0 if digest[4] & 1 else 1.0)

    def _embed(self, text: str) -> list[float]:
        counts = [0.0] * self.dimension
        for token in text.lower().split():
            slot, sign = self._bucket(token)
            counts[slot] += sign

        length = sqrt(sum(count * count for count in counts))
        return [count / length for count in counts] if length else counts


class LangChainEmbedder(Embedder):
    """Adapts any LangChain `Embeddings` implementation (OpenAI by default)."""

    def __init__(self, embeddings: Embeddings, model_name: str) -> None:
        self._embeddings = embeddings
        self.model_name = model_name

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [list(vector) for vector in self._embeddings.embed_documents(texts)]

    def embed_query(self, text: str) -> list[float]:
        return list(self._embeddings.embed_query(text))


def create_embedder(settings: Settings) -> Embedder | None:
    """Return the configured provider, or None to select keyword search."""

    if settings.EMBEDDING_PROVIDER == "none":
        return None
    if settings.EMBEDDING_PROVIDER == "hashing":
        return HashingEmbedder()
    if not settings.OPENAI_API_KEY:
        return None

    from langchain_openai import OpenAIEmbeddings

    return LangChainEmbedder(
        OpenAIEmbeddings(model=settings.EMBEDDING_MODEL, api_key=settings.OPENAI_API_KEY),
        model_name=settings.EMBEDDING_MODEL,
    )
