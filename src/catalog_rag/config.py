"""Configuration models for catalog search and chart recommendation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexConfig(BaseModel):
    """Configures embedding index construction."""

    embedding_model: str = "text-embedding-3-small"
    batch_size: int = Field(default=10, ge=1)
    batch_delay_seconds: float = Field(default=0.1, ge=0.0)
    max_results: int = Field(default=20, ge=1)


class SearchConfig(BaseModel):
    """Configures orchestrator-level filtering and over-fetching."""

    default_top_k: int = Field(default=5, ge=1)
    quality_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    overfetch_factor: int = Field(default=2, ge=1)
    max_results: int = Field(default=20, ge=1)


class Settings(BaseSettings):
    """Process settings read from the environment or a `.env` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    OPENAI_API_KEY: str | None = None
    EMBEDDING_PROVIDER: Literal["openai", "hashing", "none"] = "openai"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_BATCH_SIZE: int = 10
    EMBEDDING_BATCH_DELAY_SECONDS: float = 0.1
    MAX_RESULTS: int = 20

    CATALOG_PATH: str = "data/api-catalog.json"
    ENHANCED_CATALOG_PATH: str = "data/api-catalog-enhanced.json"
    INDEX_PATH: str = "data/vector-store.json"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    def index_config(self, embedding_model: str | None = None) -> IndexConfig:
        return IndexConfig(
            embedding_model=embedding_model or self.EMBEDDING_MODEL,
            batch_size=self.EMBEDDING_BATCH_SIZE,
            batch_delay_seconds=self.EMBEDDING_BATCH_DELAY_SECONDS,
            max_results=self.MAX_RESULTS,
        )

    def search_config(self) -> SearchConfig:
        return SearchConfig(max_results=self.MAX_RESULTS)


@lru_cache
def get_settings() -> Settings:
    return Settings()
