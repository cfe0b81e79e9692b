"""Catalog search and chart recommendation package."""

from .config import IndexConfig, SearchConfig

__all__ = ["IndexConfig", "SearchConfig"]
