"""Catalog artifact loading with per-entry validation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from catalog_rag.catalog.models import CatalogEntry, Enhancement
from catalog_rag.catalog.store import CatalogStore
from catalog_rag.errors import CatalogLoadError

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class CatalogLoadResult:
    """Loaded store plus the ids of entries that failed validation."""

    store: CatalogStore
    source: str
    enhanced: bool
    skipped_ids: list[str] = field(default_factory=list)


def read_catalog_document(path: str | Path) -> list[dict[str, Any]]:
    """Read the raw `entries` array of a catalog JSON document."""

    file_path = Path(path)
    try:
        payload: Any = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"Catalog not found: {file_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(f"Catalog unreadable: {file_path}: {exc}") from exc

    if isinstance(payload, dict):
        entries = payload.get("entries")
    elif isinstance(payload, list):
        entries = payload
    else:
        entries = None
    if not isinstance(entries, list):
        raise CatalogLoadError(f"Catalog has no entries array: {file_path}")
    return entries


def parse_entries(
    raw_entries: list[Any], *, with_enhancements: bool = False
) -> tuple[CatalogStore, list[str]]:
    """Validate raw entries into a store, skipping (and reporting) bad ones."""

    store = CatalogStore()
    enhancements: dict[str, Enhancement] = {}
    skipped: list[str] = []

    for index, raw in enumerate(raw_entries):
        entry_id = str(raw.get("id")) if isinstance(raw, dict) and raw.get("id") else f"#{index}"
        try:
            entry = CatalogEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("catalog_entry_skipped", entry_id=entry_id, reason="invalid", errors=exc.error_count())
            skipped.append(entry_id)
            continue
        if entry.id in store:
            logger.warning("catalog_entry_skipped", entry_id=entry_id, reason="duplicate_id")
            skipped.append(entry_id)
            continue
        store.add(entry)

        if with_enhancements and "data_quality" in raw:
            try:
                enhancements[entry.id] = Enhancement.model_validate(raw)
            except ValidationError as exc:
                # The entry stays searchable; its overlay falls back to defaults.
                logger.warning("catalog_enhancement_ignored", entry_id=entry.id, errors=exc.error_count())

    return CatalogStore(store.entries(), enhancements), skipped


def load_catalog(
    catalog_path: str | Path,
    enhanced_catalog_path: str | Path | None = None,
) -> CatalogLoadResult:
    """Load the enhanced catalog when present, otherwise the basic one."""

    if enhanced_catalog_path is not None and Path(enhanced_catalog_path).exists():
        raw_entries = read_catalog_document(enhanced_catalog_path)
        store, skipped = parse_entries(raw_entries, with_enhancements=True)
        source, enhanced = str(enhanced_catalog_path), True
    else:
        raw_entries = read_catalog_document(catalog_path)
        store, skipped = parse_entries(raw_entries)
        source, enhanced = str(catalog_path), False

    logger.info(
        "catalog_loaded",
        source=source,
        enhanced=enhanced,
        entry_count=len(store),
        enhanced_count=store.enhanced_count,
        skipped_count=len(skipped),
    )
    return CatalogLoadResult(store=store, source=source, enhanced=enhanced, skipped_ids=skipped)
