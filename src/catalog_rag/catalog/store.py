"""In-memory catalog storage with id and domain lookups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from catalog_rag.catalog.enhancement import CatalogView, resolve_view
from catalog_rag.catalog.models import CatalogEntry, Enhancement
from catalog_rag.errors import UnknownEntryError


class CatalogStore:
    """Holds catalog entries loaded once at startup.

    Entries are immutable; the store never changes after construction apart
    from `add`, which loaders call while assembling it.
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry] = (),
        enhancements: dict[str, Enhancement] | None = None,
    ) -> None:
        self._entries: dict[str, CatalogEntry] = {}
        self._enhancements: dict[str, Enhancement] = dict(enhancements or {})
        for entry in entries:
            self.add(entry)

    def add(self, entry: CatalogEntry) -> None:
        if entry.id in self._entries:
            raise ValueError(f"Duplicate catalog entry id: {entry.id}")
        self._entries[entry.id] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def entries(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    def get(self, entry_id: str) -> CatalogEntry | None:
        return self._entries.get(entry_id)

    def require(self, entry_id: str) -> CatalogEntry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise UnknownEntryError(entry_id)
        return entry

    def by_domain(self, domain: str) -> list[CatalogEntry]:
        return [entry for entry in self._entries.values() if entry.domain == domain]

    def domain_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            counts[entry.domain] = counts.get(entry.domain, 0) + 1
        return counts

    @property
    def enhanced_count(self) -> int:
        return sum(1 for entry_id in self._entries if entry_id in self._enhancements)

    def enhancements(self) -> list[Enhancement]:
        return [
            self._enhancements[entry_id]
            for entry_id in self._entries
            if entry_id in self._enhancements
        ]

    def view(self, entry: CatalogEntry) -> CatalogView:
        """Overlay enhancement data, synthesizing defaults on a miss."""
        return resolve_view(entry, self._enhancements.get(entry.id))
