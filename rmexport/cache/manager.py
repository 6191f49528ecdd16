"""Time-bounded metadata cache with refresh and read-only tree queries.

``CacheManager`` owns the current ``CacheSnapshot``. A refresh assembles a
complete replacement before swapping it in, so readers never observe a
half-built tree and a failed fetch leaves the previous snapshot intact.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from ..metadata_model import (
    CollectionRecord,
    MetadataSource,
    RecordStore,
    resolve_collection_paths,
)
from .store import CacheSnapshot, CacheStore

ALL_DOCUMENTS_ID = "ALL"
ALL_DOCUMENTS_LABEL = "All Documents"
DEFAULT_CACHE_TTL_SECONDS = 1200.0


def _ignore_message(_message: str) -> None:
    pass


class CacheManager:
    """Owns cached records and serves the queries used by the navigator.

    ``fetch`` is the metadata source, ``clock`` returns epoch seconds and
    ``store`` (optional) persists snapshots across runs.
    """

    def __init__(
        self,
        fetch: MetadataSource,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        store: CacheStore | None = None,
        report: Callable[[str], None] = _ignore_message,
    ) -> None:
        self._fetch = fetch
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._store = store
        self._report = report
        self._snapshot: CacheSnapshot | None = store.load() if store is not None else None

    @property
    def snapshot(self) -> CacheSnapshot | None:
        return self._snapshot

    @property
    def has_data(self) -> bool:
        """Return whether any successful refresh (this run or persisted) exists."""
        return self._snapshot is not None

    def is_fresh(self) -> bool:
        """A snapshot stamped in the future (clock moved back) counts as stale."""
        if self._snapshot is None:
            return False
        age = self._clock() - self._snapshot.refreshed_at
        return 0 <= age < self.ttl_seconds

    def refresh(self, force: bool = False) -> bool:
        """Refetch and rebuild the cache unless it is fresh and ``force`` is false.

        Returns whether a fetch happened. ``FetchError`` from the source
        propagates and leaves the current snapshot untouched.
        """
        if not force and self.is_fresh():
            return False

        collections, documents = self._fetch()
        store = RecordStore.build(collections, documents)
        snapshot = CacheSnapshot(
            store=store,
            paths=resolve_collection_paths(store.collections),
            refreshed_at=self._clock(),
        )
        if self._store is not None:
            try:
                self._store.save(snapshot)
            except OSError as exc:
                self._report(f"Could not write cache: {exc}")
        self._snapshot = snapshot
        return True

    def _records(self) -> RecordStore:
        return self._snapshot.store if self._snapshot is not None else RecordStore()

    def _full_path(self, collection_id: str) -> str:
        if self._snapshot is None:
            return ""
        path = self._snapshot.paths.get(collection_id)
        return path.full_path if path is not None else ""

    def collections_sorted_by_path(self) -> list[tuple[str, str]]:
        """Return ``(id, full_path)`` for every collection, case-insensitive by path."""
        rows = [(record.id, self._full_path(record.id) or record.name) for record in self._records().collections]
        rows.sort(key=lambda row: row[1].lower())
        return rows

    def subcollections_of(self, parent_id: str) -> list[tuple[str, str]]:
        """Return ``(id, name)`` of direct children, case-insensitive by name."""
        rows = [(record.id, record.name) for record in self._records().collections if record.parent_id == parent_id]
        rows.sort(key=lambda row: row[1].lower())
        return rows

    def parent_of(self, collection_id: str) -> str:
        record: CollectionRecord | None = self._records().collection(collection_id)
        return record.parent_id if record is not None else ""

    def all_documents(self) -> list[tuple[str, str]]:
        return [(record.id, record.name) for record in self._records().documents]

    def documents_in(self, collection_id: str) -> list[tuple[str, str]]:
        return [(record.id, record.name) for record in self._records().documents if record.parent_id == collection_id]

    def display_name(self, collection_id: str) -> str:
        """Return the label for a collection: fixed for ``ALL``, else path or bare name."""
        if collection_id == ALL_DOCUMENTS_ID:
            return ALL_DOCUMENTS_LABEL
        full_path = self._full_path(collection_id)
        if full_path:
            return full_path
        record = self._records().collection(collection_id)
        return record.name if record is not None else ""


__all__ = [
    "ALL_DOCUMENTS_ID",
    "ALL_DOCUMENTS_LABEL",
    "DEFAULT_CACHE_TTL_SECONDS",
    "CacheManager",
]
