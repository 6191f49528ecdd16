"""On-disk persistence for metadata cache snapshots.

A snapshot is stored as one JSON document holding the collections table, the
documents table, the computed id->path table and the refresh timestamp.
Writes are atomic; unreadable or malformed files load as "no cache".
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from ..metadata_model import CollectionPath, CollectionRecord, DocumentRecord, RecordStore

CACHE_FILENAME = "cache.json"


@dataclass(frozen=True)
class CacheSnapshot:
    """Fully assembled cache state: records, derived paths, refresh time."""

    store: RecordStore
    paths: dict[str, CollectionPath] = field(default_factory=dict)
    refreshed_at: float = 0.0


def _encode_snapshot(snapshot: CacheSnapshot) -> dict[str, object]:
    return {
        "collections": [[record.id, record.name, record.parent_id] for record in snapshot.store.collections],
        "documents": [[record.id, record.name, record.parent_id] for record in snapshot.store.documents],
        "paths": {collection_id: path.full_path for collection_id, path in snapshot.paths.items()},
        "refreshed_at": snapshot.refreshed_at,
    }


def _decode_triples(value: object) -> list[tuple[str, str, str]] | None:
    """Return ``[(id, name, parent_id), ...]`` or ``None`` on any shape mismatch."""
    if not isinstance(value, list):
        return None
    rows: list[tuple[str, str, str]] = []
    for row in value:
        if not isinstance(row, list) or len(row) != 3 or not all(isinstance(item, str) for item in row):
            return None
        rows.append((row[0], row[1], row[2]))
    return rows


def _decode_snapshot(data: object) -> CacheSnapshot | None:
    if not isinstance(data, dict):
        return None
    collections = _decode_triples(data.get("collections"))
    documents = _decode_triples(data.get("documents"))
    raw_paths = data.get("paths")
    refreshed_at = data.get("refreshed_at")
    if collections is None or documents is None or not isinstance(raw_paths, dict):
        return None
    if isinstance(refreshed_at, bool) or not isinstance(refreshed_at, (int, float)):
        return None

    paths: dict[str, CollectionPath] = {}
    for collection_id, full_path in raw_paths.items():
        if isinstance(collection_id, str) and isinstance(full_path, str):
            paths[collection_id] = CollectionPath(id=collection_id, full_path=full_path)

    store = RecordStore.build(
        [CollectionRecord(id=cid, name=name, parent_id=parent) for cid, name, parent in collections],
        [DocumentRecord(id=did, name=name, parent_id=parent) for did, name, parent in documents],
    )
    return CacheSnapshot(store=store, paths=paths, refreshed_at=float(refreshed_at))


class CacheStore:
    """Read/write cache snapshots inside one cache directory."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir
        self.path = cache_dir / CACHE_FILENAME

    def load(self) -> CacheSnapshot | None:
        """Load the persisted snapshot, or ``None`` when missing or malformed."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return _decode_snapshot(data)

    def save(self, snapshot: CacheSnapshot) -> None:
        """Atomically replace the persisted snapshot.

        Raises ``OSError`` when the cache directory cannot be written; the
        previous file is left untouched in that case.
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(_encode_snapshot(snapshot), ensure_ascii=False) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=".cache-", suffix=".tmp", dir=self.cache_dir)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise


__all__ = [
    "CACHE_FILENAME",
    "CacheSnapshot",
    "CacheStore",
]
