"""Domain datatypes for remote collection/document metadata records."""

from __future__ import annotations

from dataclasses import dataclass, field

TRASH_PARENT_ID = "trash"


@dataclass(frozen=True)
class CollectionRecord:
    """One folder-like collection as reported by the metadata source.

    ``parent_id`` is empty for top-level collections.
    """

    id: str
    name: str
    parent_id: str = ""


@dataclass(frozen=True)
class DocumentRecord:
    """One document leaf; ``parent_id`` is empty for unfiled documents."""

    id: str
    name: str
    parent_id: str = ""


@dataclass(frozen=True)
class CollectionPath:
    """Materialized root-to-self path for one collection."""

    id: str
    full_path: str


@dataclass(frozen=True)
class RecordStore:
    """Immutable set of fetched records plus an id index over collections.

    Document order is preserved exactly as fetched.
    """

    collections: tuple[CollectionRecord, ...] = ()
    documents: tuple[DocumentRecord, ...] = ()
    collections_by_id: dict[str, CollectionRecord] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def build(
        cls,
        collections: list[CollectionRecord] | tuple[CollectionRecord, ...],
        documents: list[DocumentRecord] | tuple[DocumentRecord, ...],
    ) -> RecordStore:
        """Create a store, keeping the first record when ids repeat."""
        by_id: dict[str, CollectionRecord] = {}
        unique: list[CollectionRecord] = []
        for record in collections:
            if record.id in by_id:
                continue
            by_id[record.id] = record
            unique.append(record)
        return cls(collections=tuple(unique), documents=tuple(documents), collections_by_id=by_id)

    def collection(self, collection_id: str) -> CollectionRecord | None:
        return self.collections_by_id.get(collection_id)


def is_hidden_record(parent_id: str, deleted: bool) -> bool:
    """Return whether a record is trashed or tombstoned and must stay out of the tree."""
    return deleted or parent_id == TRASH_PARENT_ID


__all__ = [
    "TRASH_PARENT_ID",
    "CollectionRecord",
    "DocumentRecord",
    "CollectionPath",
    "RecordStore",
    "is_hidden_record",
]
