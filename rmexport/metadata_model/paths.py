"""Full-path materialization for collections linked by parent pointers.

The walk is bounded by ``MAX_PATH_DEPTH`` segments so malformed or cyclic
parent graphs still produce a (possibly truncated) path. The collection itself
counts toward the bound, so a path never exceeds ten segments; the shell tool
this replaces followed ten ancestors on top of the collection (eleven segments).
"""

from __future__ import annotations

from collections.abc import Iterable

from .types import CollectionPath, CollectionRecord

MAX_PATH_DEPTH = 10
PATH_SEPARATOR = "/"


def collection_path_segments(
    collection_id: str,
    names: dict[str, str],
    parents: dict[str, str],
    max_depth: int = MAX_PATH_DEPTH,
) -> list[str]:
    """Return root-first path segments for ``collection_id``, self last.

    Ancestors are followed while the parent id is a known collection and the
    segment count stays below ``max_depth``.
    """
    if collection_id not in names:
        return []
    segments = [names[collection_id]]
    current_id = parents.get(collection_id, "")
    depth = 1
    while current_id in names and depth < max_depth:
        segments.append(names[current_id])
        current_id = parents.get(current_id, "")
        depth += 1
    segments.reverse()
    return segments


def resolve_collection_paths(
    collections: Iterable[CollectionRecord],
    max_depth: int = MAX_PATH_DEPTH,
) -> dict[str, CollectionPath]:
    """Compute a ``CollectionPath`` for every collection, keyed by id."""
    records = list(collections)
    names: dict[str, str] = {}
    parents: dict[str, str] = {}
    for record in records:
        if record.id in names:
            continue
        names[record.id] = record.name
        parents[record.id] = record.parent_id

    paths: dict[str, CollectionPath] = {}
    for collection_id in names:
        segments = collection_path_segments(collection_id, names, parents, max_depth)
        paths[collection_id] = CollectionPath(id=collection_id, full_path=PATH_SEPARATOR.join(segments))
    return paths


def last_path_segment(full_path: str) -> str:
    """Return the bare name at the end of a slash-joined path."""
    return full_path.rsplit(PATH_SEPARATOR, 1)[-1]


__all__ = [
    "MAX_PATH_DEPTH",
    "PATH_SEPARATOR",
    "collection_path_segments",
    "resolve_collection_paths",
    "last_path_segment",
]
