"""Domain model for remote collection/document metadata.

This package contains non-UI primitives:
- collection/document record datatypes and the immutable record store
- bounded, cycle-tolerant full-path resolution for collections
- the ssh-backed metadata source that produces records
"""

from __future__ import annotations

from .types import (
    TRASH_PARENT_ID,
    CollectionPath,
    CollectionRecord,
    DocumentRecord,
    RecordStore,
    is_hidden_record,
)
from .paths import (
    MAX_PATH_DEPTH,
    PATH_SEPARATOR,
    collection_path_segments,
    last_path_segment,
    resolve_collection_paths,
)
from .source import (
    DEFAULT_REMOTE_DIR,
    FetchError,
    FetchResult,
    MetadataSource,
    SshMetadataSource,
    parse_metadata_listing,
    remote_listing_script,
)

__all__ = [
    "TRASH_PARENT_ID",
    "CollectionPath",
    "CollectionRecord",
    "DocumentRecord",
    "RecordStore",
    "is_hidden_record",
    "MAX_PATH_DEPTH",
    "PATH_SEPARATOR",
    "collection_path_segments",
    "last_path_segment",
    "resolve_collection_paths",
    "DEFAULT_REMOTE_DIR",
    "FetchError",
    "FetchResult",
    "MetadataSource",
    "SshMetadataSource",
    "parse_metadata_listing",
    "remote_listing_script",
]
