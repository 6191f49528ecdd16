"""Metadata cache: persisted snapshots plus the time-bounded cache manager."""

from __future__ import annotations

from .store import CACHE_FILENAME, CacheSnapshot, CacheStore
from .manager import ALL_DOCUMENTS_ID, ALL_DOCUMENTS_LABEL, DEFAULT_CACHE_TTL_SECONDS, CacheManager

__all__ = [
    "CACHE_FILENAME",
    "CacheSnapshot",
    "CacheStore",
    "ALL_DOCUMENTS_ID",
    "ALL_DOCUMENTS_LABEL",
    "DEFAULT_CACHE_TTL_SECONDS",
    "CacheManager",
]
