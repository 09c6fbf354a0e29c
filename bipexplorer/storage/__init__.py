"""Document cache and its durable backends."""

from __future__ import annotations

from bipexplorer.storage.base import DocumentBackend, DocumentNotFound, StorageFailure
from bipexplorer.storage.cache_store import CacheStore, create_backend

__all__ = [
    "CacheStore",
    "DocumentBackend",
    "DocumentNotFound",
    "StorageFailure",
    "create_backend",
]
