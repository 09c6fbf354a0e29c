"""
In-process document cache backed by a durable DocumentBackend.

One CacheStore is built per process and handed to the service layer. The
snapshot is loaded from the backend on first read and memoized; after that the
backend is only written to. A refresh replaces the whole snapshot, while an
explanation update patches one document.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from bipexplorer.config import CACHE_DIR, CACHE_DURATION_MS, FIRESTORE_PROJECT_ID
from bipexplorer.documents.aggregates import build_authors
from bipexplorer.documents.models import Author, Document
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter
from bipexplorer.storage.base import DocumentBackend, DocumentNotFound, StorageFailure

logger = get_logger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheStore:
    """
    Snapshot of all documents plus the derived author index.

    Args:
        backend: Durable storage for the snapshot
        clock: Returns the current time in epoch ms
        cache_duration_ms: Age after which the snapshot counts as stale
    """

    def __init__(
        self,
        backend: DocumentBackend,
        clock: Clock = system_clock,
        cache_duration_ms: int = CACHE_DURATION_MS,
    ) -> None:
        self.backend = backend
        self.clock = clock
        self.cache_duration_ms = cache_duration_ms
        self._documents: dict[int, Document] = {}
        self._authors: list[Author] = []
        self._timestamp: int | None = None
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            documents = self.backend.load_documents()
            timestamp = self.backend.load_timestamp()
        except StorageFailure as e:
            logger.error("Failed to load cache from %s backend: %s", self.backend.name, e)
            counter("storage.load_failed")
            return

        self._documents = {d.number: d for d in documents}
        self._authors = build_authors(self._documents.values())
        self._timestamp = timestamp
        logger.info(
            "Loaded %d documents from %s backend", len(self._documents), self.backend.name
        )

    # --- Reads ---

    def get_all(self) -> list[Document]:
        self._ensure_loaded()
        return [self._documents[n] for n in sorted(self._documents)]

    def get(self, number: int) -> Document | None:
        self._ensure_loaded()
        return self._documents.get(number)

    def get_by_author(self, name: str) -> list[Document]:
        """Documents with any author containing ``name`` (case-insensitive)."""
        needle = name.lower()
        return [
            doc
            for doc in self.get_all()
            if any(needle in author.lower() for author in doc.authors)
        ]

    def get_authors(self) -> list[Author]:
        self._ensure_loaded()
        return list(self._authors)

    def count(self) -> int:
        self._ensure_loaded()
        return len(self._documents)

    def missing_explanations(self, limit: int | None = None) -> list[Document]:
        """Documents still lacking an explanation, ascending by number."""
        missing = [doc for doc in self.get_all() if not doc.has_explanation()]
        return missing if limit is None else missing[:limit]

    # --- Writes ---

    def replace_all(self, documents: Iterable[Document], timestamp: int | None = None) -> None:
        """
        Swap in a new snapshot after persisting it.

        Raises:
            StorageFailure: If the backend write fails; the served snapshot is
                left untouched
        """
        self._ensure_loaded()

        by_number: dict[int, Document] = {}
        for doc in documents:
            if doc.number in by_number:
                logger.warning("Duplicate BIP %d in snapshot, keeping the later file", doc.number)
            by_number[doc.number] = doc

        ordered = [by_number[n] for n in sorted(by_number)]
        authors = build_authors(ordered)

        self.backend.save_snapshot(ordered, authors, timestamp)

        self._documents = by_number
        self._authors = authors
        if timestamp is not None:
            self._timestamp = timestamp

    def patch(self, document: Document) -> Document:
        """
        Replace one document by number, leaving the rest untouched.

        Raises:
            DocumentNotFound: If no document with that number is cached
            StorageFailure: If the backend write fails
        """
        self._ensure_loaded()
        if document.number not in self._documents:
            raise DocumentNotFound(document.number)

        self.backend.save_document(document)

        previous = self._documents[document.number]
        self._documents[document.number] = document
        if previous.authors != document.authors:
            self._authors = build_authors(self._documents.values())
        return document

    # --- Staleness bookkeeping ---

    def get_cache_timestamp(self) -> int | None:
        self._ensure_loaded()
        return self._timestamp

    def set_cache_timestamp(self, timestamp: int) -> None:
        self._ensure_loaded()
        self.backend.save_timestamp(timestamp)
        self._timestamp = timestamp

    def get_cache_age(self) -> int | None:
        """Milliseconds since the last refresh, or None when never refreshed."""
        timestamp = self.get_cache_timestamp()
        if timestamp is None:
            return None
        return self.clock() - timestamp

    def is_stale(self, margin_ms: int = 0) -> bool:
        """
        True when a refresh is due.

        An empty snapshot is always stale. ``margin_ms`` brings the deadline
        forward so a background refresher can act before readers notice.
        """
        age = self.get_cache_age()
        if age is None or not self._documents:
            return True
        return age >= self.cache_duration_ms - margin_ms


def create_backend() -> DocumentBackend:
    """Firestore when FIRESTORE_PROJECT_ID is set, otherwise JSON files."""
    if FIRESTORE_PROJECT_ID:
        from bipexplorer.storage.firestore_backend import FirestoreBackend

        logger.info("Using Firestore backend (project=%s)", FIRESTORE_PROJECT_ID)
        return FirestoreBackend(project_id=FIRESTORE_PROJECT_ID)

    from bipexplorer.storage.file_backend import FileBackend

    logger.info("Using file backend (%s)", CACHE_DIR)
    return FileBackend(CACHE_DIR)
