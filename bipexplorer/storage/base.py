"""
Storage backend contract for the document cache.

Backends persist a snapshot (documents, authors, timestamp) and single-document
patches. They are synchronous; calls are short and made from the event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from bipexplorer.documents.models import Author, Document


class StorageFailure(Exception):
    """A backend read or write could not be completed."""


class DocumentNotFound(KeyError):
    """No document with the requested number exists in the cache."""


class DocumentBackend(ABC):
    """Durable home for the cached document set."""

    name: str = "backend"

    @abstractmethod
    def load_documents(self) -> list[Document]:
        """Return all persisted documents (empty when nothing is stored)."""

    @abstractmethod
    def load_timestamp(self) -> int | None:
        """Epoch ms of the last successful refresh, or None."""

    @abstractmethod
    def save_snapshot(
        self, documents: list[Document], authors: list[Author], timestamp: int | None
    ) -> None:
        """Replace the whole persisted set. Raises StorageFailure."""

    @abstractmethod
    def save_document(self, document: Document) -> None:
        """Persist one document in place. Raises StorageFailure."""

    @abstractmethod
    def save_timestamp(self, timestamp: int) -> None:
        """Persist the refresh timestamp. Raises StorageFailure."""
