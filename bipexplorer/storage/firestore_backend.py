"""
Firestore backend.

Documents live in the ``bips`` collection under ids ``bip-<n>``; the refresh
timestamp and the derived author list live in the metadata collection
(``cache-info`` and ``authors``). Snapshot writes are split into batches that
stay within Firestore's per-batch operation limit, and documents missing from
the new snapshot are deleted.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

from google.api_core import exceptions
from google.cloud import firestore
from pydantic import ValidationError

from bipexplorer.config import (
    FIRESTORE_BATCH_LIMIT,
    FIRESTORE_BIPS_COLLECTION,
    FIRESTORE_METADATA_COLLECTION,
    FIRESTORE_PROJECT_ID,
)
from bipexplorer.documents.models import Author, Document
from bipexplorer.observability.logging import get_logger
from bipexplorer.storage.base import DocumentBackend, StorageFailure

logger = get_logger(__name__)

CACHE_INFO_DOC = "cache-info"
AUTHORS_DOC = "authors"


def document_id(number: int) -> str:
    return f"bip-{number}"


def _chunks(items: list[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class FirestoreBackend(DocumentBackend):
    name = "firestore"

    def __init__(
        self,
        project_id: str | None = FIRESTORE_PROJECT_ID,
        bips_collection: str = FIRESTORE_BIPS_COLLECTION,
        metadata_collection: str = FIRESTORE_METADATA_COLLECTION,
        batch_limit: int = FIRESTORE_BATCH_LIMIT,
        client: Any | None = None,
    ) -> None:
        self.project_id = project_id
        self.bips_collection = bips_collection
        self.metadata_collection = metadata_collection
        self.batch_limit = batch_limit
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy-load Firestore client"""
        if self._client is None:
            try:
                self._client = firestore.Client(project=self.project_id)
            except Exception as e:
                logger.error("Failed to initialize Firestore client: %s", e)
                raise StorageFailure(f"Firestore unavailable: {e}") from e
        return self._client

    def _bips(self):
        return self.client.collection(self.bips_collection)

    def _metadata(self):
        return self.client.collection(self.metadata_collection)

    def load_documents(self) -> list[Document]:
        try:
            snapshots = list(self._bips().stream())
        except exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Failed to read {self.bips_collection}: {e}") from e

        documents = []
        for snap in snapshots:
            try:
                documents.append(Document.model_validate(snap.to_dict()))
            except ValidationError as e:
                logger.warning("Skipping unreadable Firestore document %s: %s", snap.id, e)
        documents.sort(key=lambda d: d.number)
        return documents

    def load_timestamp(self) -> int | None:
        try:
            snap = self._metadata().document(CACHE_INFO_DOC).get()
        except exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Failed to read cache info: {e}") from e
        if not snap.exists:
            return None
        timestamp = (snap.to_dict() or {}).get("timestamp")
        if timestamp is None:
            return None
        try:
            return int(timestamp)
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"Invalid cache timestamp: {timestamp!r}") from e

    def save_snapshot(
        self, documents: list[Document], authors: list[Author], timestamp: int | None
    ) -> None:
        """
        Write the full set in batches, then delete documents no longer present.

        Side Effects:
            - Writes and deletes documents in the bips collection
            - Overwrites the authors and cache-info metadata documents
        """
        bips = self._bips()
        keep = {document_id(d.number) for d in documents}

        try:
            stale = [snap.reference for snap in bips.stream() if snap.id not in keep]

            operations: list[tuple[str, Any, dict[str, Any] | None]] = [
                ("set", bips.document(document_id(d.number)), d.to_json_dict()) for d in documents
            ]
            operations.extend(("delete", ref, None) for ref in stale)

            for chunk in _chunks(operations, self.batch_limit):
                batch = self.client.batch()
                for op, ref, payload in chunk:
                    if op == "set":
                        batch.set(ref, payload)
                    else:
                        batch.delete(ref)
                batch.commit()

            self._metadata().document(AUTHORS_DOC).set(
                {"authors": [a.to_json_dict() for a in authors]}
            )
        except exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Failed to write snapshot to Firestore: {e}") from e

        if timestamp is not None:
            self.save_timestamp(timestamp)
        logger.info(
            "Saved %d documents to Firestore (%d removed)", len(documents), len(stale)
        )

    def save_document(self, document: Document) -> None:
        try:
            self._bips().document(document_id(document.number)).set(document.to_json_dict())
        except exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Failed to write BIP {document.number}: {e}") from e

    def save_timestamp(self, timestamp: int) -> None:
        try:
            self._metadata().document(CACHE_INFO_DOC).set(
                {
                    "timestamp": timestamp,
                    "lastUpdated": datetime.now(timezone.utc).isoformat(),
                }
            )
        except exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Failed to write cache timestamp: {e}") from e
