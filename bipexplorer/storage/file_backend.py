"""
JSON-file backend.

Layout inside the cache directory:

- ``bips.json``: list of documents (camelCase JSON)
- ``authors.json``: derived author list, written for external consumers
- ``timestamp.json``: ``{"timestamp": <epoch ms>}``

Every file is written to a temp file in the same directory and renamed over the
target, so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bipexplorer.config import CACHE_DIR
from bipexplorer.documents.models import Author, Document
from bipexplorer.observability.logging import get_logger
from bipexplorer.storage.base import DocumentBackend, StorageFailure

logger = get_logger(__name__)

BIPS_FILE = "bips.json"
AUTHORS_FILE = "authors.json"
TIMESTAMP_FILE = "timestamp.json"


class FileBackend(DocumentBackend):
    name = "file"

    def __init__(self, cache_dir: Path | str = CACHE_DIR) -> None:
        self.cache_dir = Path(cache_dir)

    def _path(self, filename: str) -> Path:
        return self.cache_dir / filename

    def _read_json(self, filename: str) -> Any:
        path = self._path(filename)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageFailure(f"Failed to read {path}: {e}") from e

    def _write_json(self, filename: str, payload: Any) -> None:
        path = self._path(filename)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{filename}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageFailure(f"Failed to write {path}: {e}") from e

    def load_documents(self) -> list[Document]:
        raw = self._read_json(BIPS_FILE)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StorageFailure(f"Unexpected payload in {self._path(BIPS_FILE)}: expected a list")

        documents = []
        for item in raw:
            try:
                documents.append(Document.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping unreadable cached document: %s", e)
        return documents

    def load_timestamp(self) -> int | None:
        raw = self._read_json(TIMESTAMP_FILE)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise StorageFailure(f"Unexpected payload in {self._path(TIMESTAMP_FILE)}")
        if raw.get("timestamp") is None:
            return None
        try:
            return int(raw["timestamp"])
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"Invalid cache timestamp: {raw['timestamp']!r}") from e

    def save_snapshot(
        self, documents: list[Document], authors: list[Author], timestamp: int | None
    ) -> None:
        self._write_json(BIPS_FILE, [d.to_json_dict() for d in documents])
        self._write_json(AUTHORS_FILE, [a.to_json_dict() for a in authors])
        if timestamp is not None:
            self.save_timestamp(timestamp)
        logger.info("Saved %d documents to %s", len(documents), self.cache_dir)

    def save_document(self, document: Document) -> None:
        documents = {d.number: d for d in self.load_documents()}
        documents[document.number] = document
        ordered = [documents[n] for n in sorted(documents)]
        self._write_json(BIPS_FILE, [d.to_json_dict() for d in ordered])

    def save_timestamp(self, timestamp: int) -> None:
        self._write_json(TIMESTAMP_FILE, {"timestamp": timestamp})
