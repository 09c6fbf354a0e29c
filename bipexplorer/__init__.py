"""BIP Explorer - browse Bitcoin Improvement Proposals fetched from GitHub"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for the document model
def __getattr__(name: str):
    """
    Lazy imports to avoid loading FastAPI and the Gemini SDK when only the
    parser or categorizer is needed.
    """
    if name in ("Document", "BipStatus", "BipType"):
        from bipexplorer.documents import models

        if name == "Document":
            return models.Document
        if name == "BipStatus":
            return models.BipStatus
        if name == "BipType":
            return models.BipType

    if name == "parse_document":
        from bipexplorer.documents.parser import parse_document

        return parse_document

    if name == "categorize":
        from bipexplorer.documents.categories import categorize

        return categorize

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "BipStatus",
    "BipType",
    "Document",
    "categorize",
    "parse_document",
]
