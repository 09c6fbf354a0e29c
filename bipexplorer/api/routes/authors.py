"""Author endpoints, served from the cached snapshot."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from bipexplorer.api.dependencies import get_service
from bipexplorer.services.documents import DocumentService

router = APIRouter(prefix="/api/authors", tags=["authors"])


@router.get("")
async def list_authors(service: DocumentService = Depends(get_service)) -> list[dict[str, Any]]:
    """Authors by number of BIPs, most prolific first."""
    return [author.to_json_dict() for author in service.get_authors()]


@router.get("/{author}/bips")
async def list_author_bips(
    author: str, service: DocumentService = Depends(get_service)
) -> list[dict[str, Any]]:
    """BIPs with an author whose name contains ``author`` (case-insensitive)."""
    return [doc.to_json_dict() for doc in service.get_documents_by_author(author)]
