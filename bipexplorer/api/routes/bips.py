"""
BIP endpoints.

- GET /api/bips: all documents, refreshing a stale cache first
- GET /api/bips/{number}: one document
- GET /api/bips/{number}/timeline: commit history of the document's file
- POST /api/refresh: refetch everything now
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bipexplorer.api.dependencies import (
    error_response,
    get_service,
    get_timeline_service,
    not_found,
    parse_number,
)
from bipexplorer.documents.models import RefreshResult
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.github.timeline import TimelineService
from bipexplorer.observability.logging import get_logger
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.base import StorageFailure

router = APIRouter(prefix="/api", tags=["bips"])
logger = get_logger(__name__)


def _invalid_number() -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": "Invalid BIP number"})


@router.get("/bips", response_model=None)
async def list_bips(
    service: DocumentService = Depends(get_service),
) -> list[dict[str, Any]] | JSONResponse:
    try:
        documents = await service.ensure_fresh()
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error fetching BIPs: %s", e)
        return error_response("Failed to fetch BIPs from GitHub API", e)
    return [doc.to_json_dict() for doc in documents]


@router.get("/bips/{number}", response_model=None)
async def get_bip(
    number: str,
    service: DocumentService = Depends(get_service),
) -> dict[str, Any] | JSONResponse:
    parsed = parse_number(number)
    if parsed is None:
        return _invalid_number()

    doc = service.get_document(parsed)
    if doc is None:
        return not_found("BIP not found")
    return doc.to_json_dict()


@router.get("/bips/{number}/timeline", response_model=None)
async def get_bip_timeline(
    number: str,
    service: DocumentService = Depends(get_service),
    timeline: TimelineService = Depends(get_timeline_service),
) -> dict[str, Any] | JSONResponse:
    parsed = parse_number(number)
    if parsed is None:
        return _invalid_number()

    doc = service.get_document(parsed)
    if doc is None:
        return not_found("BIP not found")

    result = await timeline.get_timeline(parsed, doc.source_filename)
    return result.to_json_dict()


@router.post("/refresh", response_model=None)
async def force_refresh(
    service: DocumentService = Depends(get_service),
) -> dict[str, Any] | JSONResponse:
    """Refetch from GitHub without waiting for explanation backfill."""
    logger.info("Forcing fresh data fetch from GitHub...")
    try:
        documents = await service.refresh()
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error forcing refresh: %s", e)
        return error_response("Failed to refresh data", e)

    result = RefreshResult(
        message="Data refreshed successfully",
        count=len(documents),
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
    return result.to_json_dict()
