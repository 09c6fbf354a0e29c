"""Aggregate statistics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bipexplorer.api.dependencies import error_response, get_service
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.observability.logging import get_logger
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.base import StorageFailure

router = APIRouter(prefix="/api", tags=["stats"])
logger = get_logger(__name__)


@router.get("/stats", response_model=None)
async def get_stats(
    service: DocumentService = Depends(get_service),
) -> dict[str, Any] | JSONResponse:
    try:
        stats = await service.get_stats()
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error fetching stats: %s", e)
        return error_response("Failed to fetch statistics", e)
    return stats.to_json_dict()
