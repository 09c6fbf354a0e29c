"""Category endpoints: usage over the current set and static definitions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bipexplorer.api.dependencies import error_response, get_service
from bipexplorer.documents.categories import CATEGORY_DEFINITIONS
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.observability.logging import get_logger
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.base import StorageFailure

router = APIRouter(prefix="/api/categories", tags=["categories"])
logger = get_logger(__name__)


@router.get("", response_model=None)
async def list_categories(
    service: DocumentService = Depends(get_service),
) -> list[dict[str, Any]] | JSONResponse:
    """Tags with their BIPs, most used first."""
    try:
        summaries = await service.get_categories()
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error fetching categories: %s", e)
        return error_response("Failed to fetch categories", e)
    return [summary.to_json_dict() for summary in summaries]


@router.get("/definitions")
async def list_category_definitions() -> list[dict[str, str]]:
    return [definition.to_dict() for definition in CATEGORY_DEFINITIONS.values()]
