"""Reference graph between BIPs, computed on demand from the current set."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bipexplorer.api.dependencies import error_response, get_service
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.observability.logging import get_logger
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.base import StorageFailure

router = APIRouter(prefix="/api", tags=["dependencies"])
logger = get_logger(__name__)


@router.get("/dependencies", response_model=None)
async def get_dependencies(
    service: DocumentService = Depends(get_service),
) -> dict[str, Any] | JSONResponse:
    try:
        graph = await service.get_dependency_graph()
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error building dependency graph: %s", e)
        return error_response("Failed to build dependency graph", e)
    return graph.to_json_dict()
