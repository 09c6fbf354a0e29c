"""Request-scoped accessors for the objects wired up in create_app()."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from bipexplorer.github.timeline import TimelineService
from bipexplorer.observability.logging import get_logger
from bipexplorer.services.documents import DocumentService

logger = get_logger(__name__)


def get_service(request: Request) -> DocumentService:
    return request.app.state.service


def get_timeline_service(request: Request) -> TimelineService:
    return request.app.state.timeline


def error_response(message: str, exc: Exception | None = None, status_code: int = 500) -> JSONResponse:
    """``{message, error}`` body used for upstream and storage failures."""
    content = {"message": message}
    if exc is not None:
        content["error"] = str(exc) or exc.__class__.__name__
    return JSONResponse(status_code=status_code, content=content)


def not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": message})


def parse_number(raw: str) -> int | None:
    """BIP number from a path segment, or None when it is not an integer."""
    try:
        return int(raw.strip())
    except ValueError:
        return None
