"""FastAPI server for BIP Explorer"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bipexplorer.api.routes.authors import router as authors_router
from bipexplorer.api.routes.bips import router as bips_router
from bipexplorer.api.routes.categories import router as categories_router
from bipexplorer.api.routes.dependencies import router as dependencies_router
from bipexplorer.api.routes.health import router as health_router
from bipexplorer.api.routes.stats import router as stats_router
from bipexplorer.config import APP_VERSION, BACKFILL_INTERVAL_SECONDS, BACKGROUND_TASKS
from bipexplorer.explain.backfill import ExplanationBackfill
from bipexplorer.explain.generator import ExplanationGenerator
from bipexplorer.github.client import GitHubSourceClient, UpstreamUnavailable
from bipexplorer.github.timeline import TimelineService
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter, log_event
from bipexplorer.services.documents import DocumentService
from bipexplorer.services.refresher import CacheRefresher
from bipexplorer.storage.base import StorageFailure
from bipexplorer.storage.cache_store import CacheStore, create_backend

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


def build_service() -> DocumentService:
    """Default wiring: configured backend, real GitHub client."""
    return DocumentService(store=CacheStore(create_backend()), source=GitHubSourceClient())


async def warm_cache(service: DocumentService) -> None:
    """Load or refetch the cache at startup. Never raises: the server and backfill start either way."""
    try:
        documents = await service.ensure_fresh()
        logger.info("Cache warm with %d BIPs", len(documents))
    except (UpstreamUnavailable, StorageFailure) as e:
        logger.error("Error warming cache: %s", e)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Unexpected error warming cache")


def create_app(
    service: DocumentService | None = None,
    timeline: TimelineService | None = None,
    generator: ExplanationGenerator | None = None,
    background_tasks: bool = BACKGROUND_TASKS,
) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Document service; built from config when omitted
        timeline: Commit timeline service; shares the service's GitHub client
        generator: Explanation generator used by the backfill worker
        background_tasks: Start cache warm-up, refresher and backfill loops

    Returns:
        Configured FastAPI app with state ``service``, ``timeline`` and ``backfill``
    """
    service = service or build_service()
    timeline = timeline or TimelineService(service.source)
    backfill = ExplanationBackfill(service.store, generator or ExplanationGenerator())

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        tasks: list[asyncio.Task] = []
        if background_tasks:
            refresher = CacheRefresher(service)

            async def warm_then_backfill() -> None:
                await warm_cache(service)
                await backfill.run_forever(BACKFILL_INTERVAL_SECONDS)

            tasks.append(asyncio.create_task(warm_then_backfill(), name="backfill"))
            tasks.append(asyncio.create_task(refresher.run_forever(), name="refresher"))
            logger.info("Started %d background tasks", len(tasks))

        log_event("api.startup", service="bip-explorer", version=APP_VERSION)
        try:
            yield
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    app = FastAPI(title="BIP Explorer API", version=APP_VERSION, lifespan=lifespan)
    app.state.service = service
    app.state.timeline = timeline
    app.state.backfill = backfill

    # Custom validation error handler to prevent information leakage
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        counter("api.validation_errors")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message": "Invalid request format. Please check your request and try again.",
                "error_count": len(exc.errors()),
                "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
            },
        )

    # Public read-only data
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(health_router)
    app.include_router(bips_router)
    app.include_router(authors_router)
    app.include_router(stats_router)
    app.include_router(categories_router)
    app.include_router(dependencies_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "BIP Explorer API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "bips": "/api/bips",
                "bip": "/api/bips/{number}",
                "timeline": "/api/bips/{number}/timeline",
                "authors": "/api/authors",
                "author_bips": "/api/authors/{author}/bips",
                "stats": "/api/stats",
                "refresh": "/api/refresh",
                "categories": "/api/categories",
                "category_definitions": "/api/categories/definitions",
                "dependencies": "/api/dependencies",
            },
        }

    return app
