"""Health check endpoint.

Liveness probe plus cache and LLM readiness. Never triggers a refresh.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from bipexplorer.api.dependencies import get_service
from bipexplorer.config import APP_VERSION, ENV
from bipexplorer.observability.telemetry import get_counters, get_latency_stats
from bipexplorer.services.documents import DocumentService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(service: DocumentService = Depends(get_service)) -> dict[str, Any]:
    """Health check endpoint.

    Reports credential presence for Gemini without making an API call.
    """
    has_api_key = bool(os.getenv("GOOGLE_API_KEY"))
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))
    store = service.store

    return {
        "status": "healthy",
        "service": "BIP Explorer API",
        "version": APP_VERSION,
        "environment": ENV,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": {
            "backend": store.backend.name,
            "documents": store.count(),
            "ageMs": store.get_cache_age(),
            "stale": store.is_stale(),
            "missingExplanations": len(store.missing_explanations()),
        },
        "llm": {
            "ready": has_api_key or has_project,
            "google_api_key": has_api_key,
            "google_cloud_project": has_project,
        },
        "counters": get_counters(),
        "latency": {"refresh": get_latency_stats("refresh.latency")},
    }
