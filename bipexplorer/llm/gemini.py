"""
Shared Gemini model used to write plain-language BIP explanations.

Two backends, tried in order:
  1. Vertex AI SDK: needs GOOGLE_CLOUD_PROJECT and service-account credentials
  2. google-generativeai: needs GOOGLE_API_KEY
"""

from __future__ import annotations

import os
from functools import lru_cache

from bipexplorer.infrastructure.settings import (
    GEMINI_LOCATION,
    GEMINI_MODEL,
    GOOGLE_API_KEY,
    GOOGLE_CLOUD_PROJECT,
)
from bipexplorer.observability.logging import get_logger

logger = get_logger(__name__)

# "vertexai" or "genai" once a model has been built
_backend: str | None = None


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def _init_vertexai(project: str, location: str):
    import vertexai
    from vertexai.generative_models import GenerativeModel

    vertexai.init(project=project, location=location)
    return GenerativeModel(GEMINI_MODEL)


def _init_genai(api_key: str):
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    return genai.GenerativeModel(GEMINI_MODEL)


@lru_cache(maxsize=1)
def get_gemini_model():
    """
    Get or create the shared Gemini model.

    Env vars are read fresh because settings may have been imported before
    .env was loaded.

    Returns:
        GenerativeModel from whichever SDK could be initialized

    Raises:
        GeminiInitializationError: If no backend has credentials or an SDK
    """
    global _backend
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION") or GEMINI_LOCATION or "us-central1"
    api_key = os.getenv("GOOGLE_API_KEY") or GOOGLE_API_KEY

    if project:
        try:
            model = _init_vertexai(project, location)
            _backend = "vertexai"
            logger.info(
                "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
                project,
                location,
                GEMINI_MODEL,
            )
            return model
        except ImportError:
            logger.info("Vertex AI SDK not installed, trying google-generativeai fallback")
        except Exception as e:
            if not api_key:
                logger.error("Failed to initialize Vertex AI: %s", e)
                raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e
            logger.warning("Vertex AI init failed (%s), trying google-generativeai", e)

    if not api_key:
        raise GeminiInitializationError(
            "Neither GOOGLE_CLOUD_PROJECT nor GOOGLE_API_KEY is set; explanations use the fallback text."
        )

    try:
        model = _init_genai(api_key)
    except ImportError as e:
        raise GeminiInitializationError(
            "No Gemini SDK available. Install google-cloud-aiplatform or google-generativeai."
        ) from e
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    _backend = "genai"
    logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
    return model


def active_backend() -> str | None:
    return _backend


def clear_model_cache() -> None:
    """
    Clear the cached model instance.

    Useful for testing or when credentials change.
    """
    global _backend
    get_gemini_model.cache_clear()
    _backend = None
    logger.info("Cleared Gemini model cache")
