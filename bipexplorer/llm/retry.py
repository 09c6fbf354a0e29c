"""LLM call with retry on transient Gemini errors.

google.api_core exceptions are converted to builtin exception types so the
tenacity policy can retry on them without importing the SDK at module load.
Anything else propagates on the first attempt; callers decide the fallback.
"""

from __future__ import annotations

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bipexplorer.config import LLM_MAX_RETRIES
from bipexplorer.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from bipexplorer.llm.gemini import get_gemini_model
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def call_llm(prompt: str, counter_prefix: str = "llm") -> str:
    """Send a prompt to the shared Gemini model.

    Args:
        prompt: Full prompt text.
        counter_prefix: Telemetry counter prefix (e.g., "explain").

    Returns:
        The model's response text (may be empty).

    Raises:
        TimeoutError: On deadline exceeded (retryable).
        ConnectionError: On service unavailable or internal error (retryable).
        OSError: On rate limiting (retryable).
        GeminiInitializationError: When no model can be built (not retried).
    """
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model()
    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
        return response.text or ""
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.timeout")
        logger.warning("LLM call timed out: %s", e)
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.service_unavailable")
        logger.warning("LLM service unavailable, will retry: %s", e)
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.rate_limited")
        logger.warning("LLM rate limited (429), will retry: %s", e)
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.internal_error")
        logger.warning("LLM internal error (500), will retry: %s", e)
        raise ConnectionError(f"LLM internal error: {e}") from e
