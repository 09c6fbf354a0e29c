"""
Plain-language explanations for BIPs.

generate() never raises: every failure on the way to the model (missing
credentials, SDK errors, empty output) ends in a deterministic fallback text
built from the title and the start of the abstract.
"""

from __future__ import annotations

from collections.abc import Callable

from bipexplorer.config import EXPLANATION_ABSTRACT_CHARS, EXPLANATION_PROMPT_ABSTRACT_CHARS
from bipexplorer.infrastructure.settings import llm_credentials_present
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter, time_block

logger = get_logger(__name__)

GENERIC_FALLBACK = (
    "This BIP introduces technical improvements to Bitcoin. "
    "More details can be found in the full specification above."
)

PROMPT_TEMPLATE = """Explain this Bitcoin Improvement Proposal to someone with college-level technical understanding who knows general computer science concepts but isn't familiar with Bitcoin's specific implementation details.

BIP Title: {title}
Abstract: {abstract}

Write a clear, direct explanation that:

1. States the problem this BIP solves in concrete terms
2. Explains the solution using precise technical language (but define Bitcoin-specific terms)
3. Describes why this matters for Bitcoin's functionality and users

Assume the reader understands networking, cryptography basics, and software engineering concepts. No analogies to games or everyday objects. Be direct, factual, and technically accurate. Use proper technical terminology but explain Bitcoin-specific concepts when they first appear. Keep it focused and informative, around 150-180 words."""


class ExplanationFailure(Exception):
    """The model could not produce an explanation. Never escapes generate()."""


def truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0] or text[:limit]
    return f"{cut.rstrip(',;:.')}..."


def fallback_explanation(title: str, abstract: str) -> str:
    """Deterministic explanation used whenever the model is unavailable."""
    title = " ".join(title.split())
    summary = truncate(abstract, EXPLANATION_ABSTRACT_CHARS)
    if title and summary:
        return f"{title}: {summary}"
    if summary:
        return summary
    if title:
        return f"{title}. {GENERIC_FALLBACK}"
    return GENERIC_FALLBACK


def build_prompt(title: str, abstract: str, content: str) -> str:
    # Older BIPs have no abstract section; the opening of the body stands in
    source = abstract.strip() or content.strip()
    return PROMPT_TEMPLATE.format(
        title=title.strip() or "Untitled",
        abstract=truncate(source, EXPLANATION_PROMPT_ABSTRACT_CHARS) or "(none)",
    )


def _default_llm_call(prompt: str) -> str:
    from bipexplorer.llm.retry import call_llm

    return call_llm(prompt, counter_prefix="explain")


class ExplanationGenerator:
    """
    Wraps the LLM call with the fallback policy.

    Args:
        llm_call: prompt -> text; defaults to the shared Gemini call with retry
        credentials_present: Gate checked before every call
    """

    def __init__(
        self,
        llm_call: Callable[[str], str] | None = None,
        credentials_present: Callable[[], bool] = llm_credentials_present,
    ) -> None:
        self._llm_call = llm_call or _default_llm_call
        self._credentials_present = credentials_present

    def _call_model(self, title: str, abstract: str, content: str) -> str:
        if not self._credentials_present():
            raise ExplanationFailure("No LLM credentials configured")
        try:
            with time_block("explain.llm_call"):
                text = self._llm_call(build_prompt(title, abstract, content))
        except Exception as e:
            raise ExplanationFailure(str(e)) from e

        text = (text or "").strip()
        if not text:
            raise ExplanationFailure("Model returned an empty explanation")
        return text

    def generate(self, title: str, abstract: str, content: str) -> str:
        """
        Explanation text for one document.

        Side Effects:
            - Increments ``explain.generated`` or ``explain.fallback``
        """
        try:
            text = self._call_model(title, abstract, content)
        except ExplanationFailure as e:
            logger.info("Using fallback explanation for %r: %s", title, e)
            counter("explain.fallback")
            return fallback_explanation(title, abstract)

        counter("explain.generated")
        return text
