"""Centralized configuration for the BIP Explorer backend.

Re-exports everything from bipexplorer.infrastructure.settings, then adds typed
constants for the cache, refresh pipeline, LLM and background workers.
Environment variable overrides use safe defaults so the app starts without
extra env configuration.
"""

from __future__ import annotations

import os

from bipexplorer.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Cache ---
CACHE_DURATION_MS: int = int(os.getenv("BIPX_CACHE_DURATION_MS", str(15 * 60 * 1000)))
CACHE_REFRESH_MARGIN_MS: int = 60 * 1000

# --- Upstream fetch ---
GITHUB_TIMEOUT_SECONDS: float = float(os.getenv("GITHUB_TIMEOUT_SECONDS", "30"))
FETCH_BATCH_SIZE: int = 5
FETCH_BATCH_DELAY_SECONDS: float = 0.1
DOCUMENT_EXTENSIONS: tuple[str, ...] = (".mediawiki", ".md")
DOCUMENT_PREFIX: str = "bip-"

# --- Timeline ---
TIMELINE_CACHE_TTL_SECONDS: int = int(os.getenv("TIMELINE_CACHE_TTL_SECONDS", "1800"))
TIMELINE_CACHE_MAX_ENTRIES: int = 500
TIMELINE_DETAILED_COMMITS: int = 10
TIMELINE_MAJOR_REVISION_LINES: int = 100

# --- LLM ---
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "3"))
EXPLANATION_ABSTRACT_CHARS: int = 280
EXPLANATION_PROMPT_ABSTRACT_CHARS: int = 4000

# --- Background workers ---
REFRESH_INTERVAL_SECONDS: float = float(os.getenv("BIPX_REFRESH_INTERVAL_SECONDS", "840"))
REFRESH_INITIAL_DELAY_SECONDS: float = float(
    os.getenv("BIPX_REFRESH_INITIAL_DELAY_SECONDS", "60")
)
BACKFILL_BATCH_SIZE: int = int(os.getenv("BIPX_BACKFILL_BATCH_SIZE", "5"))
BACKFILL_DELAY_SECONDS: float = float(os.getenv("BIPX_BACKFILL_DELAY_SECONDS", "2"))
BACKFILL_INTERVAL_SECONDS: float = float(os.getenv("BIPX_BACKFILL_INTERVAL_SECONDS", "300"))

# --- Firestore ---
FIRESTORE_BATCH_LIMIT: int = 500
