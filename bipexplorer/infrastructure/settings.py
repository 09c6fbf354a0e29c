"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Environment
ENV = os.getenv("BIPX_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("BIPX_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO"))

# GitHub (upstream BIP repository)
GITHUB_API_BASE = os.getenv("GITHUB_API_BASE", "https://api.github.com/repos/bitcoin/bips")
GITHUB_BLOB_BASE = os.getenv("GITHUB_BLOB_BASE", "https://github.com/bitcoin/bips/blob/master")
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_USER_AGENT = "BIPExplorer/1.0"

# Google Cloud / Gemini (explanations)
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "400"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))

# Firestore (optional persistent backend)
FIRESTORE_PROJECT_ID = os.getenv("FIRESTORE_PROJECT_ID")
FIRESTORE_BIPS_COLLECTION = os.getenv("FIRESTORE_BIPS_COLLECTION", "bips")
FIRESTORE_METADATA_COLLECTION = os.getenv("FIRESTORE_METADATA_COLLECTION", "metadata")

# Local file cache
CACHE_DIR = Path(os.getenv("BIPX_CACHE_DIR", str(PROJECT_ROOT / ".cache")))

# Feature Flags
BACKGROUND_TASKS = os.getenv("BIPX_BACKGROUND_TASKS", "true").lower() == "true"
CATEGORIZER_STRATEGY = os.getenv("CATEGORIZER_STRATEGY", "map").lower()


def llm_credentials_present() -> bool:
    """True when either Gemini backend has credentials (env read fresh)."""
    return bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_CLOUD_PROJECT"))
