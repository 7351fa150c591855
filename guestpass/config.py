"""Centralized configuration for the Guest Pass backend.

Re-exports everything from guestpass.infrastructure.settings so callers have a
single import point, then adds typed constants for database, intake pipeline,
LLM, Gmail polling, and API settings.  Environment variable overrides use safe
defaults so the app starts without extra env configuration.
"""

from __future__ import annotations

import os

from guestpass.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"
SERVICE_NAME: str = "Guest Pass Email Intake Service"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("GUESTPASS_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("GUESTPASS_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("GUESTPASS_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("GUESTPASS_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("GUESTPASS_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("GUESTPASS_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("GUESTPASS_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("GUESTPASS_DB_RETRY_JITTER", "0.1"))

# --- Intake Pipeline ---
INTAKE_DEFAULT_DAILY_LIMIT: int = 10
INTAKE_BODY_TRUNCATION: int = 20000
INTAKE_DEFAULT_ORGANIZATION: str = "Unknown"
INTAKE_DEFAULT_FLOOR_ACCESS: str = "Floor 1"

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("GUESTPASS_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("GUESTPASS_LLM_MAX_RETRIES", "3"))

# --- Gmail Poller ---
GMAIL_POLL_QUERY: str = "is:unread (guest OR visitor OR visit OR meeting OR appointment OR access)"
GMAIL_POLL_MAX_RESULTS: int = 10
GMAIL_POLL_INTERVAL_SECONDS: float = float(os.getenv("GUESTPASS_POLL_INTERVAL", "30"))
PROCESSED_CACHE_MAX_SIZE: int = 5000
PROCESSED_CACHE_TTL_SECONDS: int = 7 * 24 * 60 * 60

# --- API ---
API_FROM_MAX_CHARS: int = 500
API_SUBJECT_MAX_CHARS: int = 500
API_TEXT_MAX_CHARS: int = 100_000
API_HTML_MAX_CHARS: int = 200_000
