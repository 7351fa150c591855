"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os

# Environment
ENV = os.getenv("GUESTPASS_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "3001"))
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Google Cloud / Gemini
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", os.getenv("GEMINI_API_KEY"))
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "2048"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.2"))

# Gmail mailbox poller. GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET, GMAIL_REFRESH_TOKEN and
# GMAIL_ACCESS_TOKEN are read when the Gmail service is built.
GMAIL_TOKEN_URI = os.getenv("GMAIL_TOKEN_URI", "https://oauth2.googleapis.com/token")

# Organization whose members may act on other users' records
SECURITY_ORGANIZATION = "Security"


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
