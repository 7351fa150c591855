"""Health check endpoints.

- /api/health - service status and Gemini credential presence
- /api/health/db - connection pool usage
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from guestpass.config import APP_VERSION, SERVICE_NAME

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status. Checks credential presence only, no Gemini call."""
    has_api_key = bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"))
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "OK",
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": has_api_key or has_project,
            "google_api_key": has_api_key,
            "google_cloud_project": has_project,
        },
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    from guestpass.infrastructure.database import get_pool_stats

    stats = get_pool_stats()
    degraded = stats["usage_percent"] > 80
    return {
        "status": "degraded" if degraded else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if degraded else None,
    }
