"""FastAPI server for the Guest Pass email intake service"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guestpass.api.routes.email_guests import router as email_guests_router
from guestpass.api.routes.health import router as health_router
from guestpass.api.routes.intake import router as intake_router
from guestpass.config import (
    API_HOST,
    API_PORT,
    APP_VERSION,
    FRONTEND_URL,
    SERVICE_NAME,
    is_development,
)
from guestpass.infrastructure.database import init_database
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter, log_event
from guestpass.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="Guest Pass API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Sanitized validation errors: field names only, no validation rules."""
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Input validation failed",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


ALLOWED_ORIGINS = [FRONTEND_URL]
if is_development():
    ALLOWED_ORIGINS.extend(["http://localhost:3000", "http://127.0.0.1:5173"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

try:
    logger.info("Initializing database schema...")
    init_database()
except (OSError, sqlite3.Error) as e:
    logger.critical("Database initialization failed: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

app.include_router(health_router)
app.include_router(intake_router)
app.include_router(email_guests_router)

log_event("api.startup", service="guestpass-intake", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "process_email": "/api/process-email",
            "test_email_processing": "/api/test-email-processing",
            "pending": "/api/email-guests/pending/{user_id}",
            "approve": "/api/email-guests/approve/{record_id}",
            "reject": "/api/email-guests/reject/{record_id}",
            "stats": "/api/email-guests/stats/{user_id}",
        },
    }


def main() -> None:
    """Entry point for the guestpass-api command."""
    import uvicorn

    uvicorn.run("guestpass.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
