"""Email intake endpoints.

- POST /api/process-email: webhook entry point for inbound email providers
- POST /api/test-email-processing: run the pipeline on hand-written content
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from guestpass.config import (
    API_FROM_MAX_CHARS,
    API_HTML_MAX_CHARS,
    API_SUBJECT_MAX_CHARS,
    API_TEXT_MAX_CHARS,
)
from guestpass.intake.processor import EmailIntakeProcessor, build_default_processor
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter
from guestpass.utils.redaction import redact

router = APIRouter(prefix="/api", tags=["intake"])
logger = get_logger(__name__)

MISSING_FIELDS = "Missing required fields: from, and email content"


# ============================================================================
# Request Models
# ============================================================================


class ProcessEmailRequest(BaseModel):
    """Inbound email as posted by a mail provider webhook."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str | None = Field(default=None, alias="from", max_length=API_FROM_MAX_CHARS)
    subject: str | None = Field(default=None, max_length=API_SUBJECT_MAX_CHARS)
    text: str | None = Field(default=None, max_length=API_TEXT_MAX_CHARS)
    html: str | None = Field(default=None, max_length=API_HTML_MAX_CHARS)

    @field_validator("from_")
    @classmethod
    def no_braces_in_sender(cls, v: str | None) -> str | None:
        if v is not None and ("{" in v or "}" in v):
            raise ValueError("from contains invalid characters")
        return v

    @property
    def content(self) -> str:
        return self.text or self.html or ""


class SampleEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender_email: str | None = Field(
        default=None, alias="senderEmail", max_length=API_FROM_MAX_CHARS
    )
    subject: str | None = Field(default=None, max_length=API_SUBJECT_MAX_CHARS)
    content: str | None = Field(default=None, max_length=API_TEXT_MAX_CHARS)


# ============================================================================
# Dependencies
# ============================================================================


@lru_cache(maxsize=1)
def get_processor() -> EmailIntakeProcessor:
    """Process-wide processor wired to SQLite and Gemini (override in tests)."""
    return build_default_processor()


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/process-email")
def process_email(
    request: ProcessEmailRequest,
    processor: EmailIntakeProcessor = Depends(get_processor),
) -> JSONResponse:
    """
    Run one inbound email through the intake pipeline.

    Returns the pipeline result {success, message, data, errors}: 200 when at
    least one guest was created, 400 otherwise.
    """
    if not request.from_ or not request.content:
        raise HTTPException(status_code=400, detail=MISSING_FIELDS)

    counter("api.process_email.requests")
    result = processor.process(request.from_, request.subject or "", request.content)

    if result.success:
        logger.info("Email from %s processed: %s", redact(request.from_), result.message)
        return JSONResponse(status_code=200, content=result.to_dict())

    logger.info("Email from %s not processed: %s", redact(request.from_), result.message)
    return JSONResponse(status_code=400, content=result.to_dict())


@router.post("/test-email-processing")
def process_sample_email(
    request: SampleEmailRequest,
    processor: EmailIntakeProcessor = Depends(get_processor),
) -> dict[str, Any]:
    """Run the pipeline and always return the full result for inspection."""
    if not request.sender_email or not request.content:
        raise HTTPException(
            status_code=400, detail="Missing required fields: senderEmail, content"
        )

    result = processor.process(
        request.sender_email, request.subject or "Test Email", request.content
    )
    return {"success": True, "result": result.to_dict()}
