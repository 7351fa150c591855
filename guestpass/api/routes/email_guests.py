"""
Review endpoints for email-processed guests.

Pending audit records can be listed, approved into a guest record, or
rejected. A user may only act on their own records unless they belong to the
Security organization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from guestpass.api.middleware.user_auth import AuthenticatedUser, get_current_user
from guestpass.intake.service import EmailGuestService, ReviewOutcome
from guestpass.observability.logging import get_logger

router = APIRouter(prefix="/api/email-guests", tags=["email-guests"])
logger = get_logger(__name__)

ACCESS_DENIED = "Forbidden: Access denied to this user data"


# ============================================================================
# Request Models
# ============================================================================


class ApproveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guest_data: dict[str, Any] = Field(..., alias="guestData")
    user_id: str = Field(..., alias="userId", min_length=1)


class RejectRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    reason: str | None = Field(default=None, max_length=500)


@lru_cache(maxsize=1)
def get_review_service() -> EmailGuestService:
    return EmailGuestService()


def _require_access(user: AuthenticatedUser, user_id: str) -> None:
    if not user.can_access(user_id):
        logger.warning("%s denied access to records of %s", user, user_id)
        raise HTTPException(status_code=403, detail=ACCESS_DENIED)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/pending/{user_id}")
def list_pending(
    user_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: EmailGuestService = Depends(get_review_service),
) -> dict[str, Any]:
    """Pending records for user_id, newest first."""
    _require_access(user, user_id)

    try:
        records = service.list_pending(user_id)
    except Exception as e:
        logger.error("Failed to fetch pending email guests: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch pending guests") from None

    return {
        "success": True,
        "pending_guests": [record.to_api_dict() for record in records],
        "count": len(records),
    }


@router.post("/approve/{record_id}")
def approve(
    record_id: str,
    request: ApproveRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: EmailGuestService = Depends(get_review_service),
) -> dict[str, Any]:
    _require_access(user, request.user_id)

    try:
        result = service.approve(record_id, request.user_id, request.guest_data)
    except ValidationError as e:
        invalid = ", ".join(str(err["loc"][-1]) for err in e.errors() if err["loc"])
        raise HTTPException(status_code=400, detail=f"Invalid guest data: {invalid}") from None
    except Exception as e:
        logger.error("Failed to approve email record %s: %s", record_id, e)
        raise HTTPException(status_code=500, detail="Failed to approve guest") from None

    if result.outcome == ReviewOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Email record not found")
    if result.outcome == ReviewOutcome.ALREADY_PROCESSED:
        raise HTTPException(status_code=400, detail="Record already processed")

    return {
        "success": True,
        "message": "Guest approved and created successfully",
        "guest": result.guest.model_dump(mode="json") if result.guest else None,
    }


@router.post("/reject/{record_id}")
def reject(
    record_id: str,
    request: RejectRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: EmailGuestService = Depends(get_review_service),
) -> dict[str, Any]:
    _require_access(user, request.user_id)

    try:
        result = service.reject(record_id, request.user_id, request.reason)
    except Exception as e:
        logger.error("Failed to reject email record %s: %s", record_id, e)
        raise HTTPException(status_code=500, detail="Failed to reject guest") from None

    if result.outcome == ReviewOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Email record not found")

    return {"success": True, "message": "Guest request rejected"}


@router.get("/stats/{user_id}")
def stats(
    user_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: EmailGuestService = Depends(get_review_service),
) -> dict[str, Any]:
    _require_access(user, user_id)

    try:
        return {"success": True, "stats": service.stats(user_id)}
    except Exception as e:
        logger.error("Failed to fetch email processing stats: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch stats") from None
