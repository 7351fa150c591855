"""
Module: types
Purpose: Shared result types and collaborator ports for the intake pipeline.
Dependencies: guestpass.intake.models (type-checking only)

Every stage returns one of these values instead of raising across its
boundary; the orchestrator turns them into a single ProcessingResult.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol

if TYPE_CHECKING:
    from guestpass.intake.models import (
        EmailAuditRecord,
        GuestCreate,
        GuestRecord,
        UserProfile,
    )


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


@dataclass
class ExtractedGuest:
    """A validated guest entry. visit_date is ISO 8601, estimated_arrival is HH:MM."""

    name: str
    visit_date: str
    estimated_arrival: str
    organization: str = "Unknown"
    floor_access: str = "Floor 1"
    purpose: str = ""
    notes: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class ExtractionResult:
    guests: list[ExtractedGuest] = field(default_factory=list)
    confidence_score: float = 0.0
    processing_notes: str = ""
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> ExtractionResult:
        """Empty result for a model call or parse failure."""
        return cls(
            guests=[],
            confidence_score=0.0,
            processing_notes=f"Error processing email: {message}",
            errors=[message],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "guests": [guest.to_dict() for guest in self.guests],
            "confidence_score": self.confidence_score,
            "processing_notes": self.processing_notes,
            "errors": list(self.errors),
        }


# ---------------------------------------------------------------------------
# Authorization / quota
# ---------------------------------------------------------------------------


@dataclass
class AuthorizationResult:
    valid: bool
    user: UserProfile | None = None
    error: str | None = None

    @classmethod
    def allowed(cls, user: UserProfile) -> AuthorizationResult:
        return cls(valid=True, user=user)

    @classmethod
    def denied(cls, error: str) -> AuthorizationResult:
        return cls(valid=False, error=error)


class QuotaStatus(NamedTuple):
    """Result of a daily quota check."""

    can_process: bool
    current_count: int
    daily_limit: int
    remaining: int
    error: str | None = None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class IntakeStage(str, Enum):
    """Last stage the orchestrator entered for an email."""

    RECEIVED = "received"
    AUTHORIZING = "authorizing"
    QUOTA_CHECKING = "quota_checking"
    EXTRACTING = "extracting"
    CREATING_GUESTS = "creating_guests"
    AUDITING = "auditing"
    DONE = "done"


@dataclass
class ProcessingResult:
    """
    Terminal result for one email.

    to_dict() is the wire shape returned to webhook callers:
    {success, message, data, errors}.
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)
    stage_reached: IntakeStage = IntakeStage.RECEIVED

    @classmethod
    def failure(
        cls,
        message: str,
        errors: list[str] | None = None,
        stage: IntakeStage = IntakeStage.DONE,
    ) -> ProcessingResult:
        return cls(success=False, message=message, errors=errors or [], stage_reached=stage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "errors": list(self.errors),
        }


# ---------------------------------------------------------------------------
# Collaborator ports
# ---------------------------------------------------------------------------


class UserDirectory(Protocol):
    def find_approved_by_email(self, email: str) -> UserProfile | None: ...


class GuestStore(Protocol):
    def insert_guest(self, guest: GuestCreate) -> GuestRecord: ...


class AuditStore(Protocol):
    def insert_audit(self, record: EmailAuditRecord) -> EmailAuditRecord: ...

    def update_audit(
        self,
        record_id: str,
        *,
        processing_status: str,
        guest_id: str | None = None,
        processed_at: datetime | None = None,
        rejected_reason: str | None = None,
        expected_status: str | None = None,
    ) -> bool: ...

    def count_since(self, user_id: str, since: datetime) -> int: ...
