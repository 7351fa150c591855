"""
Persisted records for the email intake pipeline.

UserProfile is the directory entry the pipeline reads; GuestRecord and
EmailAuditRecord are the rows it writes.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guestpass.config import (
    INTAKE_DEFAULT_DAILY_LIMIT,
    INTAKE_DEFAULT_FLOOR_ACCESS,
    INTAKE_DEFAULT_ORGANIZATION,
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def to_db_timestamp(value: datetime) -> str:
    """
    Fixed-width UTC ISO string, so stored timestamps compare correctly as text.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class ApprovalState(str, Enum):
    """Directory approval state. Only Approved users may submit emails."""

    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"


class ProcessingStatus(str, Enum):
    """Lifecycle of an email audit record."""

    PENDING = "pending"  # Extracted, no guest created yet (or all inserts failed)
    APPROVED = "approved"  # At least one guest created
    REJECTED = "rejected"  # Dismissed during manual review


class UserProfile(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    email: str
    full_name: str | None = None
    organization: str | None = None
    authentication_status: ApprovalState = ApprovalState.PENDING
    email_processing_enabled: bool = True
    max_daily_email_processing: int = Field(default=INTAKE_DEFAULT_DAILY_LIMIT, ge=1)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_approved(self) -> bool:
        return self.authentication_status == ApprovalState.APPROVED.value

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "organization": self.organization,
            "authentication_status": self.authentication_status,
            "email_processing_enabled": int(self.email_processing_enabled),
            "max_daily_email_processing": self.max_daily_email_processing,
            "created_at": to_db_timestamp(self.created_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> UserProfile:
        return cls(
            user_id=row["user_id"],
            email=row["email"],
            full_name=row.get("full_name"),
            organization=row.get("organization"),
            authentication_status=row["authentication_status"],
            email_processing_enabled=bool(row["email_processing_enabled"]),
            max_daily_email_processing=row["max_daily_email_processing"],
            created_at=_parse_timestamp(row["created_at"]) or utc_now(),
        )


class GuestCreate(BaseModel):
    """Data needed to insert a guest record."""

    name: str = Field(..., min_length=1)
    visit_date: str = Field(..., description="ISO 8601 calendar date")
    estimated_arrival: str = Field(..., description="HH:MM, 24-hour clock")
    arrival_status: bool = False
    floor_access: str = INTAKE_DEFAULT_FLOOR_ACCESS
    inviter_id: str
    organization: str = INTAKE_DEFAULT_ORGANIZATION
    requester_email: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("visit_date")
    @classmethod
    def visit_date_is_iso(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

    @field_validator("estimated_arrival")
    @classmethod
    def arrival_is_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("estimated_arrival must be HH:MM (24-hour)")
        return v


class GuestRecord(GuestCreate):
    id: str
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "visit_date": self.visit_date,
            "estimated_arrival": self.estimated_arrival,
            "arrival_status": int(self.arrival_status),
            "floor_access": self.floor_access,
            "inviter_id": self.inviter_id,
            "organization": self.organization,
            "requester_email": self.requester_email,
            "created_at": to_db_timestamp(self.created_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> GuestRecord:
        return cls(
            id=row["id"],
            name=row["name"],
            visit_date=row["visit_date"],
            estimated_arrival=row["estimated_arrival"],
            arrival_status=bool(row["arrival_status"]),
            floor_access=row["floor_access"] or INTAKE_DEFAULT_FLOOR_ACCESS,
            inviter_id=row["inviter_id"],
            organization=row["organization"] or INTAKE_DEFAULT_ORGANIZATION,
            requester_email=row.get("requester_email"),
            created_at=_parse_timestamp(row["created_at"]) or utc_now(),
        )


class EmailAuditRecord(BaseModel):
    """
    One row per processed email.

    extracted_data holds the full extraction result (guests, confidence,
    notes, errors) so a pending record can be reviewed and approved later.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    sender_email: str
    email_subject: str | None = None
    original_email_content: str | None = None
    extracted_data: dict[str, Any] = Field(default_factory=dict)
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    processing_errors: list[str] = Field(default_factory=list)
    ai_model_used: str | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    guest_id: str | None = None
    rejected_reason: str | None = None
    processed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "sender_email": self.sender_email,
            "email_subject": self.email_subject,
            "original_email_content": self.original_email_content,
            "extracted_data": json.dumps(self.extracted_data),
            "confidence_score": self.confidence_score,
            "processing_errors": json.dumps(self.processing_errors),
            "ai_model_used": self.ai_model_used,
            "processing_status": self.processing_status,
            "guest_id": self.guest_id,
            "rejected_reason": self.rejected_reason,
            "processed_at": to_db_timestamp(self.processed_at) if self.processed_at else None,
            "created_at": to_db_timestamp(self.created_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> EmailAuditRecord:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            sender_email=row["sender_email"],
            email_subject=row.get("email_subject"),
            original_email_content=row.get("original_email_content"),
            extracted_data=json.loads(row["extracted_data"] or "{}"),
            confidence_score=row["confidence_score"] or 0.0,
            processing_errors=json.loads(row.get("processing_errors") or "[]"),
            ai_model_used=row.get("ai_model_used"),
            processing_status=row["processing_status"],
            guest_id=row.get("guest_id"),
            rejected_reason=row.get("rejected_reason"),
            processed_at=_parse_timestamp(row.get("processed_at")),
            created_at=_parse_timestamp(row["created_at"]) or utc_now(),
        )

    def to_api_dict(self) -> dict[str, Any]:
        """JSON-friendly view for the review routes."""
        data = self.model_dump(mode="json")
        data["processed_at"] = to_db_timestamp(self.processed_at) if self.processed_at else None
        data["created_at"] = to_db_timestamp(self.created_at)
        return data
