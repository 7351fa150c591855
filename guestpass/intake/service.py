"""Email guest review service - facade between the review routes and repositories.

Pending audit records (emails whose guests could not be created automatically)
can be approved into a guest record or rejected. Ownership is checked against
the record's user_id; authorization of the caller is the route's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from guestpass.intake.models import (
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    ProcessingStatus,
    utc_now,
)
from guestpass.intake.repository import EmailAuditRepository, GuestRepository
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter

logger = get_logger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by user"


class ReviewOutcome(str, Enum):
    DONE = "done"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"


@dataclass
class ReviewResult:
    outcome: ReviewOutcome
    guest: GuestRecord | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == ReviewOutcome.DONE


class EmailGuestService:
    def __init__(
        self,
        audits: EmailAuditRepository | None = None,
        guests: GuestRepository | None = None,
    ):
        self.audits = audits or EmailAuditRepository()
        self.guests = guests or GuestRepository()

    def _owned_record(self, record_id: str, user_id: str) -> EmailAuditRecord | None:
        record = self.audits.get_by_id(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def list_pending(self, user_id: str) -> list[EmailAuditRecord]:
        return self.audits.list_pending(user_id)

    def approve(self, record_id: str, user_id: str, guest_data: dict[str, Any]) -> ReviewResult:
        """
        Create a guest from reviewed data and mark the record approved.

        requester_email always comes from the audit record; inviter_id defaults
        to the record owner.

        Raises:
            pydantic.ValidationError: If guest_data is not a valid guest
        """
        record = self._owned_record(record_id, user_id)
        if record is None:
            return ReviewResult(ReviewOutcome.NOT_FOUND)
        if record.processing_status != ProcessingStatus.PENDING.value:
            return ReviewResult(ReviewOutcome.ALREADY_PROCESSED)

        fields = {**guest_data, "requester_email": record.sender_email}
        fields.setdefault("inviter_id", record.user_id)
        guest_create = GuestCreate.model_validate(fields)

        # Claim the record before inserting so only one approval creates a guest.
        claimed = self.audits.update_audit(
            record_id,
            processing_status=ProcessingStatus.APPROVED.value,
            expected_status=ProcessingStatus.PENDING.value,
        )
        if not claimed:
            return ReviewResult(ReviewOutcome.ALREADY_PROCESSED)

        try:
            guest = self.guests.insert_guest(guest_create)
        except Exception:
            self.audits.update_audit(
                record_id,
                processing_status=ProcessingStatus.PENDING.value,
                expected_status=ProcessingStatus.APPROVED.value,
            )
            raise

        self.audits.update_audit(
            record_id,
            processing_status=ProcessingStatus.APPROVED.value,
            guest_id=guest.id,
            processed_at=utc_now(),
        )
        counter("intake.review.approved")
        logger.info("Approved email record %s as guest %s", record_id, guest.id)
        return ReviewResult(ReviewOutcome.DONE, guest=guest)

    def reject(self, record_id: str, user_id: str, reason: str | None = None) -> ReviewResult:
        record = self._owned_record(record_id, user_id)
        if record is None:
            return ReviewResult(ReviewOutcome.NOT_FOUND)

        self.audits.update_audit(
            record_id,
            processing_status=ProcessingStatus.REJECTED.value,
            rejected_reason=reason or DEFAULT_REJECTION_REASON,
        )
        counter("intake.review.rejected")
        logger.info("Rejected email record %s", record_id)
        return ReviewResult(ReviewOutcome.DONE)

    def stats(self, user_id: str) -> dict[str, Any]:
        return self.audits.stats_for_user(user_id)
