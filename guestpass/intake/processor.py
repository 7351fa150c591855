"""
Email Intake Processor - one email in, one ProcessingResult out.

Stages run once, in order, with no retries:

    authorize sender -> check daily quota -> extract guests
        -> write pending audit record -> create guests
        -> mark audit record approved -> done

Every stage returns a result value. The only exception handler that matters
for the caller is the one in process(), which turns anything unexpected into
an "Unexpected processing error" result.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from guestpass.infrastructure.settings import GEMINI_MODEL
from guestpass.intake.authorization import SenderAuthorizer
from guestpass.intake.extractor import GuestExtractor
from guestpass.intake.models import (
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    ProcessingStatus,
    UserProfile,
    utc_now,
)
from guestpass.intake.quota import QuotaGate
from guestpass.intake.types import (
    AuditStore,
    ExtractedGuest,
    ExtractionResult,
    GuestStore,
    IntakeStage,
    ProcessingResult,
    QuotaStatus,
)
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter, log_event, time_block
from guestpass.utils.redaction import redact, redact_subject

logger = get_logger(__name__)


class EmailIntakeProcessor:
    """Turns visitor-request emails into guest records for approved users."""

    def __init__(
        self,
        authorizer: SenderAuthorizer,
        quota_gate: QuotaGate,
        extractor: GuestExtractor,
        guests: GuestStore,
        audits: AuditStore,
        today: Callable[[], date] | None = None,
    ):
        self.authorizer = authorizer
        self.quota_gate = quota_gate
        self.extractor = extractor
        self.guests = guests
        self.audits = audits
        self._today = today or date.today

    def process(self, sender: str, subject: str | None, content: str) -> ProcessingResult:
        """
        Run the full pipeline for one email.

        Args:
            sender: Raw From header ("Name <addr>" or a bare address)
            subject: Email subject (may be empty)
            content: Plain-text body, or HTML when no text part exists

        Returns:
            ProcessingResult; never raises
        """
        logger.info(
            "Processing email from sender=%s subject=%s",
            redact(sender),
            redact_subject(subject),
        )
        stage = IntakeStage.RECEIVED

        try:
            with time_block("intake.process.latency"):
                stage = IntakeStage.AUTHORIZING
                auth = self.authorizer.authorize(sender)
                if not auth.valid or auth.user is None:
                    counter("intake.unauthorized")
                    return ProcessingResult.failure(
                        "Unauthorized sender", [auth.error or "Unauthorized sender"], stage
                    )
                user = auth.user

                stage = IntakeStage.QUOTA_CHECKING
                quota = self.quota_gate.check(user.user_id, user.max_daily_email_processing)
                if not quota.can_process:
                    counter("intake.quota_exceeded")
                    return ProcessingResult.failure(
                        f"Daily limit reached ({quota.current_count}/{quota.daily_limit})",
                        [quota.error or "Daily processing limit exceeded"],
                        stage,
                    )

                stage = IntakeStage.EXTRACTING
                extraction = self.extractor.extract(content, user.email, today=self._today())
                if not extraction.guests:
                    counter("intake.no_guests")
                    return ProcessingResult.failure(
                        "Unable to extract guest details",
                        ["No valid guest information found in email"],
                        stage,
                    )

                stage = IntakeStage.AUDITING
                record_id = self._record_extraction(user, sender, subject, content, extraction)

                stage = IntakeStage.CREATING_GUESTS
                created, errors = self._create_guests(extraction.guests, user, sender)
                if not created:
                    return ProcessingResult.failure("Failed to create any guests", errors, stage)

                stage = IntakeStage.AUDITING
                if record_id is not None:
                    self._mark_approved(record_id, created[0].id)

                stage = IntakeStage.DONE
                return self._success(user, quota, extraction, created, errors, record_id)

        except Exception as e:
            counter("intake.unexpected_error")
            logger.exception("Unexpected error processing email at stage %s", stage.value)
            return ProcessingResult.failure("Unexpected processing error", [str(e)], stage)

    def _record_extraction(
        self,
        user: UserProfile,
        sender: str,
        subject: str | None,
        content: str,
        extraction: ExtractionResult,
    ) -> str | None:
        """Insert the pending audit record. Failures are logged, never raised."""
        record = EmailAuditRecord(
            id=str(uuid.uuid4()),
            user_id=user.user_id,
            sender_email=sender,
            email_subject=subject,
            original_email_content=content,
            extracted_data=extraction.to_dict(),
            confidence_score=extraction.confidence_score,
            processing_errors=list(extraction.errors),
            ai_model_used=self.extractor.model_name,
            processing_status=ProcessingStatus.PENDING,
        )
        try:
            return self.audits.insert_audit(record).id
        except Exception as e:
            counter("intake.audit_failed")
            logger.warning("Failed to write audit record for user=%s: %s", user.user_id, e)
            return None

    def _create_guests(
        self, guests: list[ExtractedGuest], user: UserProfile, sender: str
    ) -> tuple[list[GuestRecord], list[str]]:
        """Insert each guest; one failure doesn't stop the rest."""
        created: list[GuestRecord] = []
        errors: list[str] = []

        for guest in guests:
            try:
                record = self.guests.insert_guest(
                    GuestCreate(
                        name=guest.name,
                        visit_date=guest.visit_date,
                        estimated_arrival=guest.estimated_arrival,
                        arrival_status=False,
                        floor_access=guest.floor_access,
                        inviter_id=user.user_id,
                        organization=guest.organization,
                        requester_email=sender,
                    )
                )
            except Exception as e:
                counter("intake.guest_insert_failed")
                logger.error("Error creating guest for inviter=%s: %s", user.user_id, e)
                errors.append(f"Failed to create guest: {guest.name} - {e}")
                continue

            created.append(record)

        return created, errors

    def _mark_approved(self, record_id: str, guest_id: str) -> None:
        try:
            updated = self.audits.update_audit(
                record_id,
                processing_status=ProcessingStatus.APPROVED.value,
                guest_id=guest_id,
                processed_at=utc_now(),
            )
        except Exception as e:
            counter("intake.audit_failed")
            logger.warning("Failed to update audit record %s: %s", record_id, e)
            return

        if not updated:
            counter("intake.audit_failed")
            logger.warning("Audit record %s not found for update", record_id)

    def _success(
        self,
        user: UserProfile,
        quota: QuotaStatus,
        extraction: ExtractionResult,
        created: list[GuestRecord],
        errors: list[str],
        record_id: str | None,
    ) -> ProcessingResult:
        counter("intake.success")
        log_event(
            "intake.guests_created",
            user_id=user.user_id,
            created=len(created),
            failed=len(errors),
            confidence=extraction.confidence_score,
        )

        data: dict[str, Any] = {
            "record_id": record_id,
            "created_guests": [guest.model_dump(mode="json") for guest in created],
            "extracted_guests": [guest.to_dict() for guest in extraction.guests],
            "confidence_score": extraction.confidence_score,
            "processing_notes": extraction.processing_notes,
            "user_info": {
                "name": user.full_name,
                "organization": user.organization,
                "remaining_daily": quota.remaining - 1,
            },
        }
        return ProcessingResult(
            success=True,
            message=(
                f"Successfully created {len(created)} guest(s) from email with "
                f"{extraction.confidence_score * 100:.1f}% confidence"
            ),
            data=data,
            errors=errors,
            stage_reached=IntakeStage.DONE,
        )


def build_default_processor(
    llm_call: Callable[[str], str] | None = None,
    model_name: str = GEMINI_MODEL,
    clock: Callable[[], datetime] | None = None,
) -> EmailIntakeProcessor:
    """Processor wired to the SQLite repositories and Gemini."""
    from guestpass.intake.repository import (
        EmailAuditRepository,
        GuestRepository,
        ProfileRepository,
    )

    audits = EmailAuditRepository()
    return EmailIntakeProcessor(
        authorizer=SenderAuthorizer(ProfileRepository()),
        quota_gate=QuotaGate(audits, clock=clock),
        extractor=GuestExtractor(llm_call=llm_call, model_name=model_name),
        guests=GuestRepository(),
        audits=audits,
    )
