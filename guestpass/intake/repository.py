"""
SQLite repositories for the intake pipeline.

ProfileRepository is the user directory, GuestRepository the guest store and
EmailAuditRepository the audit store. Instances satisfy the ports in
guestpass.intake.types, so the orchestrator can be given fakes in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from guestpass.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from guestpass.intake.models import (
    ApprovalState,
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    ProcessingStatus,
    UserProfile,
    to_db_timestamp,
)
from guestpass.observability.logging import get_logger
from guestpass.utils.redaction import redact

logger = get_logger(__name__)


class ProfileRepository:
    """Read access to the profiles table plus the operator writes."""

    @staticmethod
    def find_approved_by_email(email: str) -> UserProfile | None:
        """Exact (case-sensitive) email match restricted to Approved profiles."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE email = ? AND authentication_status = ?",
                (email, ApprovalState.APPROVED.value),
            ).fetchone()

        return UserProfile.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_by_email(email: str) -> UserProfile | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE email = ?", (email,)).fetchone()

        return UserProfile.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_by_user_id(user_id: str) -> UserProfile | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()

        return UserProfile.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def upsert(profile: UserProfile) -> UserProfile:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO profiles (
                    user_id, email, full_name, organization, authentication_status,
                    email_processing_enabled, max_daily_email_processing, created_at
                ) VALUES (
                    :user_id, :email, :full_name, :organization, :authentication_status,
                    :email_processing_enabled, :max_daily_email_processing, :created_at
                )
                ON CONFLICT(user_id) DO UPDATE SET
                    email = excluded.email,
                    full_name = excluded.full_name,
                    organization = excluded.organization,
                    authentication_status = excluded.authentication_status,
                    email_processing_enabled = excluded.email_processing_enabled,
                    max_daily_email_processing = excluded.max_daily_email_processing
                """,
                profile.to_db_dict(),
            )
        return profile

    @staticmethod
    @retry_on_db_lock()
    def set_daily_limit(email: str, limit: int) -> bool:
        """
        Returns:
            True if a profile with that email was updated
        """
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE profiles SET max_daily_email_processing = ? WHERE email = ?",
                (limit, email),
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info("Set daily email limit for %s to %d", redact(email), limit)
        return updated


class GuestRepository:
    @staticmethod
    @retry_on_db_lock()
    def insert_guest(guest: GuestCreate) -> GuestRecord:
        """
        Insert a guest row.

        Side Effects:
            - Inserts row into guests table
            - Commits transaction
        """
        record = GuestRecord(id=str(uuid.uuid4()), **guest.model_dump())

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO guests (
                    id, name, visit_date, estimated_arrival, arrival_status,
                    floor_access, inviter_id, organization, requester_email, created_at
                ) VALUES (
                    :id, :name, :visit_date, :estimated_arrival, :arrival_status,
                    :floor_access, :inviter_id, :organization, :requester_email, :created_at
                )
                """,
                record.to_db_dict(),
            )

        logger.info("Created guest %s for inviter %s", record.id, record.inviter_id)
        return record

    @staticmethod
    def get_by_id(guest_id: str) -> GuestRecord | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM guests WHERE id = ?", (guest_id,)).fetchone()

        return GuestRecord.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_inviter(inviter_id: str) -> list[GuestRecord]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM guests WHERE inviter_id = ? ORDER BY visit_date, estimated_arrival",
                (inviter_id,),
            ).fetchall()

        return [GuestRecord.from_db_row(dict(row)) for row in rows]


class EmailAuditRepository:
    """Audit rows in email_processed_guests. Only inserts and targeted updates."""

    @staticmethod
    @retry_on_db_lock()
    def insert_audit(record: EmailAuditRecord) -> EmailAuditRecord:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO email_processed_guests (
                    id, user_id, sender_email, email_subject, original_email_content,
                    extracted_data, confidence_score, processing_errors, ai_model_used,
                    processing_status, guest_id, rejected_reason, processed_at, created_at
                ) VALUES (
                    :id, :user_id, :sender_email, :email_subject, :original_email_content,
                    :extracted_data, :confidence_score, :processing_errors, :ai_model_used,
                    :processing_status, :guest_id, :rejected_reason, :processed_at, :created_at
                )
                """,
                record.to_db_dict(),
            )
        return record

    @staticmethod
    @retry_on_db_lock()
    def update_audit(
        record_id: str,
        *,
        processing_status: str,
        guest_id: str | None = None,
        processed_at: datetime | None = None,
        rejected_reason: str | None = None,
        expected_status: str | None = None,
    ) -> bool:
        """
        Set status (and optionally guest_id / processed_at / rejected_reason) on one record.

        With expected_status the update only applies while the record still has
        that status, so concurrent callers cannot both claim it.

        Returns:
            True if a record was updated
        """
        status = ProcessingStatus(processing_status).value
        updates: dict[str, Any] = {"id": record_id, "processing_status": status}
        clauses = ["processing_status = :processing_status"]

        if guest_id is not None:
            updates["guest_id"] = guest_id
            clauses.append("guest_id = :guest_id")
        if processed_at is not None:
            updates["processed_at"] = to_db_timestamp(processed_at)
            clauses.append("processed_at = :processed_at")
        if rejected_reason is not None:
            updates["rejected_reason"] = rejected_reason
            clauses.append("rejected_reason = :rejected_reason")

        where = "id = :id"
        if expected_status is not None:
            updates["expected_status"] = ProcessingStatus(expected_status).value
            where += " AND processing_status = :expected_status"

        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE email_processed_guests SET {', '.join(clauses)} WHERE {where}",
                updates,
            )
            return cursor.rowcount > 0

    @staticmethod
    def count_since(user_id: str, since: datetime) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM email_processed_guests WHERE user_id = ? AND created_at >= ?",
                (user_id, to_db_timestamp(since)),
            ).fetchone()
        return int(row[0])

    @staticmethod
    def get_by_id(record_id: str) -> EmailAuditRecord | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM email_processed_guests WHERE id = ?", (record_id,)
            ).fetchone()

        return EmailAuditRecord.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_pending(user_id: str) -> list[EmailAuditRecord]:
        """Pending records for user_id, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM email_processed_guests
                WHERE user_id = ? AND processing_status = ?
                ORDER BY created_at DESC
                """,
                (user_id, ProcessingStatus.PENDING.value),
            ).fetchall()

        return [EmailAuditRecord.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def stats_for_user(user_id: str) -> dict[str, Any]:
        """
        Aggregate counts for one user's audit records.

        error_count is the number of records that carry at least one processing error.
        """
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN processing_status = 'pending' THEN 1 ELSE 0 END) AS pending,
                    SUM(CASE WHEN processing_status = 'approved' THEN 1 ELSE 0 END) AS approved,
                    SUM(CASE WHEN processing_status = 'rejected' THEN 1 ELSE 0 END) AS rejected,
                    SUM(CASE WHEN processing_errors IS NOT NULL AND processing_errors != '[]'
                        THEN 1 ELSE 0 END) AS with_errors,
                    AVG(confidence_score) AS avg_confidence,
                    MAX(created_at) AS last_created
                FROM email_processed_guests
                WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()

        total = int(row["total"] or 0)
        return {
            "total_emails_processed": total,
            "pending_count": int(row["pending"] or 0),
            "approved_count": int(row["approved"] or 0),
            "rejected_count": int(row["rejected"] or 0),
            "error_count": int(row["with_errors"] or 0),
            "avg_confidence_score": round(float(row["avg_confidence"] or 0.0), 3),
            "last_email_processed": row["last_created"] if total else None,
        }
