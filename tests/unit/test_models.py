"""Unit tests for the intake data models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from guestpass.intake.models import (
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    ProcessingStatus,
    UserProfile,
    to_db_timestamp,
)


def _guest(**overrides):
    fields = {
        "name": "Sarah Johnson",
        "visit_date": "2026-10-20",
        "estimated_arrival": "14:30",
        "inviter_id": "user-1",
    }
    fields.update(overrides)
    return GuestCreate(**fields)


class TestGuestCreate:
    def test_defaults(self):
        guest = _guest()

        assert guest.arrival_status is False
        assert guest.floor_access == "Floor 1"
        assert guest.organization == "Unknown"
        assert guest.requester_email is None

    def test_name_is_trimmed(self):
        assert _guest(name="  Sarah  ").name == "Sarah"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": "   "},
            {"visit_date": "tomorrow"},
            {"estimated_arrival": "2:30 PM"},
            {"estimated_arrival": "24:00"},
        ],
    )
    def test_invalid_fields(self, overrides):
        with pytest.raises(ValidationError):
            _guest(**overrides)


class TestTimestamps:
    def test_utc_and_fixed_width(self):
        stamp = to_db_timestamp(datetime(2026, 10, 19, 8, 0, tzinfo=timezone(timedelta(hours=-4))))
        assert stamp == "2026-10-19T12:00:00.000000+00:00"

    def test_naive_is_taken_as_utc(self):
        assert to_db_timestamp(datetime(2026, 10, 19, 12, 0)) == "2026-10-19T12:00:00.000000+00:00"


class TestRowMapping:
    def test_profile_round_trip(self, jane):
        row = jane.to_db_dict()
        assert row["email_processing_enabled"] == 1

        restored = UserProfile.from_db_row(row)
        assert restored == jane
        assert restored.is_approved

    def test_guest_record_row(self):
        record = GuestRecord(id="g-1", **_guest().model_dump())
        row = record.to_db_dict()

        assert row["arrival_status"] == 0
        assert GuestRecord.from_db_row(row).name == "Sarah Johnson"

    def test_audit_record_json_columns(self):
        record = EmailAuditRecord(
            id="rec-1",
            user_id="user-1",
            sender_email="Jane <jane@acme.com>",
            extracted_data={"guests": [], "confidence_score": 0.2},
            processing_errors=["No valid guest array found"],
            confidence_score=0.2,
        )
        row = record.to_db_dict()

        assert row["processing_status"] == "pending"
        assert row["processed_at"] is None
        restored = EmailAuditRecord.from_db_row(row)
        assert restored.extracted_data == {"guests": [], "confidence_score": 0.2}
        assert restored.processing_errors == ["No valid guest array found"]

    def test_audit_api_dict(self):
        record = EmailAuditRecord(
            id="rec-1",
            user_id="user-1",
            sender_email="jane@acme.com",
            processing_status=ProcessingStatus.APPROVED,
            processed_at=datetime(2026, 10, 19, 12, 0, tzinfo=UTC),
        )
        data = record.to_api_dict()

        assert data["processing_status"] == "approved"
        assert data["processed_at"] == "2026-10-19T12:00:00.000000+00:00"

    def test_confidence_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            EmailAuditRecord(id="r", user_id="u", sender_email="s", confidence_score=1.5)
