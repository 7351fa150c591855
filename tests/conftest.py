"""
Pytest configuration for Guest Pass tests

Every test that touches SQLite gets its own database file through the
GUESTPASS_DB_PATH override; the LLM and the collaborator stores are replaced
by the fakes below, so no test needs network access.
"""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

# Point module-level database initialization (e.g. guestpass.api.app) at a
# throwaway file before any guestpass module is imported.
os.environ["GUESTPASS_DB_PATH"] = str(
    Path(tempfile.mkdtemp(prefix="guestpass-tests-")) / "guestpass.db"
)

from guestpass.intake.models import (  # noqa: E402
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    UserProfile,
)
from guestpass.observability.telemetry import reset_metrics  # noqa: E402

FIXED_TODAY = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh, initialized SQLite database for one test."""
    from guestpass.infrastructure.database import init_database, reset_pool

    db_path = tmp_path / "guestpass.db"
    monkeypatch.setenv("GUESTPASS_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    yield db_path
    reset_pool()


@pytest.fixture
def approved_profile(temp_db) -> UserProfile:
    from guestpass.intake.repository import ProfileRepository

    return ProfileRepository.upsert(
        UserProfile(
            user_id="user-1",
            email="jane@acme.com",
            full_name="Jane Doe",
            organization="Acme",
            authentication_status="Approved",
            max_daily_email_processing=10,
        )
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLLM:
    """Returns canned responses in order and records every prompt."""

    def __init__(self, *responses: str | Exception):
        self.responses = list(responses)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeDirectory:
    def __init__(self, *profiles: UserProfile, error: Exception | None = None):
        self.profiles = {profile.email: profile for profile in profiles}
        self.error = error
        self.lookups: list[str] = []

    def find_approved_by_email(self, email: str) -> UserProfile | None:
        self.lookups.append(email)
        if self.error is not None:
            raise self.error
        profile = self.profiles.get(email)
        if profile is None or not profile.is_approved:
            return None
        return profile


class FakeGuestStore:
    def __init__(self, fail_names: tuple[str, ...] = ()):
        self.fail_names = set(fail_names)
        self.created: list[GuestRecord] = []

    def insert_guest(self, guest: GuestCreate) -> GuestRecord:
        if guest.name in self.fail_names:
            raise RuntimeError("insert rejected")
        record = GuestRecord(id=f"guest-{len(self.created) + 1}", **guest.model_dump())
        self.created.append(record)
        return record


class FakeAuditStore:
    def __init__(
        self,
        count: int = 0,
        count_error: Exception | None = None,
        insert_error: Exception | None = None,
    ):
        self.count = count
        self.count_error = count_error
        self.insert_error = insert_error
        self.records: dict[str, EmailAuditRecord] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.count_calls: list[tuple[str, datetime]] = []

    def insert_audit(self, record: EmailAuditRecord) -> EmailAuditRecord:
        if self.insert_error is not None:
            raise self.insert_error
        self.records[record.id] = record
        return record

    def update_audit(self, record_id: str, **fields: Any) -> bool:
        self.updates.append((record_id, fields))
        return record_id in self.records

    def count_since(self, user_id: str, since: datetime) -> int:
        self.count_calls.append((user_id, since))
        if self.count_error is not None:
            raise self.count_error
        return self.count


@pytest.fixture
def jane() -> UserProfile:
    return UserProfile(
        user_id="user-1",
        email="jane@acme.com",
        full_name="Jane Doe",
        organization="Acme",
        authentication_status="Approved",
        max_daily_email_processing=10,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def fixed_today() -> date:
    return FIXED_TODAY


@pytest.fixture
def fakes():
    """Access to the fake classes without importing conftest directly."""

    class _Fakes:
        LLM = FakeLLM
        Directory = FakeDirectory
        GuestStore = FakeGuestStore
        AuditStore = FakeAuditStore

    return _Fakes
