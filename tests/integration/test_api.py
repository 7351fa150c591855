"""
API tests for the intake webhook, the sample endpoint, health and the review routes.

The processor is rebuilt per test against the temporary database with a
scripted model; review-route authentication is overridden with a fixed user.
"""

from __future__ import annotations

import json
import uuid

import pytest
from fastapi.testclient import TestClient

from guestpass.api.app import app
from guestpass.api.middleware.user_auth import AuthenticatedUser, get_current_user
from guestpass.api.routes.email_guests import get_review_service
from guestpass.api.routes.intake import get_processor
from guestpass.intake.models import EmailAuditRecord
from guestpass.intake.processor import build_default_processor
from guestpass.intake.repository import EmailAuditRepository, GuestRepository
from guestpass.intake.service import EmailGuestService

ONE_GUEST = json.dumps(
    {
        "guests": [
            {
                "name": "Sarah Johnson",
                "visit_date": "2026-10-20",
                "estimated_arrival": "2:30 PM",
                "organization": "TechCorp",
                "floor_access": "Floor 3",
            }
        ],
        "confidence_score": 0.9,
        "processing_notes": "One guest",
    }
)

JANE = AuthenticatedUser(id="user-1", email="jane@acme.com", name="Jane Doe", organization="Acme")


@pytest.fixture
def llm(fakes):
    return fakes.LLM(ONE_GUEST)


@pytest.fixture
def client(approved_profile, llm):
    app.dependency_overrides[get_processor] = lambda: build_default_processor(llm_call=llm)
    app.dependency_overrides[get_review_service] = lambda: EmailGuestService()
    app.dependency_overrides[get_current_user] = lambda: JANE
    yield TestClient(app)
    app.dependency_overrides.clear()


def _pending_record(user_id="user-1", sender="Jane Doe <jane@acme.com>"):
    record = EmailAuditRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        sender_email=sender,
        email_subject="Visitor",
        extracted_data={"guests": [], "confidence_score": 0.4},
        confidence_score=0.4,
    )
    return EmailAuditRepository.insert_audit(record)


class TestProcessEmail:
    def test_success(self, client):
        response = client.post(
            "/api/process-email",
            json={"from": "Jane Doe <jane@acme.com>", "subject": "Visitor", "text": "Sarah at 2:30"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Successfully created 1 guest(s) from email with 90.0% confidence"
        assert body["errors"] == []
        assert body["data"]["created_guests"][0]["estimated_arrival"] == "14:30"

    def test_html_body_is_used_when_text_missing(self, client, llm):
        response = client.post(
            "/api/process-email",
            json={"from": "jane@acme.com", "html": "<p>Sarah Johnson at 2:30</p>"},
        )

        assert response.status_code == 200
        assert "<p>Sarah Johnson at 2:30</p>" in llm.prompts[0]

    def test_pipeline_failure_is_400_with_result(self, client):
        response = client.post(
            "/api/process-email",
            json={"from": "stranger@evil.example", "text": "Guest Bob tomorrow"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Unauthorized sender",
            "data": None,
            "errors": ["Email not found or user not approved"],
        }

    @pytest.mark.parametrize(
        "payload",
        [{"text": "Sarah at 2:30"}, {"from": "jane@acme.com"}, {"from": "", "text": "x"}],
    )
    def test_missing_fields(self, client, llm, payload):
        response = client.post("/api/process-email", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields: from, and email content"
        assert llm.prompts == []

    def test_oversized_field_is_rejected(self, client):
        response = client.post(
            "/api/process-email",
            json={"from": "jane@acme.com", "subject": "x" * 5000, "text": "Sarah"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Input validation failed"
        assert "subject" in response.json()["invalid_fields"]

    def test_braces_in_sender_are_rejected(self, client):
        response = client.post(
            "/api/process-email", json={"from": "{jane}@acme.com", "text": "Sarah"}
        )
        assert response.status_code == 400
        assert response.json()["invalid_fields"] == ["from"]


class TestSampleEmail:
    def test_always_200_with_result(self, client):
        response = client.post(
            "/api/test-email-processing",
            json={"senderEmail": "stranger@evil.example", "content": "Guest Bob"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"]["success"] is False
        assert body["result"]["message"] == "Unauthorized sender"

    def test_default_subject(self, client):
        response = client.post(
            "/api/test-email-processing",
            json={"senderEmail": "jane@acme.com", "content": "Sarah at 2:30"},
        )

        record_id = response.json()["result"]["data"]["record_id"]
        assert EmailAuditRepository.get_by_id(record_id).email_subject == "Test Email"

    def test_missing_content(self, client):
        response = client.post("/api/test-email-processing", json={"senderEmail": "jane@acme.com"})
        assert response.status_code == 400


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/health").json()

        assert body["status"] == "OK"
        assert body["service"]
        assert "timestamp" in body
        assert "ready" in body["llm"]

    def test_db_health(self, client):
        body = client.get("/api/health/db").json()
        assert body["status"] in ("healthy", "degraded")
        assert body["pool"]["pool_size"] > 0

    def test_root_lists_endpoints(self, client):
        assert "/api/process-email" in client.get("/").json()["endpoints"].values()


class TestReviewRoutes:
    def test_list_pending(self, client):
        first = _pending_record()
        second = _pending_record()

        response = client.get("/api/email-guests/pending/user-1")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert {r["id"] for r in body["pending_guests"]} == {first.id, second.id}
        assert body["pending_guests"][0]["processing_status"] == "pending"

    def test_other_users_records_are_forbidden(self, client):
        response = client.get("/api/email-guests/pending/user-2")

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden: Access denied to this user data"

    def test_security_can_view_other_users(self, client):
        app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(
            id="user-9", email="guard@acme.com", organization="Security"
        )
        _pending_record(user_id="user-1")

        response = client.get("/api/email-guests/pending/user-1")
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_approve(self, client):
        record = _pending_record()
        response = client.post(
            f"/api/email-guests/approve/{record.id}",
            json={
                "userId": "user-1",
                "guestData": {
                    "name": "Sarah Johnson",
                    "visit_date": "2026-10-20",
                    "estimated_arrival": "14:30",
                    "floor_access": "Floor 3",
                    "organization": "TechCorp",
                },
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Guest approved and created successfully"
        assert body["guest"]["requester_email"] == "Jane Doe <jane@acme.com>"
        assert body["guest"]["inviter_id"] == "user-1"

        stored = EmailAuditRepository.get_by_id(record.id)
        assert stored.processing_status == "approved"
        assert stored.guest_id == body["guest"]["id"]
        assert GuestRepository.get_by_id(body["guest"]["id"]).name == "Sarah Johnson"

    def test_approve_twice(self, client):
        record = _pending_record()
        payload = {
            "userId": "user-1",
            "guestData": {"name": "Sarah", "visit_date": "2026-10-20", "estimated_arrival": "14:30"},
        }
        client.post(f"/api/email-guests/approve/{record.id}", json=payload)
        response = client.post(f"/api/email-guests/approve/{record.id}", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Record already processed"

    def test_approve_invalid_guest_data(self, client):
        record = _pending_record()
        response = client.post(
            f"/api/email-guests/approve/{record.id}",
            json={"userId": "user-1", "guestData": {"name": "Sarah", "visit_date": "soon"}},
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid guest data:")
        assert EmailAuditRepository.get_by_id(record.id).processing_status == "pending"

    def test_approve_unknown_record(self, client):
        response = client.post(
            "/api/email-guests/approve/does-not-exist",
            json={
                "userId": "user-1",
                "guestData": {"name": "Sarah", "visit_date": "2026-10-20", "estimated_arrival": "14:30"},
            },
        )
        assert response.status_code == 404

    def test_reject(self, client):
        record = _pending_record()
        response = client.post(
            f"/api/email-guests/reject/{record.id}",
            json={"userId": "user-1", "reason": "Duplicate request"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Guest request rejected"}
        stored = EmailAuditRepository.get_by_id(record.id)
        assert stored.processing_status == "rejected"
        assert stored.rejected_reason == "Duplicate request"

    def test_reject_unknown_record(self, client):
        response = client.post("/api/email-guests/reject/nope", json={"userId": "user-1"})
        assert response.status_code == 404

    def test_stats(self, client):
        client.post(
            "/api/process-email",
            json={"from": "jane@acme.com", "subject": "Visitor", "text": "Sarah at 2:30"},
        )
        _pending_record()

        response = client.get("/api/email-guests/stats/user-1")

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["total_emails_processed"] == 2
        assert stats["approved_count"] == 1
        assert stats["pending_count"] == 1
        assert stats["rejected_count"] == 0
        assert stats["avg_confidence_score"] == 0.65
        assert stats["last_email_processed"] is not None


def test_review_routes_require_token(approved_profile):
    response = TestClient(app).get("/api/email-guests/pending/user-1")
    assert response.status_code == 401
