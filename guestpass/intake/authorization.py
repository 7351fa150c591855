"""
Sender authorization: only approved directory users with email processing
enabled may create guests by email.
"""

from __future__ import annotations

from guestpass.intake.types import AuthorizationResult, UserDirectory
from guestpass.observability.logging import get_logger
from guestpass.utils.email import extract_email_address
from guestpass.utils.redaction import redact

logger = get_logger(__name__)

NOT_APPROVED = "Email not found or user not approved"
PROCESSING_DISABLED = "Email processing disabled for this user"


class SenderAuthorizer:
    def __init__(self, directory: UserDirectory):
        self.directory = directory

    def authorize(self, raw_from: str) -> AuthorizationResult:
        """
        Resolve a From header to an approved, processing-enabled profile.

        The address is matched exactly as stored (case-sensitive). Directory
        failures are reported as "Database error: <message>".
        """
        email = extract_email_address(raw_from)

        try:
            profile = self.directory.find_approved_by_email(email)
        except Exception as e:
            logger.error("Directory lookup failed for sender=%s: %s", redact(email), e)
            return AuthorizationResult.denied(f"Database error: {e}")

        if profile is None:
            logger.info("Rejected sender=%s: %s", redact(email), NOT_APPROVED)
            return AuthorizationResult.denied(NOT_APPROVED)

        if not profile.email_processing_enabled:
            logger.info("Rejected sender=%s: %s", redact(email), PROCESSING_DISABLED)
            return AuthorizationResult.denied(PROCESSING_DISABLED)

        return AuthorizationResult.allowed(profile)
