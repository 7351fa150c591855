"""
Guest Pass intake module - visitor-request emails to guest records.
"""

from guestpass.intake.authorization import SenderAuthorizer
from guestpass.intake.extractor import GuestExtractor, strip_code_fences
from guestpass.intake.models import (
    ApprovalState,
    EmailAuditRecord,
    GuestCreate,
    GuestRecord,
    ProcessingStatus,
    UserProfile,
)
from guestpass.intake.normalizer import normalize_date, normalize_time
from guestpass.intake.processor import EmailIntakeProcessor, build_default_processor
from guestpass.intake.quota import QuotaGate
from guestpass.intake.repository import EmailAuditRepository, GuestRepository, ProfileRepository
from guestpass.intake.service import EmailGuestService, ReviewOutcome, ReviewResult
from guestpass.intake.types import (
    AuthorizationResult,
    ExtractedGuest,
    ExtractionResult,
    IntakeStage,
    ProcessingResult,
    QuotaStatus,
)
from guestpass.intake.validator import validate_extraction

__all__ = [
    # Models
    "ApprovalState",
    "EmailAuditRecord",
    "GuestCreate",
    "GuestRecord",
    "ProcessingStatus",
    "UserProfile",
    # Repositories
    "EmailAuditRepository",
    "GuestRepository",
    "ProfileRepository",
    # Pipeline stages
    "normalize_date",
    "normalize_time",
    "validate_extraction",
    "GuestExtractor",
    "strip_code_fences",
    "SenderAuthorizer",
    "QuotaGate",
    # Orchestrator
    "EmailIntakeProcessor",
    "build_default_processor",
    # Review
    "EmailGuestService",
    "ReviewOutcome",
    "ReviewResult",
    # Result types
    "AuthorizationResult",
    "ExtractedGuest",
    "ExtractionResult",
    "IntakeStage",
    "ProcessingResult",
    "QuotaStatus",
]
