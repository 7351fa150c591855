"""Guest Pass - turn visitor-request emails into access portal guest records"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for intake module
def __getattr__(name: str):
    """
    Lazy imports to avoid loading the LLM/database stack when only importing lightweight modules.
    """
    if name in ("ExtractedGuest", "ExtractionResult", "ProcessingResult"):
        from guestpass.intake import types

        if name == "ExtractedGuest":
            return types.ExtractedGuest
        if name == "ExtractionResult":
            return types.ExtractionResult
        if name == "ProcessingResult":
            return types.ProcessingResult

    if name == "EmailIntakeProcessor":
        from guestpass.intake.processor import EmailIntakeProcessor

        return EmailIntakeProcessor

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "EmailIntakeProcessor",
    "ExtractedGuest",
    "ExtractionResult",
    "ProcessingResult",
]
