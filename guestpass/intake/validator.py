"""
Validation of the raw JSON the model returns.

The payload is treated as untyped: anything that isn't the expected shape is
narrowed, defaulted or discarded, and the problems are reported as strings in
ExtractionResult.errors. validate_extraction() never raises.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any

from guestpass.config import INTAKE_DEFAULT_FLOOR_ACCESS, INTAKE_DEFAULT_ORGANIZATION
from guestpass.intake.normalizer import normalize_date, normalize_time
from guestpass.intake.types import ExtractedGuest, ExtractionResult
from guestpass.observability.logging import get_logger

logger = get_logger(__name__)

NO_GUEST_ARRAY = "No valid guest array found"


def clamp_confidence(value: Any) -> float:
    """Confidence as a float in [0, 1]. Missing, non-numeric and NaN become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int):
        return float(max(0, min(1, value)))
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(score):
        return 0.0
    return max(0.0, min(1.0, score))


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _guest_label(raw: Any) -> str:
    if isinstance(raw, dict):
        return _text(raw.get("name")) or "Unknown"
    return "Unknown"


def _validate_guest(raw: Any, today: date | None) -> ExtractedGuest | None:
    if not isinstance(raw, dict):
        return None

    name = _text(raw.get("name"))
    visit_date = normalize_date(raw.get("visit_date"), today=today)
    estimated_arrival = normalize_time(raw.get("estimated_arrival"))

    if not (name and visit_date and estimated_arrival):
        return None

    return ExtractedGuest(
        name=name,
        visit_date=visit_date,
        estimated_arrival=estimated_arrival,
        organization=_text(raw.get("organization")) or INTAKE_DEFAULT_ORGANIZATION,
        floor_access=_text(raw.get("floor_access")) or INTAKE_DEFAULT_FLOOR_ACCESS,
        purpose=_text(raw.get("purpose")),
        notes=_text(raw.get("notes")),
    )


def validate_extraction(payload: Any, today: date | None = None) -> ExtractionResult:
    """
    Narrow a parsed model payload into an ExtractionResult.

    A guest is kept only when name, visit_date and estimated_arrival survive
    normalization; every discarded entry adds "Incomplete guest data for: <name>".
    """
    try:
        data = payload if isinstance(payload, dict) else {}
        notes = data.get("processing_notes")
        result = ExtractionResult(
            guests=[],
            confidence_score=clamp_confidence(data.get("confidence_score")),
            processing_notes=notes.strip() if isinstance(notes, str) else "",
            errors=[],
        )

        raw_guests = data.get("guests")
        if not isinstance(raw_guests, list):
            result.errors.append(NO_GUEST_ARRAY)
            return result

        for raw in raw_guests:
            guest = _validate_guest(raw, today)
            if guest is None:
                result.errors.append(f"Incomplete guest data for: {_guest_label(raw)}")
                continue
            result.guests.append(guest)

        if result.errors:
            logger.info(
                "Discarded %d of %d extracted guests", len(result.errors), len(raw_guests)
            )
        return result

    except Exception as e:
        logger.warning("Extraction validation failed: %s", e)
        return ExtractionResult(
            guests=[],
            confidence_score=0.0,
            processing_notes="Data validation failed",
            errors=[str(e)],
        )
