"""
Field normalization for model-extracted guest data.

Both functions are total: they return a canonical string or None and never
raise. Relative dates use the host's local calendar day.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
)

_TIME_PATTERN = re.compile(r"(\d{1,2}):?(\d{0,2})\s*(am|pm)?", re.IGNORECASE)


def _parse_absolute_date(text: str) -> date | None:
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_date(value: Any, today: date | None = None) -> str | None:
    """
    Canonical YYYY-MM-DD for value, or None.

    Absolute dates are tried first; otherwise "today" / "tomorrow" anywhere in
    the text (any case) resolve against today, which defaults to the local date.
    """
    if value is None or isinstance(value, bool):
        return None

    text = str(value).strip()
    if not text:
        return None

    parsed = _parse_absolute_date(text)
    if parsed is not None:
        return parsed.isoformat()

    base = today or date.today()
    lowered = text.lower()
    if "today" in lowered:
        return base.isoformat()
    if "tomorrow" in lowered:
        return (base + timedelta(days=1)).isoformat()
    return None


def normalize_time(value: Any) -> str | None:
    """
    Canonical 24-hour HH:MM for value, or None.

    Accepts "14:30", "2:30 pm", "2pm", "0930" and similar. Minutes default
    to 00; 12am is midnight and 12pm is noon.
    """
    if value is None or isinstance(value, bool):
        return None

    match = _TIME_PATTERN.search(str(value))
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or "0")
    meridiem = (match.group(3) or "").lower()

    if meridiem == "pm" and hours != 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return f"{hours:02d}:{minutes:02d}"
