"""
Email address helpers for the intake pipeline.
"""

from __future__ import annotations

import re

_ANGLE_ADDRESS = re.compile(r"<([^>]+)>")
_BARE_ADDRESS = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")


def extract_email_address(raw_from: str | None) -> str:
    """
    Pull the bare address out of a From header.

    Case is preserved because directory lookups match the address exactly as
    stored. If nothing that looks like an address is found, the trimmed input
    is returned as a best-effort fallback.

    Examples:
        >>> extract_email_address("Jane Doe <jane@acme.com>")
        'jane@acme.com'

        >>> extract_email_address("  jane@acme.com ")
        'jane@acme.com'

        >>> extract_email_address("reception desk")
        'reception desk'
    """
    if not raw_from:
        return ""

    angle_match = _ANGLE_ADDRESS.search(raw_from)
    if angle_match:
        return angle_match.group(1).strip()

    bare_match = _BARE_ADDRESS.search(raw_from)
    if bare_match:
        return bare_match.group(1)

    return raw_from.strip()
