"""
Gmail adapter utilities for converting API message payloads into InboundEmail.

Side-effect free apart from telemetry; parse failures surface as
GmailParsingError without exposing message contents.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

from guestpass.observability.telemetry import counter, log_event

_TEXT_PLAIN = "text/plain"
_TEXT_HTML = "text/html"


class GmailParsingError(ValueError):
    """Raised when a Gmail payload cannot be converted into an InboundEmail."""


@dataclass
class InboundEmail:
    message_id: str
    from_address: str
    subject: str
    text: str
    html: str

    @property
    def content(self) -> str:
        """Plain text when present, otherwise the HTML body."""
        return self.text or self.html


def _header_lookup(headers: Iterable[dict[str, str]], name: str) -> str | None:
    name_lower = name.lower()
    for header in headers:
        if header.get("name", "").lower() == name_lower:
            return header.get("value")
    return None


def _decode_base64(data: str) -> str:
    """Decode Gmail's URL-safe base64 payloads."""
    padding = "=" * (-len(data) % 4)
    try:
        decoded = base64.urlsafe_b64decode((data + padding).encode("utf-8"))
        return decoded.decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as exc:
        raise GmailParsingError("failed to decode message body") from exc


def _collect_bodies(part: dict[str, Any], bodies: dict[str, str]) -> None:
    """Walk nested MIME parts; the first text/plain and text/html parts win."""
    mime_type = part.get("mimeType", "")
    data = (part.get("body") or {}).get("data")

    if data and mime_type == _TEXT_PLAIN and not bodies["text"]:
        bodies["text"] = _decode_base64(data)
    elif data and mime_type == _TEXT_HTML and not bodies["html"]:
        bodies["html"] = _decode_base64(data)

    for child in part.get("parts") or []:
        _collect_bodies(child, bodies)


def extract_bodies(payload: dict[str, Any]) -> tuple[str, str]:
    """(text, html) from a message payload; missing parts are ""."""
    bodies = {"text": "", "html": ""}
    _collect_bodies(payload, bodies)
    return bodies["text"], bodies["html"]


def parse_gmail_message(message: dict[str, Any]) -> InboundEmail:
    """
    Convert a Gmail API message (format="full") into an InboundEmail.

    Raises:
        GmailParsingError: If the id, payload, From header or body is missing
    """
    if not isinstance(message, dict):
        raise GmailParsingError("message must be a dict")

    try:
        message_id = message["id"]
        payload = message["payload"]
    except KeyError as exc:
        raise GmailParsingError(f"missing field: {exc}") from exc

    message_hash = sha256(str(message_id).encode()).hexdigest()[:12]
    headers = payload.get("headers") or []
    from_address = _header_lookup(headers, "From")
    if not from_address:
        counter("gmail.parse_failed.count")
        log_event("gmail.parse_failed", message_id_hash=message_hash, error="missing From")
        raise GmailParsingError("From header missing")

    text, html = extract_bodies(payload)
    if not text and not html:
        counter("gmail.parse_failed.count")
        log_event("gmail.parse_failed", message_id_hash=message_hash, error="missing body")
        raise GmailParsingError("message body missing")

    counter("gmail.parsed.count")
    return InboundEmail(
        message_id=message_id,
        from_address=from_address,
        subject=_header_lookup(headers, "Subject") or "",
        text=text,
        html=html,
    )
