"""
Redaction helpers for logs and LLM prompts.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_subject(): Partially redact email subjects for debugging
- sanitize_for_prompt(): Neutralise prompt injection patterns in short fields
- sanitize_email_body(): Same for a full email body, without stripping markup
"""

from __future__ import annotations

import re
from hashlib import sha256

INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE)


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_subject(subject: str | None, max_length: int = 30) -> str:
    """
    First max_length characters of a subject plus a short hash.

    Example:
        "Visitor tomorrow: Sarah Johnson from TechCorp" ->
        "Visitor tomorrow: Sarah Johnso... (h:1f2e3d)"
    """
    if not subject:
        return "(no subject)"

    visible = subject[:max_length] + "..." if len(subject) > max_length else subject
    digest = sha256(subject.encode("utf-8")).hexdigest()[:6]
    return f"{visible} (h:{digest})"


def sanitize_for_prompt(text: str | None, max_length: int = 500) -> str:
    """
    Sanitize a short user-provided field (sender, subject) before it goes into a prompt.

    Truncates, replaces known injection patterns and drops characters that
    could break out of the prompt's JSON example.
    """
    if not text:
        return ""

    text = text[:max_length]
    text = INJECTION_REGEX.sub("[REDACTED]", text)
    text = re.sub(r"[<>{}|\\]", "", text)
    return text.strip()


def sanitize_email_body(text: str | None, max_length: int) -> str:
    """Truncate an email body and replace injection patterns. Markup is kept."""
    if not text:
        return ""

    return INJECTION_REGEX.sub("[REDACTED]", text[:max_length]).strip()
