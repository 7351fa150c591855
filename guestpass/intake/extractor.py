"""
Guest Extractor - turn a free-text visitor request into guest entries.

Sends the email body and sender to Gemini with a fixed JSON-only instruction,
strips any Markdown fencing from the reply, parses it loosely and hands the
result to the validator. Model and parse failures come back as an empty
ExtractionResult rather than an exception.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from datetime import date

from guestpass.config import INTAKE_BODY_TRUNCATION
from guestpass.infrastructure.settings import GEMINI_MODEL
from guestpass.intake.types import ExtractionResult
from guestpass.intake.validator import validate_extraction
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter, time_block
from guestpass.utils.redaction import redact, sanitize_email_body, sanitize_for_prompt

logger = get_logger(__name__)

LLMCall = Callable[[str], str]

_FENCE_OPEN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers anywhere in the reply."""
    return _FENCE_OPEN.sub("", text).strip()


class GuestExtractor:
    """Extracts guest visit details from email text with Gemini."""

    EXTRACTION_PROMPT = """You are the guest information extraction system for a building access portal.
Extract guest details from the email below and return ONLY a valid JSON response.

IMPORTANT RULES:
1. Return ONLY valid JSON - no additional text or explanations
2. If no clear guest information is found, return an empty "guests" array
3. Be conservative with confidence scores (0.0 to 1.0)
4. Use reasonable defaults for missing information
5. Convert dates to YYYY-MM-DD format (today is {today})
6. Convert times to HH:MM format (24-hour)

Expected JSON format:
{{
  "guests": [
    {{
      "name": "Full Name",
      "visit_date": "YYYY-MM-DD",
      "estimated_arrival": "HH:MM",
      "organization": "Organization Name",
      "floor_access": "Floor X" or "Floors X, Y",
      "purpose": "Meeting purpose",
      "notes": "Additional notes"
    }}
  ],
  "confidence_score": 0.85,
  "processing_notes": "Brief explanation of extraction"
}}

EMAIL CONTENT TO PROCESS:
{content}

SENDER EMAIL: {sender}
"""

    def __init__(self, llm_call: LLMCall | None = None, model_name: str = GEMINI_MODEL):
        """
        Args:
            llm_call: prompt -> response text. Defaults to the Gemini call with retry.
            model_name: Model identifier, also recorded on audit rows.
        """
        self.model_name = model_name
        self._llm_call = llm_call

    def _call(self, prompt: str) -> str:
        if self._llm_call is not None:
            return self._llm_call(prompt)

        from guestpass.llm.retry import call_llm

        return call_llm(prompt, model_name=self.model_name, counter_prefix="intake.extractor")

    def build_prompt(self, email_content: str, sender_email: str, today: date | None = None) -> str:
        return self.EXTRACTION_PROMPT.format(
            today=(today or date.today()).isoformat(),
            content=sanitize_email_body(email_content, INTAKE_BODY_TRUNCATION),
            sender=sanitize_for_prompt(sender_email, 320),
        )

    def extract(
        self, email_content: str, sender_email: str, today: date | None = None
    ) -> ExtractionResult:
        """
        Extract guests from email_content.

        Never raises: any failure yields guests=[], confidence 0 and
        processing_notes "Error processing email: <message>".
        """
        try:
            prompt = self.build_prompt(email_content, sender_email, today=today)
            with time_block("intake.extractor.latency"):
                response_text = self._call(prompt)

            if response_text is None:
                raise ValueError("Empty response from model")

            payload = json.loads(strip_code_fences(response_text))

        except Exception as e:
            counter("intake.extractor.failed")
            logger.warning("Guest extraction failed for sender=%s: %s", redact(sender_email), e)
            return ExtractionResult.failed(str(e))

        result = validate_extraction(payload, today=today)
        counter("intake.extractor.completed")
        logger.info(
            "Extracted %d guest(s) for sender=%s (confidence=%.2f, discarded=%d)",
            len(result.guests),
            redact(sender_email),
            result.confidence_score,
            len(result.errors),
        )
        return result
