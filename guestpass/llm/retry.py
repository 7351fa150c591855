"""Gemini call with retry.

Transient Google API failures are converted to builtin exception types and
retried up to LLM_MAX_RETRIES times with exponential backoff. Everything else
propagates to the caller, which owns the final-failure policy.
"""

from __future__ import annotations

from google.api_core.exceptions import (
    DeadlineExceeded,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from guestpass.config import LLM_MAX_RETRIES, LLM_TIMEOUT_SECONDS
from guestpass.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_MODEL, GEMINI_TEMPERATURE
from guestpass.llm.gemini import get_gemini_model
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def call_llm(prompt: str, model_name: str = GEMINI_MODEL, counter_prefix: str = "llm") -> str:
    """Send prompt to Gemini and return the response text.

    Raises:
        TimeoutError: On deadline exceeded (retried).
        ConnectionError: On service unavailable or internal error (retried).
        OSError: On resource exhausted / rate limited (retried).
        GeminiInitializationError: If the model cannot be created (not retried).
    """
    model = get_gemini_model(model_name)
    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
        return response.text
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.timeout")
        logger.warning("LLM call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.service_unavailable")
        logger.warning("LLM service unavailable, will retry: %s", e)
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.rate_limited")
        logger.warning("LLM rate limited (429), will retry: %s", e)
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.internal_error")
        logger.warning("LLM internal error (500), will retry: %s", e)
        raise ConnectionError(f"LLM internal error: {e}") from e
