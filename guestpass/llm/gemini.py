"""
Gemini model factory.

Two backends:
  1. Vertex AI SDK (production) when GOOGLE_CLOUD_PROJECT is set
  2. google-generativeai (local dev) when GOOGLE_API_KEY / GEMINI_API_KEY is set
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from guestpass.infrastructure.settings import (
    GEMINI_LOCATION,
    GEMINI_MODEL,
    GOOGLE_API_KEY,
    GOOGLE_CLOUD_PROJECT,
)
from guestpass.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def _vertex_model(project: str, model_name: str) -> Any:
    import vertexai
    from vertexai.generative_models import GenerativeModel

    location = GEMINI_LOCATION or os.getenv("GEMINI_LOCATION", "us-central1")
    vertexai.init(project=project, location=location)
    logger.info(
        "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
        project,
        location,
        model_name,
    )
    return GenerativeModel(model_name)


def _api_key_model(api_key: str, model_name: str) -> Any:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    logger.info("Initialized Gemini model (google-generativeai): model=%s", model_name)
    return genai.GenerativeModel(model_name)


@lru_cache(maxsize=4)
def get_gemini_model(model_name: str = GEMINI_MODEL) -> Any:
    """
    Get or create the shared Gemini model for model_name.

    Raises:
        GeminiInitializationError: If neither backend is configured or the SDK fails
    """
    # Read env at call time too: dotenv may load after this module is imported
    project = GOOGLE_CLOUD_PROJECT or os.getenv("GOOGLE_CLOUD_PROJECT")
    api_key = GOOGLE_API_KEY or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")

    if not project and not api_key:
        raise GeminiInitializationError(
            "Gemini is not configured. Set GOOGLE_CLOUD_PROJECT (Vertex AI) "
            "or GOOGLE_API_KEY / GEMINI_API_KEY."
        )

    try:
        if project:
            return _vertex_model(project, model_name)
        return _api_key_model(api_key, model_name)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e


def clear_model_cache() -> None:
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")
