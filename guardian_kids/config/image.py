"""
Image generation configuration for Guardian Kids.

Page illustrations use Gemini image generation. Limits per story come from
the reader's age band.
"""

import logging
import os

from dotenv import load_dotenv
from google import genai
from google.genai.errors import ClientError, ServerError
from google.genai.types import GenerateContentConfig, Modality
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Image generation constants
IMAGE_CONSTANTS = {
    "model": "gemini-2.5-flash-image",
    "concurrency_limit": 2,  # Pages generated together per batch
}

# Per age band limits (band A = ages 5-7, band B = everyone else)
AGE_BAND_CONSTANTS = {
    "A": {"max_images_per_story": 6, "kid_safe": True},
    "B": {"max_images_per_story": 10, "kid_safe": True},
}


def age_band_for(age_range: str | None) -> str:
    """Map a story's age range to its band key."""
    return "A" if age_range == "5-7" else "B"


def get_image_client() -> genai.Client:
    """
    Get the Gemini client for illustration generation.

    Uses GOOGLE_API_KEY from environment.
    """
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ValueError("GOOGLE_API_KEY not found in environment. Set it in .env file.")

    return genai.Client(api_key=api_key)


def get_image_model() -> str:
    """Get the image model ID."""
    return IMAGE_CONSTANTS["model"]


def get_image_config() -> GenerateContentConfig:
    """Get the default config for image generation."""
    return GenerateContentConfig(
        response_modalities=[Modality.TEXT, Modality.IMAGE]
    )


def extract_image_from_response(response) -> tuple[bytes, str]:
    """
    Extract image bytes and mime type from a Gemini API response.

    Raises:
        ValueError: If no image found in response
    """
    import base64

    for part in response.candidates[0].content.parts:
        if hasattr(part, "inline_data") and part.inline_data:
            data = part.inline_data.data
            mime_type = part.inline_data.mime_type or "image/png"
            image_bytes = base64.b64decode(data) if isinstance(data, str) else data
            return image_bytes, mime_type

    raise ValueError("No image found in response")


def _is_retryable_image_error(exc: BaseException) -> bool:
    """Server errors and rate limits are transient; other client errors are not."""
    if isinstance(exc, ServerError):
        return True
    if isinstance(exc, ClientError):
        return exc.code == 429
    return False


# Retry decorator for image generation calls
image_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=20),
    retry=retry_if_exception(_is_retryable_image_error),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
