"""
Configuration module for Guardian Kids.

Re-exports all configuration for convenient access.
"""

from .llm import (
    configure_dspy,
    get_inference_lm,
    get_inference_model_name,
    has_llm_credentials,
    llm_retry,
)
from .story import STORY_CONSTANTS
from .image import (
    AGE_BAND_CONSTANTS,
    IMAGE_CONSTANTS,
    age_band_for,
    get_image_client,
    get_image_model,
    get_image_config,
    extract_image_from_response,
    image_retry,
)

__all__ = [
    # LLM
    "configure_dspy",
    "get_inference_lm",
    "get_inference_model_name",
    "has_llm_credentials",
    "llm_retry",
    # Story
    "STORY_CONSTANTS",
    # Image
    "AGE_BAND_CONSTANTS",
    "IMAGE_CONSTANTS",
    "age_band_for",
    "get_image_client",
    "get_image_model",
    "get_image_config",
    "extract_image_from_response",
    "image_retry",
]
