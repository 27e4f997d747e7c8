"""
LLM configuration for Guardian Kids story-part generation.

Includes:
- 120s timeout per LLM call to fail fast on hanging connections
- Retry with exponential backoff for transient network errors
"""

import os
import logging
from dotenv import load_dotenv
import dspy
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Timeout for LLM calls (seconds)
LLM_TIMEOUT = 120

# Network errors that should trigger retry
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,  # Catches [Errno 32] Broken pipe
)


def has_llm_credentials() -> bool:
    """True when any supported provider key is configured."""
    return any(
        os.getenv(key)
        for key in ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY")
    )


def get_inference_lm() -> dspy.LM:
    """
    Get the inference LM for interactive story parts.

    Priority order:
    1. Gemini Flash (GOOGLE_API_KEY) - fast enough for a reader waiting on a choice
    2. Claude Sonnet (ANTHROPIC_API_KEY)
    3. GPT-4o (OPENAI_API_KEY)
    """
    if os.getenv("GOOGLE_API_KEY"):
        return dspy.LM(
            "gemini/gemini-2.5-flash",
            api_key=os.getenv("GOOGLE_API_KEY"),
            max_tokens=2048,
            temperature=1.0,
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("ANTHROPIC_API_KEY"):
        return dspy.LM(
            "anthropic/claude-sonnet-4-20250514",
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            max_tokens=2048,
            temperature=0.9,
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("OPENAI_API_KEY"):
        return dspy.LM(
            "openai/gpt-4o",
            api_key=os.getenv("OPENAI_API_KEY"),
            max_tokens=2048,
            temperature=0.9,
            timeout=LLM_TIMEOUT,
        )
    else:
        raise ValueError(
            "No API key found. Set GOOGLE_API_KEY, ANTHROPIC_API_KEY, or OPENAI_API_KEY in .env"
        )


# Retry decorator for LLM calls with network errors
llm_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def get_inference_model_name() -> str:
    """Get the name of the inference model that will be used."""
    if os.getenv("GOOGLE_API_KEY"):
        return "gemini-2.5-flash"
    elif os.getenv("ANTHROPIC_API_KEY"):
        return "claude-sonnet-4-20250514"
    elif os.getenv("OPENAI_API_KEY"):
        return "gpt-4o"
    else:
        return "unknown"


def configure_dspy() -> None:
    """
    Configure DSPy with the inference LM globally.

    Note:
        Prefer passing an LM directly to DspyStoryPartGenerator(lm=...)
        when you need explicit control (tests, scripts).
    """
    dspy.configure(lm=get_inference_lm())
