"""
Module for generating flipbook page illustrations.

The image provider is an opaque collaborator: given a prompt it returns a
URL. The Gemini implementation returns a data: URL, which is what gets stored
until a storage upload step exists.
"""

import asyncio
import base64
from typing import Optional, Protocol

from guardian_kids.config import (
    extract_image_from_response,
    get_image_client,
    get_image_config,
    get_image_model,
    image_retry,
)
from guardian_kids.core.types import StyleLock


class PageImageGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


def build_page_prompt(
    scene: str,
    character: str,
    style_lock: Optional[StyleLock] = None,
    kid_safe: bool = True,
) -> str:
    """Compose the illustration prompt for one page."""
    style_lock = style_lock or StyleLock()
    prompt = "Kid-safe, friendly, " if kid_safe else ""
    prompt += f"Style: {style_lock.style}, Palette: {style_lock.palette}, Camera: {style_lock.camera}. "
    prompt += f"Character: {character}. "
    prompt += "No text or words in the image. "
    prompt += scene
    return prompt


class GeminiPageImageGenerator:
    """Generate illustrations with Gemini image output."""

    def __init__(self):
        self.client = get_image_client()
        self.model = get_image_model()
        self.config = get_image_config()

    @image_retry
    def _generate_sync(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=[prompt],
            config=self.config,
        )
        image_bytes, mime_type = extract_image_from_response(response)
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def generate(self, prompt: str) -> str:
        # google-genai's sync client blocks; keep the event loop free
        return await asyncio.to_thread(self._generate_sync, prompt)
