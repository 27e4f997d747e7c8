from .story_part_generator import (
    DspyStoryPartGenerator,
    GenerationError,
    StoryPartGenerator,
    parse_part_output,
)
from .page_image_generator import (
    GeminiPageImageGenerator,
    PageImageGenerator,
    StyleLock,
    build_page_prompt,
)

__all__ = [
    "DspyStoryPartGenerator",
    "GenerationError",
    "StoryPartGenerator",
    "parse_part_output",
    "GeminiPageImageGenerator",
    "PageImageGenerator",
    "StyleLock",
    "build_page_prompt",
]
