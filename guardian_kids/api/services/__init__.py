"""Services for interactive reading, story-part generation and illustrations."""

from .errors import ChoiceNotFound, GenerationError, ImageLimitExceeded, NotGeneratable, StoryNotFound
from .page_images import enqueue_page_images, generate_page_images
from .reader_service import ReaderService
from .story_parts import StoryPartService

__all__ = [
    "ReaderService",
    "StoryPartService",
    "generate_page_images",
    "enqueue_page_images",
    "GenerationError",
    "StoryNotFound",
    "ChoiceNotFound",
    "NotGeneratable",
    "ImageLimitExceeded",
]
