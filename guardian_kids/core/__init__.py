# Guardian Kids - Core Domain

# Re-export types for convenient access
from .types import (
    StoryBeat,
    StoryNode,
    StoryChoice,
    StoryProgress,
    StoryDocument,
    StoryImage,
    StyleLock,
    PageType,
    CoverPage,
    ContentPage,
    IllustrationPage,
    EndPage,
    FlipbookPage,
    GeneratedPart,
)
from .story_graph import StoryGraph, linear_intro_choices
from .engine import ProgressStore, StoryEngine
from .pagination import generate_flipbook_pages, paginate_content

__all__ = [
    "StoryBeat",
    "StoryNode",
    "StoryChoice",
    "StoryProgress",
    "StoryDocument",
    "StoryImage",
    "StyleLock",
    "PageType",
    "CoverPage",
    "ContentPage",
    "IllustrationPage",
    "EndPage",
    "FlipbookPage",
    "GeneratedPart",
    "StoryGraph",
    "linear_intro_choices",
    "ProgressStore",
    "StoryEngine",
    "generate_flipbook_pages",
    "paginate_content",
]
