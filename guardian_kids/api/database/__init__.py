"""Database module for story, graph and progress persistence."""

from .db import init_db, get_pool, open_pool, close_pool, engine, Base
from .models import (
    Profile,
    Story,
    StoryNodeRow,
    StoryChoiceRow,
    UserStoryProgress,
    StoryImageRow,
)
from .repository import StoryRepository, StoryGraphRepository, ProgressRepository

__all__ = [
    # Connection management
    "init_db",
    "get_pool",
    "open_pool",
    "close_pool",
    "engine",
    "Base",
    # Models
    "Profile",
    "Story",
    "StoryNodeRow",
    "StoryChoiceRow",
    "UserStoryProgress",
    "StoryImageRow",
    # Repositories
    "StoryRepository",
    "StoryGraphRepository",
    "ProgressRepository",
]
