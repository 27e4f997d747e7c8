"""
Centralized domain types for the Guardian Kids story engine.

All dataclasses shared by the graph engine, the paginator and the service
layer live here to make data flow explicit and avoid circular imports.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Story Graph Types
# =============================================================================


class StoryBeat(str, Enum):
    """Position of a generated node in the three-part interactive arc."""

    OPENING = "opening"
    CONTINUATION = "continuation"
    ENDING = "ending"


@dataclass
class StoryNode:
    """One discrete unit of narrative content in a branching story graph."""

    id: str
    story_id: str
    node_key: str  # Slot identifier, unique within a story ("start", "part_2_a")
    content: str = ""
    title: Optional[str] = None
    image_url: Optional[str] = None
    is_start_node: bool = False
    is_ending_node: bool = False
    beat: Optional[StoryBeat] = None

    @property
    def is_generated(self) -> bool:
        """Placeholder nodes are created empty and filled in by generation."""
        return bool(self.content.strip())

    @property
    def paragraphs(self) -> list[str]:
        """Body text split on blank lines."""
        return [p for p in self.content.split("\n\n") if p.strip()]

    @classmethod
    def from_db_record(cls, record) -> "StoryNode":
        """Build from a story_nodes row (asyncpg Record or dict)."""
        beat = record["beat"]
        return cls(
            id=str(record["id"]),
            story_id=str(record["story_id"]),
            node_key=record["node_key"],
            content=record["content"] or "",
            title=record["title"],
            image_url=record["image_url"],
            is_start_node=bool(record["is_start_node"]),
            is_ending_node=bool(record["is_ending_node"]),
            beat=StoryBeat(beat) if beat else None,
        )


@dataclass
class StoryChoice:
    """A labeled edge from one story node to another.

    Auto choices are engine-driven transitions for scripted intro beats; they
    are never shown to the reader.
    """

    id: str
    from_node_id: str
    to_node_id: str
    choice_text: str
    choice_order: int
    is_auto: bool = False
    auto_delay_seconds: Optional[float] = None

    @classmethod
    def from_db_record(cls, record) -> "StoryChoice":
        """Build from a story_choices row (asyncpg Record or dict)."""
        return cls(
            id=str(record["id"]),
            from_node_id=str(record["from_node_id"]),
            to_node_id=str(record["to_node_id"]),
            choice_text=record["choice_text"],
            choice_order=record["choice_order"],
            is_auto=bool(record["is_auto"]),
            auto_delay_seconds=record["auto_delay_seconds"],
        )


@dataclass
class StoryProgress:
    """A reader's saved position within one story."""

    user_id: str
    story_id: str
    current_node_id: str
    path_history: list[str] = field(default_factory=list)
    id: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_record(cls, record) -> "StoryProgress":
        """Build from a user_story_progress row.

        path_history is stored as JSON text; anything that does not decode
        to a list becomes an empty history.
        """
        history: Any = record["path_history"]
        if isinstance(history, str):
            try:
                history = json.loads(history)
            except ValueError:
                history = []
        if not isinstance(history, list):
            history = []

        return cls(
            id=str(record["id"]),
            user_id=record["user_id"],
            story_id=str(record["story_id"]),
            current_node_id=str(record["current_node_id"]),
            path_history=[str(key) for key in history],
            completed_at=record["completed_at"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )


# =============================================================================
# Story Document Types
# =============================================================================


@dataclass
class StoryDocument:
    """A flat, linear story as stored in the stories table."""

    id: str
    title: str
    content: str = ""
    cover_image_url: Optional[str] = None
    hero_name: Optional[str] = None
    genre: str = "action"
    age_range: Optional[str] = None
    created_by: Optional[str] = None

    @classmethod
    def from_db_record(cls, record) -> "StoryDocument":
        return cls(
            id=str(record["id"]),
            title=record["title"] or "Your Adventure",
            content=record["content"] or "",
            cover_image_url=record["cover_image_url"],
            hero_name=record["hero_name"],
            genre=(record["story_type"] or "action").lower(),
            age_range=record["age_range"],
            created_by=record["created_by"],
        )


@dataclass
class StoryImage:
    """A generated image attached to a story."""

    id: str
    image_url: str
    is_selected: bool = False
    page_number: Optional[int] = None


@dataclass
class StyleLock:
    """Visual constants shared by every illustration in a story.

    Stored with each image as JSON; the story's first image fixes the look
    for all later pages.
    """

    style: str = "storybook watercolor"
    palette: str = "vibrant, kid-friendly colors"
    camera: str = "medium shot"

    def to_json(self) -> str:
        return json.dumps({"style": self.style, "palette": self.palette, "camera": self.camera})

    @classmethod
    def from_db_value(cls, value: Any) -> Optional["StyleLock"]:
        """Decode a style_lock_data column. Unreadable values give None."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        if not isinstance(value, dict):
            return None

        default = cls()
        return cls(
            style=value.get("style") or default.style,
            palette=value.get("palette") or default.palette,
            camera=value.get("camera") or default.camera,
        )


# =============================================================================
# Flipbook Page Types
# =============================================================================


class PageType(str, Enum):
    """Closed set of flipbook page kinds."""

    COVER = "cover"
    CONTENT = "content"
    ILLUSTRATION = "illustration"
    END = "end"


@dataclass(frozen=True)
class CoverPage:
    title: str
    subtitle: str
    image_url: Optional[str] = None
    type: PageType = field(default=PageType.COVER, init=False)

    def to_dict(self) -> dict:
        data = {"type": self.type.value, "title": self.title, "subtitle": self.subtitle}
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data


@dataclass(frozen=True)
class ContentPage:
    text: str
    type: PageType = field(default=PageType.CONTENT, init=False)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "text": self.text}


@dataclass(frozen=True)
class IllustrationPage:
    image_url: str
    type: PageType = field(default=PageType.ILLUSTRATION, init=False)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "imageUrl": self.image_url}


@dataclass(frozen=True)
class EndPage:
    text: str
    type: PageType = field(default=PageType.END, init=False)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "text": self.text}


FlipbookPage = Union[CoverPage, ContentPage, IllustrationPage, EndPage]


# =============================================================================
# Generation Types
# =============================================================================


@dataclass
class GeneratedPart:
    """Text produced by the generation collaborator for one node."""

    content: str
    choices: list[str] = field(default_factory=list)
    title: Optional[str] = None
    illustration_prompt: str = ""
