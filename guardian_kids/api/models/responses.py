"""Pydantic models for API responses."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from guardian_kids.core.engine import StoryEngine
from guardian_kids.core.types import FlipbookPage, StoryChoice, StoryNode

from .enums import PageTypeName


class NodeResponse(BaseModel):
    """A story node as shown to the reader."""

    id: str
    node_key: str
    title: Optional[str] = None
    content: str
    paragraphs: list[str]
    image_url: Optional[str] = None
    is_start_node: bool = False
    is_ending_node: bool = False
    beat: Optional[str] = None

    @classmethod
    def from_node(cls, node: StoryNode) -> "NodeResponse":
        return cls(
            id=node.id,
            node_key=node.node_key,
            title=node.title,
            content=node.content,
            paragraphs=node.paragraphs,
            image_url=node.image_url,
            is_start_node=node.is_start_node,
            is_ending_node=node.is_ending_node,
            beat=node.beat.value if node.beat else None,
        )


class ChoiceResponse(BaseModel):
    """A choice the reader can pick."""

    id: str
    choice_text: str
    choice_order: int
    to_node_id: str
    is_generated: bool = True  # False when the destination still needs generating

    @classmethod
    def from_choice(cls, choice: StoryChoice, destination: Optional[StoryNode]) -> "ChoiceResponse":
        return cls(
            id=choice.id,
            choice_text=choice.choice_text,
            choice_order=choice.choice_order,
            to_node_id=choice.to_node_id,
            is_generated=destination is not None and destination.is_generated,
        )


class AutoAdvanceResponse(BaseModel):
    """An engine-driven transition the client should take after a pause."""

    choice_id: str
    to_node_id: str
    delay_seconds: float


class ReaderStateResponse(BaseModel):
    """Where the reader is in an interactive story."""

    story_id: str
    configured: bool
    node: Optional[NodeResponse] = None
    choices: list[ChoiceResponse] = Field(default_factory=list)
    path_history: list[str] = Field(default_factory=list)
    is_complete: bool = False
    auto_advance: Optional[AutoAdvanceResponse] = None
    advanced: Optional[bool] = None  # Set on choice selection; False means no-op
    progress_saved: bool = True
    message: Optional[str] = None

    @classmethod
    def from_engine(cls, engine: StoryEngine, advanced: Optional[bool] = None) -> "ReaderStateResponse":
        if engine.current_node is None:
            return cls(
                story_id=engine.story_id,
                configured=False,
                message="This interactive story is not yet configured.",
            )

        auto = engine.pending_auto_advance()
        return cls(
            story_id=engine.story_id,
            configured=True,
            node=NodeResponse.from_node(engine.current_node),
            choices=[
                ChoiceResponse.from_choice(c, engine.graph.get_node(c.to_node_id))
                for c in engine.available_choices()
            ],
            path_history=list(engine.path_history),
            is_complete=engine.is_complete,
            auto_advance=AutoAdvanceResponse(
                choice_id=auto.id,
                to_node_id=auto.to_node_id,
                delay_seconds=engine.auto_advance_delay(auto),
            )
            if auto
            else None,
            advanced=advanced,
            progress_saved=engine.last_save_ok,
        )


class FlipbookPageResponse(BaseModel):
    """One flipbook page in wire shape."""

    model_config = ConfigDict(populate_by_name=True)

    type: PageTypeName
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    text: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None


class FlipbookResponse(BaseModel):
    """Paginated flipbook for a linear story."""

    story_id: str
    pages: list[FlipbookPageResponse]

    @classmethod
    def from_pages(cls, story_id: str, pages: list[FlipbookPage]) -> "FlipbookResponse":
        return cls(
            story_id=story_id,
            pages=[FlipbookPageResponse.model_validate(page.to_dict()) for page in pages],
        )


class PageImagesJobResponse(BaseModel):
    """Response when enqueueing a batch illustration job."""

    job_id: str
    story_id: str
    page_numbers: list[int]
    message: str = Field(default="Illustration job queued.")
