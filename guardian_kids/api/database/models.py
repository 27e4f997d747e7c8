"""SQLAlchemy ORM models for PostgreSQL."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class Profile(Base):
    """Reader/creator profile - only the fields the flipbook cover needs."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    author_name: Mapped[Optional[str]] = mapped_column(Text)


class Story(Base):
    """Story model - linear flipbook stories and interactive story roots."""

    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[Optional[str]] = mapped_column(Text)
    cover_image_url: Mapped[Optional[str]] = mapped_column(Text)
    hero_name: Mapped[Optional[str]] = mapped_column(Text)
    story_type: Mapped[Optional[str]] = mapped_column(String(50))  # Genre
    age_range: Mapped[Optional[str]] = mapped_column(String(10))
    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL")
    )
    is_interactive: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    current_part: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    nodes: Mapped[list["StoryNodeRow"]] = relationship(
        back_populates="story", cascade="all, delete-orphan"
    )
    images: Mapped[list["StoryImageRow"]] = relationship(
        back_populates="story", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_stories_created_by", "created_by"),
    )


class StoryNodeRow(Base):
    """Story node - one unit of narrative in an interactive story."""

    __tablename__ = "story_nodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    story_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False
    )
    node_key: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")  # Empty = placeholder
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_start_node: Mapped[bool] = mapped_column(Boolean, default=False)
    is_ending_node: Mapped[bool] = mapped_column(Boolean, default=False)
    beat: Mapped[Optional[str]] = mapped_column(String(20))  # opening, continuation, ending

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationship
    story: Mapped["Story"] = relationship(back_populates="nodes")

    __table_args__ = (
        Index("idx_story_nodes_story_id", "story_id"),
        Index("uq_story_node_key", "story_id", "node_key", unique=True),
        # At most one start node per story
        Index(
            "uq_story_start_node",
            "story_id",
            unique=True,
            postgresql_where=text("is_start_node"),
        ),
    )


class StoryChoiceRow(Base):
    """Story choice - a directed edge between two nodes."""

    __tablename__ = "story_choices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    from_node_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("story_nodes.id", ondelete="CASCADE"), nullable=False
    )
    # No FK: may point at a node generated later
    to_node_id: Mapped[str] = mapped_column(String(36), nullable=False)
    choice_text: Mapped[str] = mapped_column(Text, nullable=False)
    choice_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_auto: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_delay_seconds: Mapped[Optional[float]] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_story_choices_from_node", "from_node_id"),
        Index("uq_story_choice_order", "from_node_id", "choice_order", unique=True),
    )


class UserStoryProgress(Base):
    """Reader progress - one row per (user, story)."""

    __tablename__ = "user_story_progress"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    story_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False
    )
    current_node_id: Mapped[str] = mapped_column(String(36), nullable=False)
    path_history: Mapped[Optional[str]] = mapped_column(Text)  # JSON array of node keys
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("uq_user_story_progress", "user_id", "story_id", unique=True),
        Index("idx_progress_user", "user_id"),
    )


class StoryImageRow(Base):
    """Generated story image - cover, node or page illustration."""

    __tablename__ = "story_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    story_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_selected: Mapped[bool] = mapped_column(Boolean, default=False)
    page_number: Mapped[Optional[int]] = mapped_column(Integer)
    generated_by_trigger: Mapped[Optional[str]] = mapped_column(String(30))
    generation_prompt: Mapped[Optional[str]] = mapped_column(Text)
    style_lock_data: Mapped[Optional[str]] = mapped_column(Text)  # JSON {style, palette, camera}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationship
    story: Mapped["Story"] = relationship(back_populates="images")

    __table_args__ = (
        Index("idx_story_images_story_id", "story_id"),
    )
