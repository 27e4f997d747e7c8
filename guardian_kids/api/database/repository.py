"""Repositories for stories, story graphs and reading progress using raw asyncpg SQL."""

import json
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

import asyncpg

from guardian_kids.config.story import STORY_CONSTANTS
from guardian_kids.core.types import (
    StoryChoice,
    StoryDocument,
    StoryImage,
    StoryNode,
    StoryProgress,
    StyleLock,
)


class StoryRepository:
    """Repository for story documents and their images."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get_story(self, story_id: str) -> Optional[StoryDocument]:
        """Get a story by ID."""
        row = await self.conn.fetchrow(
            "SELECT * FROM stories WHERE id = $1",
            story_id,
        )
        if not row:
            return None
        return StoryDocument.from_db_record(row)

    async def get_creator_name(self, user_id: Optional[str]) -> str:
        """Author name, then display name, then the default byline."""
        default = STORY_CONSTANTS["default_creator_name"]
        if not user_id:
            return default

        row = await self.conn.fetchrow(
            "SELECT display_name, author_name FROM profiles WHERE id = $1",
            user_id,
        )
        if not row:
            return default
        return row["author_name"] or row["display_name"] or default

    async def list_images(self, story_id: str) -> list[StoryImage]:
        """Story images in creation order."""
        rows = await self.conn.fetch(
            """
            SELECT id, image_url, is_selected, page_number
            FROM story_images
            WHERE story_id = $1
            ORDER BY created_at ASC
            """,
            story_id,
        )
        return [
            StoryImage(
                id=str(r["id"]),
                image_url=r["image_url"],
                is_selected=bool(r["is_selected"]),
                page_number=r["page_number"],
            )
            for r in rows
        ]

    async def count_images(self, story_id: str) -> int:
        count = await self.conn.fetchval(
            "SELECT COUNT(*) FROM story_images WHERE story_id = $1",
            story_id,
        )
        return count or 0

    async def add_image(
        self,
        story_id: str,
        image_url: str,
        page_number: Optional[int] = None,
        trigger: Optional[str] = None,
        prompt: Optional[str] = None,
        style_lock: Optional[StyleLock] = None,
    ) -> str:
        """Insert a story image and return its ID."""
        image_id = str(uuid.uuid4())
        await self.conn.execute(
            """
            INSERT INTO story_images
                (id, story_id, image_url, is_selected, page_number,
                 generated_by_trigger, generation_prompt, style_lock_data)
            VALUES ($1, $2, $3, FALSE, $4, $5, $6, $7)
            """,
            image_id,
            story_id,
            image_url,
            page_number,
            trigger,
            prompt,
            style_lock.to_json() if style_lock else None,
        )
        return image_id

    async def get_style_lock(self, story_id: str) -> Optional[StyleLock]:
        """Style lock saved with the story's first image, if any."""
        value = await self.conn.fetchval(
            """
            SELECT style_lock_data
            FROM story_images
            WHERE story_id = $1
            ORDER BY created_at ASC
            LIMIT 1
            """,
            story_id,
        )
        return StyleLock.from_db_value(value)

    async def update_story_part(self, story_id: str, current_part: int, is_complete: bool = False) -> None:
        """Record how far interactive generation has got."""
        await self.conn.execute(
            """
            UPDATE stories
            SET current_part = $2,
                is_complete = is_complete OR $3
            WHERE id = $1
            """,
            story_id,
            current_part,
            is_complete,
        )


class StoryGraphRepository:
    """Repository for story nodes and choices."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def list_nodes(self, story_id: str) -> list[StoryNode]:
        rows = await self.conn.fetch(
            """
            SELECT * FROM story_nodes
            WHERE story_id = $1
            ORDER BY created_at
            """,
            story_id,
        )
        return [StoryNode.from_db_record(r) for r in rows]

    async def list_choices(self, story_id: str) -> list[StoryChoice]:
        """All choices leaving nodes of a story, in display order."""
        rows = await self.conn.fetch(
            """
            SELECT c.* FROM story_choices c
            JOIN story_nodes n ON n.id = c.from_node_id
            WHERE n.story_id = $1
            ORDER BY c.from_node_id, c.choice_order
            """,
            story_id,
        )
        return [StoryChoice.from_db_record(r) for r in rows]

    async def create_node(self, node: StoryNode) -> None:
        await self.conn.execute(
            """
            INSERT INTO story_nodes
                (id, story_id, node_key, title, content, image_url, is_start_node, is_ending_node, beat)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            """,
            node.id,
            node.story_id,
            node.node_key,
            node.title,
            node.content,
            node.image_url,
            node.is_start_node,
            node.is_ending_node,
            node.beat.value if node.beat else None,
        )

    async def fill_node(self, node: StoryNode) -> None:
        """Write generated content into an existing placeholder node."""
        await self.conn.execute(
            """
            UPDATE story_nodes
            SET title = $2,
                content = $3,
                image_url = $4,
                is_ending_node = $5,
                beat = $6
            WHERE id = $1
            """,
            node.id,
            node.title,
            node.content,
            node.image_url,
            node.is_ending_node,
            node.beat.value if node.beat else None,
        )

    async def create_choices(self, choices: Iterable[StoryChoice]) -> None:
        choice_data = [
            (
                c.id,
                c.from_node_id,
                c.to_node_id,
                c.choice_text,
                c.choice_order,
                c.is_auto,
                c.auto_delay_seconds,
            )
            for c in choices
        ]
        if not choice_data:
            return
        await self.conn.executemany(
            """
            INSERT INTO story_choices
                (id, from_node_id, to_node_id, choice_text, choice_order, is_auto, auto_delay_seconds)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            choice_data,
        )


class ProgressRepository:
    """Reading progress keyed by (user_id, story_id). Last writer wins."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get_progress(self, user_id: str, story_id: str) -> Optional[StoryProgress]:
        row = await self.conn.fetchrow(
            """
            SELECT * FROM user_story_progress
            WHERE user_id = $1 AND story_id = $2
            """,
            user_id,
            story_id,
        )
        if not row:
            return None
        return StoryProgress.from_db_record(row)

    async def upsert_progress(
        self,
        user_id: str,
        story_id: str,
        current_node_id: str,
        path_history: list[str],
        completed_at: Optional[datetime] = None,
    ) -> None:
        """Insert or update the reader's position.

        completed_at is only ever set, never cleared, by an upsert; restart
        deletes the row instead.
        """
        await self.conn.execute(
            """
            INSERT INTO user_story_progress
                (id, user_id, story_id, current_node_id, path_history, completed_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (user_id, story_id) DO UPDATE
            SET current_node_id = EXCLUDED.current_node_id,
                path_history = EXCLUDED.path_history,
                completed_at = COALESCE(EXCLUDED.completed_at, user_story_progress.completed_at),
                updated_at = EXCLUDED.updated_at
            """,
            str(uuid.uuid4()),
            user_id,
            story_id,
            current_node_id,
            json.dumps(path_history),
            completed_at,
            datetime.now(timezone.utc),
        )

    async def delete_progress(self, user_id: str, story_id: str) -> bool:
        result = await self.conn.execute(
            "DELETE FROM user_story_progress WHERE user_id = $1 AND story_id = $2",
            user_id,
            story_id,
        )
        # Result is like "DELETE 1" or "DELETE 0"
        return result.split()[-1] != "0"
