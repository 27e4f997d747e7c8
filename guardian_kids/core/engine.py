"""
Story graph engine: one reader's walk through an interactive story.

Resolves where the reader is, offers choices, advances on selection and
persists progress. Persistence is best-effort: read and write failures are
logged and the walk continues from in-memory state.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol

from guardian_kids.config.story import STORY_CONSTANTS

from .story_graph import StoryGraph
from .types import StoryChoice, StoryNode, StoryProgress

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    """Persistence for reading progress, keyed by (user_id, story_id)."""

    async def get_progress(self, user_id: str, story_id: str) -> Optional[StoryProgress]: ...

    async def upsert_progress(
        self,
        user_id: str,
        story_id: str,
        current_node_id: str,
        path_history: list[str],
        completed_at: Optional[datetime] = None,
    ) -> None: ...

    async def delete_progress(self, user_id: str, story_id: str) -> bool: ...


class StoryEngine:
    """
    Walks a StoryGraph for one (user, story) pair.

    States are visited nodes; transitions are reader choices or auto choices.
    A node with is_ending_node is terminal.

    Args:
        graph: The story's nodes and choices
        store: Progress persistence
        user_id: Reader
        story_id: Story being read
    """

    def __init__(self, graph: StoryGraph, store: ProgressStore, user_id: str, story_id: str):
        self.graph = graph
        self.store = store
        self.user_id = user_id
        self.story_id = story_id

        self.current_node: Optional[StoryNode] = None
        self.path_history: list[str] = []
        self.is_transitioning = False
        self.last_save_ok = True

    @property
    def _log_extra(self) -> dict:
        return {"story_id": self.story_id, "user_id": self.user_id}

    @property
    def is_configured(self) -> bool:
        return self.current_node is not None

    @property
    def is_complete(self) -> bool:
        return self.current_node is not None and self.current_node.is_ending_node

    def available_choices(self) -> list[StoryChoice]:
        """Choices the reader can pick at the current node."""
        if self.current_node is None:
            return []
        return self.graph.choices_from(self.current_node.id)

    def get_start_node(self) -> Optional[StoryNode]:
        return self.graph.get_start_node()

    async def load_progress(self) -> Optional[StoryProgress]:
        """Read saved progress. Failures read as "never started"."""
        try:
            return await self.store.get_progress(self.user_id, self.story_id)
        except Exception as e:
            logger.warning(f"Failed to load story progress: {e}", extra=self._log_extra)
            return None

    def resolve_initial_node(self, progress: Optional[StoryProgress]) -> Optional[StoryNode]:
        """
        Pick the node to show when the story is opened.

        Resumes at the saved node when it is still in the graph; a saved node
        that was deleted or regenerated falls back to the start node.
        """
        if progress is not None and progress.current_node_id:
            saved = self.graph.get_node(progress.current_node_id)
            if saved is not None:
                self.current_node = saved
                history = progress.path_history
                self.path_history = list(history) if isinstance(history, list) else []
                return saved
            logger.debug(
                f"Saved node {progress.current_node_id} no longer exists, starting over",
                extra=self._log_extra,
            )

        start = self.graph.get_start_node()
        if start is None:
            self.current_node = None
            self.path_history = []
            return None

        self.current_node = start
        self.path_history = [start.node_key]
        return start

    async def start(self) -> Optional[StoryNode]:
        """Load progress and resolve the initial node."""
        progress = await self.load_progress()
        return self.resolve_initial_node(progress)

    async def advance(self, choice: StoryChoice) -> Optional[StoryNode]:
        """
        Follow a choice to its destination and persist the new position.

        Returns the next node, or None when the transition is ignored
        (destination not loaded, or another transition still in flight).
        The in-memory move stands even if the save fails.
        """
        if self.is_transitioning:
            logger.info("Transition already in progress, ignoring choice", extra=self._log_extra)
            return None

        next_node = self.graph.get_node(choice.to_node_id)
        if next_node is None:
            logger.info(
                f"Choice {choice.id} points at unloaded node {choice.to_node_id}, ignoring",
                extra={**self._log_extra, "node_id": choice.to_node_id},
            )
            return None

        self.is_transitioning = True
        try:
            self.current_node = next_node
            self.path_history = [*self.path_history, next_node.node_key]
            await self.save_progress()
        finally:
            self.is_transitioning = False

        return next_node

    async def save_progress(self) -> bool:
        """Upsert the current position. Last writer wins; never raises."""
        if self.current_node is None:
            return False

        completed_at = datetime.now(timezone.utc) if self.current_node.is_ending_node else None
        try:
            await self.store.upsert_progress(
                self.user_id,
                self.story_id,
                self.current_node.id,
                list(self.path_history),
                completed_at=completed_at,
            )
            self.last_save_ok = True
        except Exception as e:
            logger.warning(
                f"Failed to save story progress: {e}",
                extra={**self._log_extra, "node_id": self.current_node.id},
            )
            self.last_save_ok = False
        return self.last_save_ok

    async def restart(self) -> Optional[StoryNode]:
        """Forget saved progress and go back to the start node."""
        try:
            await self.store.delete_progress(self.user_id, self.story_id)
        except Exception as e:
            logger.warning(f"Failed to reset story progress: {e}", extra=self._log_extra)

        self.is_transitioning = False
        return self.resolve_initial_node(None)

    def pending_auto_advance(self) -> Optional[StoryChoice]:
        """The auto choice the engine would follow from the current node."""
        if self.current_node is None or self.is_transitioning:
            return None
        return self.graph.auto_choice_from(self.current_node.id)

    def auto_advance_delay(self, choice: StoryChoice) -> float:
        if choice.auto_delay_seconds is not None:
            return choice.auto_delay_seconds
        return STORY_CONSTANTS["auto_advance_delay_seconds"]

    async def run_auto_advance(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> Optional[StoryNode]:
        """Wait out the beat's delay, then take its single auto transition.

        For in-process readers that hold an engine across the delay. The HTTP
        API does not call this: it reports the pending choice and delay as
        `auto_advance` and the client posts the choice when the delay ends.
        """
        choice = self.pending_auto_advance()
        if choice is None:
            return None

        await sleep(self.auto_advance_delay(choice))

        # The reader may have moved on while we waited
        if self.current_node is None or self.current_node.id != choice.from_node_id:
            return None
        return await self.advance(choice)
