"""Reader service: loads a story graph and drives the engine for one reader."""

import logging
from typing import Awaitable, Callable, Optional

from guardian_kids.core.engine import StoryEngine
from guardian_kids.core.story_graph import StoryGraph
from guardian_kids.core.types import StoryChoice

from ..database.repository import ProgressRepository, StoryGraphRepository, StoryRepository
from .errors import StoryNotFound

logger = logging.getLogger(__name__)

# Called with (story_id, choice_id) to fill a placeholder destination
GenerateMissing = Callable[[str, str], Awaitable[object]]


class ReaderService:
    """Open, advance and restart interactive stories for a reader."""

    def __init__(
        self,
        story_repo: StoryRepository,
        graph_repo: StoryGraphRepository,
        progress_repo: ProgressRepository,
    ):
        self.story_repo = story_repo
        self.graph_repo = graph_repo
        self.progress_repo = progress_repo

    async def load_graph(self, story_id: str) -> StoryGraph:
        """Load all nodes and choices of a story.

        Raises:
            StoryNotFound: If the story does not exist
        """
        if await self.story_repo.get_story(story_id) is None:
            raise StoryNotFound(story_id)

        nodes = await self.graph_repo.list_nodes(story_id)
        choices = await self.graph_repo.list_choices(story_id)
        return StoryGraph(nodes, choices)

    async def open(self, story_id: str, user_id: str) -> StoryEngine:
        """Build an engine positioned where the reader left off."""
        graph = await self.load_graph(story_id)
        engine = StoryEngine(graph, self.progress_repo, user_id, story_id)
        await engine.start()
        return engine

    async def choose(
        self,
        story_id: str,
        user_id: str,
        choice_id: str,
        generate_missing: Optional[GenerateMissing] = None,
    ) -> tuple[StoryEngine, bool]:
        """
        Follow a choice from the reader's current node.

        Choices that do not leave the current node are ignored. When the
        destination is still a placeholder and `generate_missing` is given,
        it is generated first and the graph reloaded.

        Returns:
            (engine, advanced) - advanced is False for a no-op
        """
        engine = await self.open(story_id, user_id)
        choice = self._choice_from_current(engine, choice_id)
        if choice is None:
            logger.info(
                f"Choice {choice_id} is not available from the current node",
                extra={"story_id": story_id, "user_id": user_id},
            )
            return engine, False

        destination = engine.graph.get_node(choice.to_node_id)
        if destination is not None and not destination.is_generated:
            if generate_missing is None:
                return engine, False
            await generate_missing(story_id, choice_id)
            engine = await self.open(story_id, user_id)
            choice = self._choice_from_current(engine, choice_id)
            if choice is None:
                return engine, False

        next_node = await engine.advance(choice)
        return engine, next_node is not None

    async def restart(self, story_id: str, user_id: str) -> StoryEngine:
        """Delete saved progress and return an engine at the start node."""
        graph = await self.load_graph(story_id)
        engine = StoryEngine(graph, self.progress_repo, user_id, story_id)
        await engine.restart()
        return engine

    @staticmethod
    def _choice_from_current(engine: StoryEngine, choice_id: str) -> Optional[StoryChoice]:
        if engine.current_node is None:
            return None
        for choice in engine.graph.all_choices_from(engine.current_node.id):
            if choice.id == choice_id:
                return choice
        return None
