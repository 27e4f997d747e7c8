"""
Interactive story-part generation.

Grows a story's branching graph on demand: the opening becomes the start
node with two placeholder branches; choosing a branch generates it (a
continuation with two more placeholders, then an ending). Graph rows are
written in one transaction after generation succeeds, so a failed call
leaves the existing graph untouched. When two requests generate the same
part, the unique node keys let only one transaction commit; the other
returns the winner's node.
"""

import asyncio
import time
import uuid
from typing import Callable, Optional

import asyncpg

from guardian_kids.core.modules.page_image_generator import PageImageGenerator, build_page_prompt
from guardian_kids.core.modules.story_part_generator import GenerationError, StoryPartGenerator
from guardian_kids.core.story_graph import StoryGraph
from guardian_kids.core.types import GeneratedPart, StoryBeat, StoryChoice, StoryDocument, StoryNode, StyleLock

from ..database.repository import StoryGraphRepository, StoryRepository
from ..logging import story_logger
from .errors import ChoiceNotFound, NotGeneratable, StoryNotFound

# Which beat follows a node of a given beat
NEXT_BEAT = {
    StoryBeat.OPENING: StoryBeat.CONTINUATION,
    StoryBeat.CONTINUATION: StoryBeat.ENDING,
}

PART_NUMBERS = {
    StoryBeat.OPENING: 1,
    StoryBeat.CONTINUATION: 2,
    StoryBeat.ENDING: 3,
}

BRANCH_LETTERS = ("a", "b")


def child_node_key(parent_key: str, letter: str) -> str:
    """"part_2_a" -> "part_3_a_<letter>"; other keys just get the letter appended."""
    parts = parent_key.split("_", 2)
    if len(parts) >= 2 and parts[0] == "part" and parts[1].isdigit():
        rest = f"_{parts[2]}" if len(parts) == 3 else ""
        return f"part_{int(parts[1]) + 1}{rest}_{letter}"
    return f"{parent_key}_{letter}"


class StoryPartService:
    """
    Generate interactive story parts and record them in the graph.

    Args:
        story_repo: Story documents
        graph_repo: Nodes and choices
        generator: Text collaborator
        image_generator: Optional illustration collaborator
    """

    def __init__(
        self,
        story_repo: StoryRepository,
        graph_repo: StoryGraphRepository,
        generator: StoryPartGenerator,
        image_generator: Optional[PageImageGenerator] = None,
    ):
        self.story_repo = story_repo
        self.graph_repo = graph_repo
        self.generator = generator
        self.image_generator = image_generator

    async def _load(self, story_id: str) -> tuple[StoryDocument, StoryGraph]:
        story = await self.story_repo.get_story(story_id)
        if story is None:
            raise StoryNotFound(story_id)
        nodes = await self.graph_repo.list_nodes(story_id)
        choices = await self.graph_repo.list_choices(story_id)
        return story, StoryGraph(nodes, choices)

    async def generate_opening(self, story_id: str) -> StoryNode:
        """Generate part 1 as the start node. Returns the existing one if present."""
        story, graph = await self._load(story_id)
        existing = graph.get_start_node()
        if existing is not None and existing.is_generated:
            return existing

        start_time = time.time()
        stage = StoryBeat.OPENING.value
        story_logger.generation_started(story_id, stage)

        part = await self._generate(story, StoryBeat.OPENING, stage=stage)

        node = StoryNode(
            id=str(uuid.uuid4()),
            story_id=story_id,
            node_key="part_1",
            content=part.content,
            title=part.title,
            is_start_node=True,
            beat=StoryBeat.OPENING,
        )
        node.image_url = await self._illustrate(story, part, node.id)
        placeholders, choices = self._branch(node, part)

        try:
            async with self.graph_repo.conn.transaction():
                await self.graph_repo.create_node(node)
                for placeholder in placeholders:
                    await self.graph_repo.create_node(placeholder)
                await self.graph_repo.create_choices(choices)
                await self.story_repo.update_story_part(story_id, PART_NUMBERS[StoryBeat.OPENING])
        except asyncpg.UniqueViolationError:
            return await self._written_concurrently(story_id, stage, lambda g: g.get_start_node())

        story_logger.generation_completed(story_id, stage, node.id, time.time() - start_time)
        return node

    async def generate_next(self, story_id: str, choice_id: str) -> StoryNode:
        """
        Generate the node behind a choice.

        Raises:
            StoryNotFound: Unknown story
            ChoiceNotFound: Unknown choice
            NotGeneratable: The choice leaves a node without a known beat
            GenerationError: The text collaborator failed (retryable)
        """
        story, graph = await self._load(story_id)
        choice = graph.get_choice(choice_id)
        if choice is None:
            raise ChoiceNotFound(choice_id)

        destination = graph.get_node(choice.to_node_id)
        if destination is not None and destination.is_generated:
            return destination

        parent = graph.get_node(choice.from_node_id)
        beat = NEXT_BEAT.get(parent.beat) if parent is not None and parent.beat else None
        if beat is None:
            raise NotGeneratable(f"Cannot generate a part after choice {choice_id}")

        start_time = time.time()
        stage = beat.value
        story_logger.generation_started(story_id, stage)

        story_so_far = [n.content for n, _ in graph.lineage(parent.id) if n.is_generated]
        part = await self._generate(
            story,
            beat,
            stage=stage,
            story_so_far=story_so_far,
            choice_made=choice.choice_text,
        )

        if destination is not None:
            node_key = destination.node_key
        else:
            # Placeholder row missing; derive its key from the choice position
            if 0 < choice.choice_order <= len(BRANCH_LETTERS):
                letter = BRANCH_LETTERS[choice.choice_order - 1]
            else:
                letter = str(choice.choice_order)
            node_key = child_node_key(parent.node_key, letter)
        node = StoryNode(
            id=choice.to_node_id,
            story_id=story_id,
            node_key=node_key,
            content=part.content,
            title=part.title,
            is_ending_node=beat == StoryBeat.ENDING,
            beat=beat,
        )
        node.image_url = await self._illustrate(story, part, node.id)

        placeholders: list[StoryNode] = []
        choices: list[StoryChoice] = []
        if beat != StoryBeat.ENDING:
            placeholders, choices = self._branch(node, part)

        try:
            async with self.graph_repo.conn.transaction():
                if destination is not None:
                    await self.graph_repo.fill_node(node)
                else:
                    await self.graph_repo.create_node(node)
                for placeholder in placeholders:
                    await self.graph_repo.create_node(placeholder)
                await self.graph_repo.create_choices(choices)
                await self.story_repo.update_story_part(
                    story_id,
                    PART_NUMBERS[beat],
                    is_complete=beat == StoryBeat.ENDING,
                )
        except asyncpg.UniqueViolationError:
            return await self._written_concurrently(
                story_id,
                stage,
                lambda g: g.get_node(node.id) or g.get_node_by_key(node_key),
            )

        story_logger.generation_completed(story_id, stage, node.id, time.time() - start_time)
        return node

    async def _generate(
        self,
        story: StoryDocument,
        beat: StoryBeat,
        stage: str,
        story_so_far: Optional[list[str]] = None,
        choice_made: Optional[str] = None,
    ) -> GeneratedPart:
        try:
            # DSPy calls block; run them off the event loop
            return await asyncio.to_thread(
                self.generator.generate,
                beat,
                story.hero_name or "Hero",
                story.genre,
                story_so_far or [],
                choice_made,
            )
        except GenerationError as e:
            story_logger.generation_failed(story.id, e, stage=stage)
            raise
        except Exception as e:
            story_logger.generation_failed(story.id, e, stage=stage)
            raise GenerationError(f"Story generation failed: {e}") from e

    async def _written_concurrently(
        self,
        story_id: str,
        stage: str,
        find: Callable[[StoryGraph], Optional[StoryNode]],
    ) -> StoryNode:
        """
        Resolve a unique-key conflict on commit.

        Raises:
            GenerationError: The conflicting rows are not a finished part yet (retryable)
        """
        _, graph = await self._load(story_id)
        node = find(graph)
        if node is None or not node.is_generated:
            raise GenerationError("Story part is being written by another request, please retry")
        story_logger.generation_superseded(story_id, stage)
        return node

    async def _illustrate(self, story: StoryDocument, part: GeneratedPart, node_id: str) -> Optional[str]:
        """Best-effort node illustration; failures leave the node without an image."""
        if self.image_generator is None:
            return None

        try:
            style_lock = await self.story_repo.get_style_lock(story.id) or StyleLock()
            prompt = build_page_prompt(
                scene=part.illustration_prompt or part.content,
                character=story.hero_name or "the hero",
                style_lock=style_lock,
            )
            return await self.image_generator.generate(prompt)
        except Exception as e:
            story_logger.illustration_failed(story.id, e, node_id=node_id)
            return None

    @staticmethod
    def _branch(node: StoryNode, part: GeneratedPart) -> tuple[list[StoryNode], list[StoryChoice]]:
        """Placeholder nodes and the choices leading to them."""
        placeholders = []
        choices = []
        for order, (letter, text) in enumerate(zip(BRANCH_LETTERS, part.choices), start=1):
            placeholder = StoryNode(
                id=str(uuid.uuid4()),
                story_id=node.story_id,
                node_key=child_node_key(node.node_key, letter),
            )
            placeholders.append(placeholder)
            choices.append(
                StoryChoice(
                    id=str(uuid.uuid4()),
                    from_node_id=node.id,
                    to_node_id=placeholder.id,
                    choice_text=text,
                    choice_order=order,
                )
            )
        return placeholders, choices
