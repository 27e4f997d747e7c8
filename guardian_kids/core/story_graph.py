"""
In-memory story graph: nodes connected by choices.

Read-only view over one story's story_nodes and story_choices rows. The
engine walks it; authoring and generation flows are the only writers of the
underlying rows. Legacy intro beats that were never migrated get their auto
choices built in memory from the node_key table.
"""

import uuid
from collections import defaultdict
from typing import Iterable, Mapping, Optional

from guardian_kids.config.story import STORY_CONSTANTS

from .types import StoryChoice, StoryNode


class StoryGraph:
    """Directed graph of story nodes for a single story."""

    def __init__(
        self,
        nodes: Iterable[StoryNode],
        choices: Iterable[StoryChoice] = (),
        linear_sequence: Optional[Mapping[str, str]] = None,
    ):
        self.nodes: list[StoryNode] = list(nodes)
        self._by_id = {node.id: node for node in self.nodes}
        self._by_key = {node.node_key: node for node in self.nodes}

        choices = list(choices)
        # Stored edges win; only nodes with none fall back to the table
        choices += linear_intro_choices(self.nodes, choices, linear_sequence)

        self._outgoing: dict[str, list[StoryChoice]] = defaultdict(list)
        for choice in choices:
            self._outgoing[choice.from_node_id].append(choice)
        for siblings in self._outgoing.values():
            siblings.sort(key=lambda c: c.choice_order)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._by_id

    def get_start_node(self) -> Optional[StoryNode]:
        """Return the start node, or None when the story is not configured.

        With more than one start node the first loaded wins.
        """
        return next((node for node in self.nodes if node.is_start_node), None)

    def get_node(self, node_id: str) -> Optional[StoryNode]:
        return self._by_id.get(node_id)

    def get_node_by_key(self, node_key: str) -> Optional[StoryNode]:
        return self._by_key.get(node_key)

    def all_choices_from(self, node_id: str) -> list[StoryChoice]:
        """Every outgoing edge, auto or not, in choice_order."""
        return list(self._outgoing.get(node_id, []))

    def choices_from(self, node_id: str) -> list[StoryChoice]:
        """Choices offered to the reader at a node. Endings offer none."""
        node = self._by_id.get(node_id)
        if node is None or node.is_ending_node:
            return []
        return [c for c in self._outgoing.get(node_id, []) if not c.is_auto]

    def get_choice(self, choice_id: str) -> Optional[StoryChoice]:
        for siblings in self._outgoing.values():
            for choice in siblings:
                if choice.id == choice_id:
                    return choice
        return None

    def auto_choice_from(self, node_id: str) -> Optional[StoryChoice]:
        """The engine-driven transition for a linear node, if it has one.

        Only nodes that are not endings and offer the reader nothing to pick
        auto-advance.
        """
        node = self._by_id.get(node_id)
        if node is None or node.is_ending_node or self.choices_from(node_id):
            return None
        return next((c for c in self._outgoing.get(node_id, []) if c.is_auto), None)

    def parent_of(self, node_id: str) -> Optional[tuple[StoryNode, StoryChoice]]:
        """The node and choice leading into `node_id` (first match)."""
        for from_id, siblings in self._outgoing.items():
            for choice in siblings:
                if choice.to_node_id == node_id and from_id in self._by_id:
                    return self._by_id[from_id], choice
        return None

    def lineage(self, node_id: str) -> list[tuple[StoryNode, Optional[StoryChoice]]]:
        """Walk back to the root: [(root, None), ..., (node, choice_into_node)]."""
        chain: list[tuple[StoryNode, Optional[StoryChoice]]] = []
        seen: set[str] = set()
        current = self._by_id.get(node_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            parent = self.parent_of(current.id)
            chain.append((current, parent[1] if parent else None))
            current = parent[0] if parent else None
        chain.reverse()
        return chain


def linear_choice_id(from_node_id: str, to_node_id: str) -> str:
    """Stable ID, so an in-memory auto choice keeps its ID across loads and migration."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"story-choice:{from_node_id}:{to_node_id}"))


def linear_intro_choices(
    nodes: Iterable[StoryNode],
    existing_choices: Iterable[StoryChoice] = (),
    sequence: Optional[Mapping[str, str]] = None,
    delay_seconds: float = STORY_CONSTANTS["auto_advance_delay_seconds"],
) -> list[StoryChoice]:
    """
    Build auto choices for legacy linear intro beats.

    Older stories encoded their intro pacing in a node_key lookup table
    instead of in the graph. This converts that table into auto choices for
    every mapped node that has no outgoing edges yet, so the graph alone
    drives all transitions.

    Args:
        nodes: All nodes of one story
        existing_choices: Choices already stored for the story
        sequence: node_key -> next node_key (defaults to the legacy table)
        delay_seconds: Pause before the engine advances

    Returns:
        New StoryChoice objects to insert (may be empty)
    """
    sequence = sequence if sequence is not None else STORY_CONSTANTS["linear_intro_sequence"]
    nodes = list(nodes)
    by_key = {node.node_key: node for node in nodes}
    has_outgoing = {choice.from_node_id for choice in existing_choices}

    new_choices = []
    for node in nodes:
        next_key = sequence.get(node.node_key)
        target = by_key.get(next_key) if next_key else None
        if target is None or node.is_ending_node or node.id in has_outgoing:
            continue
        new_choices.append(
            StoryChoice(
                id=linear_choice_id(node.id, target.id),
                from_node_id=node.id,
                to_node_id=target.id,
                choice_text="Continue",
                choice_order=1,
                is_auto=True,
                auto_delay_seconds=delay_seconds,
            )
        )
    return new_choices
