"""Unit tests for the story graph engine."""

import pytest
from unittest.mock import AsyncMock

from guardian_kids.core.engine import StoryEngine
from guardian_kids.core.story_graph import StoryGraph
from guardian_kids.core.types import StoryProgress

from tests.unit.conftest import TEST_STORY_ID, TEST_USER_ID, make_choice, make_node


def two_branch_graph() -> StoryGraph:
    nodes = [
        make_node("start", "start", is_start_node=True),
        make_node("a", "path_a"),
        make_node("b", "path_b", is_ending_node=True),
    ]
    choices = [
        make_choice("to-a", "start", "a", order=1),
        make_choice("to-b", "start", "b", order=2),
    ]
    return StoryGraph(nodes, choices)


def make_engine(graph, store) -> StoryEngine:
    return StoryEngine(graph, store, TEST_USER_ID, TEST_STORY_ID)


def saved(node_id, history):
    return StoryProgress(
        user_id=TEST_USER_ID,
        story_id=TEST_STORY_ID,
        current_node_id=node_id,
        path_history=history,
    )


class TestResolveInitialNode:
    @pytest.mark.asyncio
    async def test_new_reader_starts_at_start_node(self, progress_store):
        engine = make_engine(two_branch_graph(), progress_store)

        node = await engine.start()

        assert node.id == "start"
        assert engine.path_history == ["start"]
        assert engine.is_configured

    @pytest.mark.asyncio
    async def test_resumes_saved_position(self, progress_store):
        progress_store.get_progress.return_value = saved("a", ["start", "path_a"])
        engine = make_engine(two_branch_graph(), progress_store)

        node = await engine.start()

        assert node.id == "a"
        assert engine.path_history == ["start", "path_a"]

    @pytest.mark.asyncio
    async def test_stale_saved_node_falls_back_to_start(self, progress_store):
        progress_store.get_progress.return_value = saved("deleted", ["start", "gone"])
        engine = make_engine(two_branch_graph(), progress_store)

        node = await engine.start()

        assert node.id == "start"
        assert engine.path_history == ["start"]

    @pytest.mark.asyncio
    async def test_unconfigured_story(self, progress_store):
        engine = make_engine(StoryGraph([make_node("orphan")]), progress_store)

        node = await engine.start()

        assert node is None
        assert not engine.is_configured
        assert engine.available_choices() == []

    @pytest.mark.asyncio
    async def test_load_failure_reads_as_never_started(self, progress_store):
        progress_store.get_progress.side_effect = ConnectionError("db down")
        engine = make_engine(two_branch_graph(), progress_store)

        node = await engine.start()

        assert node.id == "start"


class TestAdvance:
    @pytest.mark.asyncio
    async def test_advance_moves_and_saves(self, progress_store):
        graph = two_branch_graph()
        engine = make_engine(graph, progress_store)
        await engine.start()

        node = await engine.advance(graph.get_choice("to-a"))

        assert node.id == "a"
        assert engine.current_node.id == "a"
        assert engine.path_history == ["start", "path_a"]
        progress_store.upsert_progress.assert_awaited_once_with(
            TEST_USER_ID,
            TEST_STORY_ID,
            "a",
            ["start", "path_a"],
            completed_at=None,
        )

    @pytest.mark.asyncio
    async def test_reaching_ending_sets_completed_at(self, progress_store):
        graph = two_branch_graph()
        engine = make_engine(graph, progress_store)
        await engine.start()

        await engine.advance(graph.get_choice("to-b"))

        assert engine.is_complete
        assert engine.available_choices() == []
        assert progress_store.upsert_progress.call_args.kwargs["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_unloaded_destination_is_a_no_op(self, progress_store):
        engine = make_engine(two_branch_graph(), progress_store)
        await engine.start()

        node = await engine.advance(make_choice("dangling", "start", "nowhere"))

        assert node is None
        assert engine.current_node.id == "start"
        assert engine.path_history == ["start"]
        progress_store.upsert_progress.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_transition_is_ignored(self, progress_store):
        graph = two_branch_graph()
        engine = make_engine(graph, progress_store)
        await engine.start()
        engine.is_transitioning = True

        node = await engine.advance(graph.get_choice("to-a"))

        assert node is None
        assert engine.current_node.id == "start"

    @pytest.mark.asyncio
    async def test_save_failure_keeps_in_memory_move(self, progress_store):
        progress_store.upsert_progress.side_effect = ConnectionError("db down")
        graph = two_branch_graph()
        engine = make_engine(graph, progress_store)
        await engine.start()

        node = await engine.advance(graph.get_choice("to-a"))

        assert node.id == "a"
        assert engine.last_save_ok is False
        assert engine.is_transitioning is False

    @pytest.mark.asyncio
    async def test_path_history_is_selection_order(self, progress_store):
        nodes = [
            make_node("s", "start", is_start_node=True),
            make_node("m", "middle"),
            make_node("e", "end", is_ending_node=True),
        ]
        choices = [make_choice("c1", "s", "m"), make_choice("c2", "m", "e")]
        graph = StoryGraph(nodes, choices)
        engine = make_engine(graph, progress_store)
        await engine.start()

        await engine.advance(graph.get_choice("c1"))
        await engine.advance(graph.get_choice("c2"))

        assert engine.path_history == ["start", "middle", "end"]


class TestRestart:
    @pytest.mark.asyncio
    async def test_restart_deletes_progress_and_returns_to_start(self, progress_store):
        progress_store.get_progress.return_value = saved("a", ["start", "path_a"])
        engine = make_engine(two_branch_graph(), progress_store)
        await engine.start()

        node = await engine.restart()

        assert node.id == "start"
        assert engine.path_history == ["start"]
        progress_store.delete_progress.assert_awaited_once_with(TEST_USER_ID, TEST_STORY_ID)

    @pytest.mark.asyncio
    async def test_restart_survives_delete_failure(self, progress_store):
        progress_store.delete_progress.side_effect = ConnectionError("db down")
        engine = make_engine(two_branch_graph(), progress_store)
        await engine.start()

        node = await engine.restart()

        assert node.id == "start"


class TestAutoAdvance:
    """Auto choices drive scripted intro beats."""

    def intro_graph(self, delay=None) -> StoryGraph:
        nodes = [
            make_node("s", "start", is_start_node=True),
            make_node("b", "build_up"),
            make_node("d", "first_decision"),
            make_node("x", "path_a"),
        ]
        choices = [
            make_choice("auto-1", "s", "b", is_auto=True, auto_delay_seconds=delay),
            make_choice("auto-2", "b", "d", is_auto=True, auto_delay_seconds=delay),
            make_choice("pick", "d", "x"),
        ]
        return StoryGraph(nodes, choices)

    @pytest.mark.asyncio
    async def test_waits_then_follows_auto_choice(self, progress_store):
        engine = make_engine(self.intro_graph(delay=1.5), progress_store)
        await engine.start()
        sleep = AsyncMock()

        node = await engine.run_auto_advance(sleep=sleep)

        sleep.assert_awaited_once_with(1.5)
        assert node.id == "b"
        assert engine.path_history == ["start", "build_up"]

    @pytest.mark.asyncio
    async def test_default_delay(self, progress_store):
        engine = make_engine(self.intro_graph(), progress_store)
        await engine.start()
        sleep = AsyncMock()

        await engine.run_auto_advance(sleep=sleep)

        sleep.assert_awaited_once_with(2.5)

    @pytest.mark.asyncio
    async def test_decision_node_does_not_auto_advance(self, progress_store):
        progress_store.get_progress.return_value = saved("d", ["start", "build_up", "first_decision"])
        engine = make_engine(self.intro_graph(), progress_store)
        await engine.start()
        sleep = AsyncMock()

        assert engine.pending_auto_advance() is None
        assert await engine.run_auto_advance(sleep=sleep) is None
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reader_moving_during_delay_cancels_auto_advance(self, progress_store):
        graph = self.intro_graph()
        engine = make_engine(graph, progress_store)
        await engine.start()

        async def reader_restarts_meanwhile(_delay):
            engine.current_node = graph.get_node("x")

        node = await engine.run_auto_advance(sleep=reader_restarts_meanwhile)

        assert node is None
        assert engine.current_node.id == "x"


class TestUnmigratedIntro:
    """Legacy intro beats with no stored edges follow the node_key table."""

    def legacy_graph(self) -> StoryGraph:
        nodes = [
            make_node("s", "start", is_start_node=True),
            make_node("b", "build_up"),
            make_node("d", "first_decision"),
            make_node("x", "path_a"),
        ]
        return StoryGraph(nodes, [make_choice("pick", "d", "x")])

    @pytest.mark.asyncio
    async def test_walks_intro_without_stored_choices(self, progress_store):
        engine = make_engine(self.legacy_graph(), progress_store)
        await engine.start()
        sleep = AsyncMock()

        assert engine.pending_auto_advance() is not None
        await engine.run_auto_advance(sleep=sleep)
        node = await engine.run_auto_advance(sleep=sleep)

        assert node.id == "d"
        assert engine.path_history == ["start", "build_up", "first_decision"]
        sleep.assert_awaited_with(2.5)
        assert engine.pending_auto_advance() is None
        assert [c.id for c in engine.available_choices()] == ["pick"]

    @pytest.mark.asyncio
    async def test_fallback_choice_id_is_stable_across_loads(self, progress_store):
        first = make_engine(self.legacy_graph(), progress_store)
        second = make_engine(self.legacy_graph(), progress_store)
        await first.start()
        await second.start()

        choice_id = first.pending_auto_advance().id

        assert second.pending_auto_advance().id == choice_id
        assert second.graph.get_choice(choice_id).to_node_id == "b"
