"""Unit tests for domain types built from database rows."""

from guardian_kids.core.types import StoryBeat, StoryChoice, StoryDocument, StoryNode, StoryProgress


def progress_row(**overrides):
    row = {
        "id": "p-1",
        "user_id": "user-1",
        "story_id": "story-1",
        "current_node_id": "node-1",
        "path_history": '["start", "path_a"]',
        "completed_at": None,
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


class TestStoryProgress:
    def test_decodes_json_history(self):
        progress = StoryProgress.from_db_record(progress_row())

        assert progress.path_history == ["start", "path_a"]

    def test_non_list_history_becomes_empty(self):
        assert StoryProgress.from_db_record(progress_row(path_history='{"a": 1}')).path_history == []
        assert StoryProgress.from_db_record(progress_row(path_history="not json")).path_history == []
        assert StoryProgress.from_db_record(progress_row(path_history=None)).path_history == []


class TestStoryNode:
    def test_from_db_record(self):
        node = StoryNode.from_db_record({
            "id": "n-1",
            "story_id": "s-1",
            "node_key": "part_1",
            "content": "One.\n\nTwo.",
            "title": None,
            "image_url": None,
            "is_start_node": True,
            "is_ending_node": False,
            "beat": "opening",
        })

        assert node.beat == StoryBeat.OPENING
        assert node.paragraphs == ["One.", "Two."]
        assert node.is_generated

    def test_placeholder_is_not_generated(self):
        node = StoryNode(id="n", story_id="s", node_key="part_2_a")

        assert not node.is_generated
        assert node.paragraphs == []


class TestStoryChoice:
    def test_from_db_record(self):
        choice = StoryChoice.from_db_record({
            "id": "c-1",
            "from_node_id": "a",
            "to_node_id": "b",
            "choice_text": "Continue",
            "choice_order": 1,
            "is_auto": True,
            "auto_delay_seconds": 2.5,
        })

        assert choice.is_auto
        assert choice.auto_delay_seconds == 2.5


class TestStoryDocument:
    def test_defaults_for_missing_fields(self):
        story = StoryDocument.from_db_record({
            "id": "s-1",
            "title": None,
            "content": None,
            "cover_image_url": None,
            "hero_name": "Max",
            "story_type": "Mystery",
            "age_range": "5-7",
            "created_by": "user-1",
        })

        assert story.title == "Your Adventure"
        assert story.content == ""
        assert story.genre == "mystery"
