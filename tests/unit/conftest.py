"""Pytest fixtures for unit and API tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from dotenv import find_dotenv, load_dotenv
from fastapi.testclient import TestClient

# Load environment variables (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from guardian_kids.api import main  # noqa: E402
from guardian_kids.api.auth.tokens import create_access_token  # noqa: E402
from guardian_kids.api.database.repository import StoryRepository  # noqa: E402
from guardian_kids.api.dependencies import (  # noqa: E402
    get_reader_service,
    get_story_part_service,
    get_story_repository,
)
from guardian_kids.api.services.reader_service import ReaderService  # noqa: E402
from guardian_kids.api.services.story_parts import StoryPartService  # noqa: E402
from guardian_kids.core.types import StoryChoice, StoryNode  # noqa: E402

TEST_USER_ID = "user-123"
TEST_STORY_ID = "12345678-1234-5678-1234-567812345678"


def make_node(node_id, node_key=None, content="Once upon a time.", **kwargs):
    """Build a StoryNode with sensible defaults."""
    return StoryNode(
        id=node_id,
        story_id=kwargs.pop("story_id", TEST_STORY_ID),
        node_key=node_key or node_id,
        content=content,
        **kwargs,
    )


def make_choice(choice_id, from_node_id, to_node_id, order=1, text=None, **kwargs):
    """Build a StoryChoice with sensible defaults."""
    return StoryChoice(
        id=choice_id,
        from_node_id=from_node_id,
        to_node_id=to_node_id,
        choice_text=text or f"Go to {to_node_id}",
        choice_order=order,
        **kwargs,
    )


@pytest.fixture
def progress_store():
    """In-memory stand-in for ProgressRepository."""
    store = MagicMock()
    store.get_progress = AsyncMock(return_value=None)
    store.upsert_progress = AsyncMock()
    store.delete_progress = AsyncMock(return_value=True)
    return store


@pytest.fixture
def mock_connection():
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.execute = AsyncMock(return_value="UPDATE 1")
    conn.executemany = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=0)
    return conn


@pytest.fixture
def auth_headers():
    """Bearer token for TEST_USER_ID."""
    return {"Authorization": f"Bearer {create_access_token(TEST_USER_ID)}"}


@pytest.fixture
def mock_reader():
    return AsyncMock(spec=ReaderService)


@pytest.fixture
def mock_parts():
    return AsyncMock(spec=StoryPartService)


@pytest.fixture
def mock_story_repo():
    return AsyncMock(spec=StoryRepository)


@pytest.fixture
def client_with_mocks(monkeypatch, mock_reader, mock_parts, mock_story_repo):
    """TestClient with mocked services and no external connections at startup."""
    monkeypatch.setattr(main, "DATABASE_URL", None)
    monkeypatch.setattr(main, "REDIS_URL", None)
    monkeypatch.setattr(main, "has_llm_credentials", lambda: False)

    main.app.dependency_overrides[get_reader_service] = lambda: mock_reader
    main.app.dependency_overrides[get_story_part_service] = lambda: mock_parts
    main.app.dependency_overrides[get_story_repository] = lambda: mock_story_repo

    with TestClient(main.app) as client:
        yield client

    main.app.dependency_overrides.clear()
