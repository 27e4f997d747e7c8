"""FastAPI dependency injection for services and repositories."""

import os
from typing import Annotated, AsyncGenerator, Optional

import asyncpg
from dotenv import find_dotenv, load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# Load .env from project root (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from guardian_kids.core.modules.page_image_generator import (  # noqa: E402
    GeminiPageImageGenerator,
    PageImageGenerator,
)
from guardian_kids.core.modules.story_part_generator import (  # noqa: E402
    DspyStoryPartGenerator,
    StoryPartGenerator,
)

from .auth.tokens import verify_token  # noqa: E402
from .database.db import get_pool  # noqa: E402
from .database.repository import (  # noqa: E402
    ProgressRepository,
    StoryGraphRepository,
    StoryRepository,
)
from .services.reader_service import ReaderService  # noqa: E402
from .services.story_parts import StoryPartService  # noqa: E402

# Security scheme for bearer token authentication
security = HTTPBearer()


# Pooled connection dependency
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection from the shared pool for one request."""
    async with get_pool().acquire() as conn:
        yield conn


Connection = Annotated[asyncpg.Connection, Depends(get_connection)]


# Repositories - require a connection
def get_story_repository(conn: Connection) -> StoryRepository:
    return StoryRepository(conn)


def get_graph_repository(conn: Connection) -> StoryGraphRepository:
    return StoryGraphRepository(conn)


def get_progress_repository(conn: Connection) -> ProgressRepository:
    return ProgressRepository(conn)


# Generation collaborators
def get_story_part_generator() -> StoryPartGenerator:
    """Get the DSPy story-part generator using the configured LM."""
    return DspyStoryPartGenerator()


def get_image_generator() -> Optional[PageImageGenerator]:
    """Get the illustration generator, or None when GOOGLE_API_KEY is not set."""
    if not os.getenv("GOOGLE_API_KEY"):
        return None
    return GeminiPageImageGenerator()


StoryRepo = Annotated[StoryRepository, Depends(get_story_repository)]
GraphRepo = Annotated[StoryGraphRepository, Depends(get_graph_repository)]
ProgressRepo = Annotated[ProgressRepository, Depends(get_progress_repository)]


# Services - depend on repositories
def get_reader_service(
    story_repo: StoryRepo,
    graph_repo: GraphRepo,
    progress_repo: ProgressRepo,
) -> ReaderService:
    """Get a ReaderService instance with injected repositories."""
    return ReaderService(story_repo, graph_repo, progress_repo)


def get_story_part_service(
    story_repo: StoryRepo,
    graph_repo: GraphRepo,
    generator: Annotated[StoryPartGenerator, Depends(get_story_part_generator)],
    image_generator: Annotated[Optional[PageImageGenerator], Depends(get_image_generator)],
) -> StoryPartService:
    """Get a StoryPartService instance with injected repositories and generators."""
    return StoryPartService(story_repo, graph_repo, generator, image_generator)


# Type aliases for cleaner route signatures
Reader = Annotated[ReaderService, Depends(get_reader_service)]
PartService = Annotated[StoryPartService, Depends(get_story_part_service)]


# Authentication dependency
async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> str:
    """Verify the bearer token and return the user subject.

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    payload = verify_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload["sub"]


# Type alias for authenticated user
CurrentUser = Annotated[str, Depends(get_current_user)]
