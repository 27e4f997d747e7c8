"""
ARQ worker for background page illustrations.

Run with: arq guardian_kids.worker.WorkerSettings
"""

import logging
import os
from typing import Any

import asyncpg
from arq.connections import RedisSettings
from dotenv import load_dotenv

# Load environment variables before importing app modules
load_dotenv()

from guardian_kids.api.config import LOG_FORMAT, asyncpg_dsn
from guardian_kids.api.database.repository import StoryRepository
from guardian_kids.api.logging import configure_logging
from guardian_kids.api.services.page_images import generate_page_images
from guardian_kids.core.modules.page_image_generator import GeminiPageImageGenerator

logger = logging.getLogger(__name__)


def _get_database_dsn() -> str:
    """Get PostgreSQL DSN from environment."""
    return asyncpg_dsn(os.getenv("DATABASE_URL", ""))


async def generate_page_images_task(
    ctx: dict[str, Any],
    story_id: str,
    page_numbers: list[int],
    trigger: str = "on_user_tap",
) -> dict[str, Any]:
    """
    ARQ task for illustrating a batch of flipbook pages.

    This is a thin wrapper around generate_page_images.

    Args:
        ctx: ARQ context (contains job_id, redis connection, etc.)
        story_id: UUID of the story
        page_numbers: Zero-based content page indices
        trigger: What caused the request

    Returns:
        Dict with story_id and per-page results
    """
    job_id = ctx.get("job_id", "unknown")
    logger.info(
        f"Starting page illustration job {job_id} for pages {page_numbers}",
        extra={"story_id": story_id},
    )

    conn = await asyncpg.connect(_get_database_dsn())
    try:
        results = await generate_page_images(
            story_id=story_id,
            page_numbers=page_numbers,
            trigger=trigger,
            story_repo=StoryRepository(conn),
            image_generator=ctx["image_generator"],
        )
    except Exception as e:
        logger.error(
            f"Failed page illustration job {job_id}: {e}",
            extra={"story_id": story_id, "error_type": type(e).__name__},
        )
        # Re-raise so ARQ marks the job as failed
        raise
    finally:
        await conn.close()

    logger.info(f"Completed page illustration job {job_id}", extra={"story_id": story_id})
    return {"story_id": story_id, "results": results}


async def startup(ctx: dict[str, Any]) -> None:
    """Called when worker starts up."""
    configure_logging(json_format=LOG_FORMAT != "text")
    logger.info("ARQ worker starting up")

    # Shared across jobs; reads GOOGLE_API_KEY
    ctx["image_generator"] = GeminiPageImageGenerator()


async def shutdown(ctx: dict[str, Any]) -> None:
    """Called when worker shuts down."""
    logger.info("ARQ worker shutting down")


class WorkerSettings:
    """ARQ worker configuration."""

    # Task functions to register
    functions = [generate_page_images_task]

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Redis connection settings
    redis_settings = RedisSettings.from_dsn(os.getenv("REDIS_URL", "redis://localhost:6379"))

    # Illustration batches are short; keep a few in flight
    max_jobs = 4
    job_timeout = 600  # 10 minutes max per job
    max_tries = 3  # Safety net for @image_retry
