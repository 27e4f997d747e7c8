"""FastAPI application for Guardian Kids stories."""

import logging
from contextlib import asynccontextmanager

from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from guardian_kids.config import configure_dspy, get_inference_model_name, has_llm_credentials

from . import arq_pool
from .config import DATABASE_URL, LOG_FORMAT, REDIS_URL
from .logging import configure_logging
from .routes import flipbook, images, interactive

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging(json_format=LOG_FORMAT != "text")

    # Startup: Initialize database (only if DATABASE_URL is configured)
    if DATABASE_URL:
        from .database.db import close_pool, init_db, open_pool

        await init_db()
        await open_pool()
        logger.info("Database initialized")
    else:
        logger.warning("DATABASE_URL not set - database not initialized")

    if REDIS_URL:
        arq_pool.set_pool(await create_pool(RedisSettings.from_dsn(REDIS_URL)))
        logger.info("ARQ pool connected")
    else:
        logger.warning("REDIS_URL not set - illustration jobs cannot be queued")

    if has_llm_credentials():
        configure_dspy()
        logger.info(f"DSPy configured with {get_inference_model_name()}")
    else:
        logger.warning("No LLM API key set - story-part generation unavailable")

    yield

    # Shutdown: release pools
    await arq_pool.close_pool()
    if DATABASE_URL:
        await close_pool()


app = FastAPI(
    title="Guardian Kids Story API",
    description="""
Read and grow children's stories.

## Features
- **Interactive stories**: Branching story graph with saved reading progress per reader
- **Story parts**: Generate the opening, continuation and ending of a branch on demand
- **Flipbook**: Paginate linear stories into cover, content, illustration and end pages
- **Illustrations**: Queue batch page illustrations within the story's image limit
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(interactive.router, prefix="/stories", tags=["Interactive"])
app.include_router(flipbook.router, prefix="/stories", tags=["Flipbook"])
app.include_router(images.router, prefix="/stories", tags=["Illustrations"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
