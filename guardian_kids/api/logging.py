"""Structured logging infrastructure for the API layer.

Provides JSON-formatted logging for production and human-readable
logging for development, plus a StoryLogger helper for story-part
generation events.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Structured fields copied from `extra=` into JSON output
EXTRA_FIELDS = ("story_id", "user_id", "node_id", "stage", "duration", "attempt", "error_type")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


class StoryLogger:
    """Logger for story-part generation events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("story_generation")

    def generation_started(self, story_id: str, stage: str) -> None:
        self.logger.info(
            f"Story part generation started: {stage}",
            extra={"story_id": story_id, "stage": stage},
        )

    def generation_completed(self, story_id: str, stage: str, node_id: str, duration: float) -> None:
        self.logger.info(
            f"Story part generation completed: {stage}",
            extra={
                "story_id": story_id,
                "stage": stage,
                "node_id": node_id,
                "duration": round(duration, 2),
            },
        )

    def generation_failed(self, story_id: str, error: Exception, stage: str = None) -> None:
        extra = {"story_id": story_id, "stage": stage or "failed", "error_type": type(error).__name__}
        self.logger.error(f"Story part generation failed: {error}", extra=extra, exc_info=True)

    def generation_superseded(self, story_id: str, stage: str) -> None:
        self.logger.info(
            f"Story part already written by a concurrent request: {stage}",
            extra={"story_id": story_id, "stage": stage},
        )

    def illustration_failed(self, story_id: str, error: Exception, node_id: str = None) -> None:
        extra = {"story_id": story_id, "stage": "illustration", "error_type": type(error).__name__}
        if node_id:
            extra["node_id"] = node_id
        self.logger.warning(f"Illustration failed: {error}", extra=extra)


# Global story logger instance
story_logger = StoryLogger()
