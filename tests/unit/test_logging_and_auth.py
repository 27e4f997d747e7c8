"""Unit tests for structured logging, JWT tokens and the auth dependency."""

import json
import logging
from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from guardian_kids.api.auth.tokens import create_access_token, verify_token
from guardian_kids.api.dependencies import get_current_user
from guardian_kids.api.logging import JSONFormatter, StoryLogger


def make_record(**extra):
    record = logging.LogRecord("test", logging.WARNING, __file__, 1, "Failed to save", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_includes_structured_fields(self):
        output = json.loads(JSONFormatter().format(make_record(story_id="s-1", user_id="u-1")))

        assert output["level"] == "WARNING"
        assert output["message"] == "Failed to save"
        assert output["story_id"] == "s-1"
        assert output["user_id"] == "u-1"
        assert "node_id" not in output

    def test_ignores_unknown_extras(self):
        output = json.loads(JSONFormatter().format(make_record(password="hunter2")))

        assert "password" not in output


class TestStoryLogger:
    def test_generation_failed_records_error_type(self, caplog):
        with caplog.at_level(logging.ERROR, logger="story_generation"):
            StoryLogger().generation_failed("s-1", ValueError("bad json"), stage="opening")

        record = caplog.records[-1]
        assert record.story_id == "s-1"
        assert record.stage == "opening"
        assert record.error_type == "ValueError"

    def test_generation_completed_rounds_duration(self, caplog):
        with caplog.at_level(logging.INFO, logger="story_generation"):
            StoryLogger().generation_completed("s-1", "ending", "n-1", 1.23456)

        assert caplog.records[-1].duration == 1.23


class TestTokens:
    def test_round_trip(self):
        payload = verify_token(create_access_token("user-1"))

        assert payload["sub"] == "user-1"

    def test_expired_token(self):
        assert verify_token(create_access_token("user-1", timedelta(seconds=-1))) is None

    def test_garbage_token(self):
        assert verify_token("not.a.token") is None


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_returns_subject(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_access_token("user-1"))

        assert await get_current_user(credentials) == "user-1"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(credentials)

        assert exc_info.value.status_code == 401
