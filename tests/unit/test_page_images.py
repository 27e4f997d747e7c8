"""Unit tests for batch page illustrations."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from guardian_kids.api.services.errors import ImageLimitExceeded, StoryNotFound
from guardian_kids.api.services.page_images import (
    check_image_limit,
    enqueue_page_images,
    generate_page_images,
)
from guardian_kids.core.types import StoryDocument, StyleLock

from tests.unit.conftest import TEST_STORY_ID

PAGE_WORDS = ("alpha", "bravo", "charlie", "delta", "echo")


def five_page_story(age_range="8-10"):
    content = "\n\n".join(" ".join([w] * 300) for w in PAGE_WORDS)
    return StoryDocument(id=TEST_STORY_ID, title="Fox", content=content, hero_name="Max", age_range=age_range)


@pytest.fixture
def story_repo():
    repo = MagicMock()
    repo.get_story = AsyncMock(return_value=five_page_story())
    repo.count_images = AsyncMock(return_value=0)
    repo.add_image = AsyncMock(return_value="image-id")
    repo.get_style_lock = AsyncMock(return_value=None)
    return repo


class TrackingImageGenerator:
    """Records how many calls are in flight at once."""

    def __init__(self, fail_on=None):
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_on = fail_on

    async def generate(self, prompt: str) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if self.fail_on and self.fail_on in prompt:
                raise RuntimeError("blocked by safety filter")
            return f"data:image/png;base64,{prompt.split()[-1]}"
        finally:
            self.in_flight -= 1


class TestCheckImageLimit:
    def test_young_band_cap(self):
        with pytest.raises(ImageLimitExceeded) as exc_info:
            check_image_limit("5-7", current=5, requested=2)

        assert str(exc_info.value) == "Story limit: 6. Current: 5, Requested: 2"

    def test_older_band_cap(self):
        check_image_limit("8-10", current=8, requested=2)

        with pytest.raises(ImageLimitExceeded):
            check_image_limit("8-10", current=8, requested=3)


class TestGeneratePageImages:
    @pytest.mark.asyncio
    async def test_batches_respect_concurrency_limit(self, story_repo):
        image_generator = TrackingImageGenerator()

        results = await generate_page_images(
            TEST_STORY_ID, [0, 1, 2, 3, 4], "on_user_tap", story_repo, image_generator, concurrency_limit=2
        )

        assert image_generator.max_in_flight == 2
        assert [r["page_number"] for r in results] == [0, 1, 2, 3, 4]
        assert all(r["success"] for r in results)
        assert results[1]["image_url"] == "data:image/png;base64,bravo"

    @pytest.mark.asyncio
    async def test_each_success_is_stored_with_one_based_page(self, story_repo):
        await generate_page_images(
            TEST_STORY_ID, [2], "on_page_visible", story_repo, TrackingImageGenerator()
        )

        story_repo.add_image.assert_awaited_once()
        args, kwargs = story_repo.add_image.call_args
        assert args == (TEST_STORY_ID, "data:image/png;base64,charlie")
        assert kwargs["page_number"] == 3
        assert kwargs["trigger"] == "on_page_visible"
        assert "Kid-safe" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_page_failure_does_not_abort_batch(self, story_repo):
        results = await generate_page_images(
            TEST_STORY_ID, [0, 1, 2], "on_user_tap", story_repo, TrackingImageGenerator(fail_on="bravo")
        )

        assert [r["success"] for r in results] == [True, False, True]
        assert results[1]["error"] == "blocked by safety filter"
        assert story_repo.add_image.await_count == 2

    @pytest.mark.asyncio
    async def test_first_image_style_lock_carries_to_every_page(self, story_repo):
        saved_lock = StyleLock(style="crayon", palette="sunset oranges", camera="wide shot")
        story_repo.get_style_lock.return_value = saved_lock

        await generate_page_images(
            TEST_STORY_ID, [0, 1], "on_user_tap", story_repo, TrackingImageGenerator()
        )

        for call in story_repo.add_image.call_args_list:
            assert "Style: crayon, Palette: sunset oranges, Camera: wide shot." in call.kwargs["prompt"]
            assert call.kwargs["style_lock"] == saved_lock

    @pytest.mark.asyncio
    async def test_story_without_images_saves_default_style_lock(self, story_repo):
        await generate_page_images(
            TEST_STORY_ID, [0], "on_user_tap", story_repo, TrackingImageGenerator()
        )

        assert story_repo.add_image.call_args.kwargs["style_lock"] == StyleLock()

    @pytest.mark.asyncio
    async def test_out_of_range_page(self, story_repo):
        results = await generate_page_images(
            TEST_STORY_ID, [9], "on_user_tap", story_repo, TrackingImageGenerator()
        )

        assert results == [{"page_number": 9, "success": False, "error": "Page out of range"}]
        story_repo.add_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_limit_checked_before_generating(self, story_repo):
        story_repo.get_story.return_value = five_page_story(age_range="5-7")
        story_repo.count_images.return_value = 6
        image_generator = TrackingImageGenerator()

        with pytest.raises(ImageLimitExceeded):
            await generate_page_images(TEST_STORY_ID, [0], "on_user_tap", story_repo, image_generator)

        assert image_generator.max_in_flight == 0

    @pytest.mark.asyncio
    async def test_unknown_story(self, story_repo):
        story_repo.get_story.return_value = None

        with pytest.raises(StoryNotFound):
            await generate_page_images(TEST_STORY_ID, [0], "on_user_tap", story_repo, TrackingImageGenerator())


class TestEnqueuePageImages:
    @pytest.mark.asyncio
    async def test_enqueues_arq_job(self, story_repo):
        arq_pool = MagicMock()
        arq_pool.enqueue_job = AsyncMock(return_value=MagicMock(job_id="job-1"))

        with patch("guardian_kids.api.services.page_images.get_arq_pool", return_value=arq_pool):
            job_id = await enqueue_page_images(TEST_STORY_ID, [0, 1], "on_user_tap", story_repo)

        assert job_id == "job-1"
        arq_pool.enqueue_job.assert_awaited_once_with(
            "generate_page_images_task",
            story_id=TEST_STORY_ID,
            page_numbers=[0, 1],
            trigger="on_user_tap",
        )

    @pytest.mark.asyncio
    async def test_over_limit_is_not_enqueued(self, story_repo):
        story_repo.count_images.return_value = 10
        arq_pool = MagicMock()
        arq_pool.enqueue_job = AsyncMock()

        with patch("guardian_kids.api.services.page_images.get_arq_pool", return_value=arq_pool):
            with pytest.raises(ImageLimitExceeded):
                await enqueue_page_images(TEST_STORY_ID, [0], "on_user_tap", story_repo)

        arq_pool.enqueue_job.assert_not_awaited()
