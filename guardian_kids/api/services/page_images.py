"""
Batch illustration of flipbook pages.

Pages are illustrated in fixed-width batches: each batch runs concurrently
and completes before the next one starts, so at most `concurrency_limit`
image calls are in flight at once.
"""

import asyncio
import logging
from typing import Any, Optional

from guardian_kids.config.image import AGE_BAND_CONSTANTS, IMAGE_CONSTANTS, age_band_for
from guardian_kids.core.modules.page_image_generator import PageImageGenerator, build_page_prompt
from guardian_kids.core.pagination import paginate_content
from guardian_kids.core.types import StyleLock

from ..arq_pool import get_pool as get_arq_pool
from ..database.repository import StoryRepository
from .errors import ImageLimitExceeded, StoryNotFound

logger = logging.getLogger(__name__)


def check_image_limit(age_range: Optional[str], current: int, requested: int) -> None:
    """
    Raises:
        ImageLimitExceeded: If the batch would exceed the age band's cap
    """
    max_images = AGE_BAND_CONSTANTS[age_band_for(age_range)]["max_images_per_story"]
    if current + requested > max_images:
        raise ImageLimitExceeded(max_images, current, requested)


async def generate_page_images(
    story_id: str,
    page_numbers: list[int],
    trigger: str,
    story_repo: StoryRepository,
    image_generator: PageImageGenerator,
    concurrency_limit: int = IMAGE_CONSTANTS["concurrency_limit"],
) -> list[dict[str, Any]]:
    """
    Illustrate the given content pages of a story.

    Args:
        story_id: Story to illustrate
        page_numbers: Zero-based content page indices
        trigger: What caused the request (stored with each image)
        story_repo: Repository for story documents and images
        image_generator: Illustration collaborator
        concurrency_limit: Pages illustrated together per batch

    Returns:
        One result per page, in request order:
        {"page_number", "success", "image_url"} or {"page_number", "success", "error"}

    Raises:
        StoryNotFound: Unknown story
        ImageLimitExceeded: The batch would exceed the story's image cap
    """
    story = await story_repo.get_story(story_id)
    if story is None:
        raise StoryNotFound(story_id)

    current = await story_repo.count_images(story_id)
    check_image_limit(story.age_range, current, len(page_numbers))

    band = AGE_BAND_CONSTANTS[age_band_for(story.age_range)]
    pages = paginate_content(story.content)
    character = story.hero_name or "the hero"
    # The first image fixes the look; a story without one starts from the default
    style_lock = await story_repo.get_style_lock(story_id) or StyleLock()

    async def illustrate(page_index: int) -> dict[str, Any]:
        if page_index < 0 or page_index >= len(pages):
            return {"page_number": page_index, "success": False, "error": "Page out of range"}

        prompt = build_page_prompt(
            scene=pages[page_index],
            character=character,
            style_lock=style_lock,
            kid_safe=band["kid_safe"],
        )
        try:
            image_url = await image_generator.generate(prompt)
        except Exception as e:
            logger.warning(
                f"Page {page_index} illustration failed: {e}",
                extra={"story_id": story_id, "error_type": type(e).__name__},
            )
            return {"page_number": page_index, "success": False, "error": str(e)}

        return {"page_number": page_index, "success": True, "image_url": image_url, "prompt": prompt}

    results: list[dict[str, Any]] = []
    for start in range(0, len(page_numbers), concurrency_limit):
        batch = page_numbers[start : start + concurrency_limit]
        batch_results = await asyncio.gather(*(illustrate(i) for i in batch))

        # One connection: inserts run after the batch, not inside the fan-out
        for result in batch_results:
            prompt = result.pop("prompt", None)
            if result["success"]:
                await story_repo.add_image(
                    story_id,
                    result["image_url"],
                    page_number=result["page_number"] + 1,
                    trigger=trigger,
                    prompt=prompt,
                    style_lock=style_lock,
                )
            results.append(result)

    succeeded = sum(1 for r in results if r["success"])
    logger.info(
        f"Illustrated {succeeded}/{len(results)} pages",
        extra={"story_id": story_id},
    )
    return results


async def enqueue_page_images(
    story_id: str,
    page_numbers: list[int],
    trigger: str,
    story_repo: StoryRepository,
) -> str:
    """
    Check the story's image cap and enqueue a background illustration job.

    Returns:
        The ARQ job ID

    Raises:
        StoryNotFound: Unknown story
        ImageLimitExceeded: The batch would exceed the story's image cap
    """
    story = await story_repo.get_story(story_id)
    if story is None:
        raise StoryNotFound(story_id)

    current = await story_repo.count_images(story_id)
    check_image_limit(story.age_range, current, len(page_numbers))

    job = await get_arq_pool().enqueue_job(
        "generate_page_images_task",
        story_id=story_id,
        page_numbers=page_numbers,
        trigger=trigger,
    )
    return job.job_id
