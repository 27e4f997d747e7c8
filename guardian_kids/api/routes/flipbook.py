"""Flipbook endpoint for linear stories."""

from fastapi import APIRouter, HTTPException, status

from guardian_kids.core.pagination import generate_flipbook_pages

from ..dependencies import CurrentUser, StoryRepo
from ..models.responses import FlipbookResponse

router = APIRouter()


@router.get(
    "/{story_id}/flipbook",
    response_model=FlipbookResponse,
    response_model_exclude_none=True,
    summary="Get flipbook pages",
    description="Paginate a linear story into cover, content, illustration and end pages.",
)
async def get_flipbook(story_id: str, user_id: CurrentUser, repo: StoryRepo):
    """Build the flipbook for a story."""
    story = await repo.get_story(story_id)
    if not story:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Story {story_id} not found",
        )

    creator_name = await repo.get_creator_name(story.created_by)
    images = await repo.list_images(story_id)
    pages = generate_flipbook_pages(story, images, creator_name)

    return FlipbookResponse.from_pages(story_id, pages)
