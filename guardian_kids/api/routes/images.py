"""Batch page illustration endpoint."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from ..dependencies import CurrentUser, StoryRepo
from ..models.requests import GeneratePageImagesRequest
from ..models.responses import PageImagesJobResponse
from ..services.errors import ImageLimitExceeded, StoryNotFound
from ..services.page_images import enqueue_page_images

router = APIRouter()


@router.post(
    "/{story_id}/images",
    response_model=PageImagesJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Illustrate pages",
    description="Queue illustrations for flipbook content pages. Returns immediately with a job ID.",
    responses={400: {"description": "Story image limit exceeded"}},
)
async def generate_images(
    story_id: str,
    request: GeneratePageImagesRequest,
    user_id: CurrentUser,
    repo: StoryRepo,
):
    """Enqueue a batch of page illustrations."""
    try:
        job_id = await enqueue_page_images(
            story_id,
            request.page_numbers,
            request.trigger.value,
            repo,
        )
    except StoryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ImageLimitExceeded as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "STORY_LIMIT_EXCEEDED", "detail": str(e)},
        )

    return PageImagesJobResponse(
        job_id=job_id,
        story_id=story_id,
        page_numbers=request.page_numbers,
    )
