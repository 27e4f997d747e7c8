"""Interactive (branching) story endpoints."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from ..dependencies import CurrentUser, PartService, Reader
from ..models.responses import NodeResponse, ReaderStateResponse
from ..services.errors import ChoiceNotFound, GenerationError, NotGeneratable, StoryNotFound

router = APIRouter()


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _generation_failed(e: GenerationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(e), "retryable": True},
    )


@router.get(
    "/{story_id}/interactive",
    response_model=ReaderStateResponse,
    summary="Get reader state",
    description="Resolve where the reader is in an interactive story: saved position, or the start node.",
)
async def get_reader_state(story_id: str, user_id: CurrentUser, reader: Reader):
    """Resolve the reader's current node and available choices."""
    try:
        engine = await reader.open(story_id, user_id)
    except StoryNotFound as e:
        raise _not_found(e)

    return ReaderStateResponse.from_engine(engine)


@router.post(
    "/{story_id}/interactive/choices/{choice_id}",
    response_model=ReaderStateResponse,
    summary="Select a choice",
    description="Follow a choice from the current node. Choices not available from the current node are a no-op (advanced=false).",
    responses={502: {"description": "Generating the destination failed (retryable)"}},
)
async def select_choice(
    story_id: str,
    choice_id: str,
    user_id: CurrentUser,
    reader: Reader,
    parts: PartService,
):
    """Advance along a choice, generating its destination first if needed."""
    try:
        engine, advanced = await reader.choose(
            story_id,
            user_id,
            choice_id,
            generate_missing=parts.generate_next,
        )
    except StoryNotFound as e:
        raise _not_found(e)
    except GenerationError as e:
        return _generation_failed(e)

    return ReaderStateResponse.from_engine(engine, advanced=advanced)


@router.post(
    "/{story_id}/interactive/restart",
    response_model=ReaderStateResponse,
    summary="Restart story",
    description="Delete saved progress and return to the start node.",
)
async def restart_story(story_id: str, user_id: CurrentUser, reader: Reader):
    """Restart the story for this reader."""
    try:
        engine = await reader.restart(story_id, user_id)
    except StoryNotFound as e:
        raise _not_found(e)

    return ReaderStateResponse.from_engine(engine)


@router.post(
    "/{story_id}/interactive/parts",
    response_model=NodeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate opening",
    description="Generate part 1 of an interactive story with its two branches.",
    responses={502: {"description": "Generation failed (retryable)"}},
)
async def generate_opening(story_id: str, user_id: CurrentUser, parts: PartService):
    """Generate the opening part."""
    try:
        node = await parts.generate_opening(story_id)
    except StoryNotFound as e:
        raise _not_found(e)
    except GenerationError as e:
        return _generation_failed(e)

    return NodeResponse.from_node(node)


@router.post(
    "/{story_id}/interactive/parts/{choice_id}",
    response_model=NodeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate next part",
    description="Generate the part behind a choice: a continuation after the opening, an ending after a continuation.",
    responses={502: {"description": "Generation failed (retryable)"}},
)
async def generate_next_part(
    story_id: str,
    choice_id: str,
    user_id: CurrentUser,
    parts: PartService,
):
    """Generate the node a choice leads to."""
    try:
        node = await parts.generate_next(story_id, choice_id)
    except (StoryNotFound, ChoiceNotFound) as e:
        raise _not_found(e)
    except NotGeneratable as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except GenerationError as e:
        return _generation_failed(e)

    return NodeResponse.from_node(node)
