"""Pydantic models for API requests."""

from pydantic import BaseModel, Field

from .enums import ImageTrigger


class GeneratePageImagesRequest(BaseModel):
    """Request body for a batch of flipbook page illustrations."""

    page_numbers: list[int] = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Zero-based content page indices to illustrate",
        examples=[[0, 2, 4]],
    )
    trigger: ImageTrigger = Field(
        default=ImageTrigger.ON_USER_TAP,
        description="What caused the request",
    )
