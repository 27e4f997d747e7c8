"""Pydantic models for API requests and responses."""

from .enums import ImageTrigger, PageTypeName
from .requests import GeneratePageImagesRequest
from .responses import (
    AutoAdvanceResponse,
    ChoiceResponse,
    FlipbookPageResponse,
    FlipbookResponse,
    NodeResponse,
    PageImagesJobResponse,
    ReaderStateResponse,
)

__all__ = [
    "ImageTrigger",
    "PageTypeName",
    "GeneratePageImagesRequest",
    "AutoAdvanceResponse",
    "ChoiceResponse",
    "FlipbookPageResponse",
    "FlipbookResponse",
    "NodeResponse",
    "PageImagesJobResponse",
    "ReaderStateResponse",
]
