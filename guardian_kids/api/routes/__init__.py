"""API routers."""

from . import flipbook, images, interactive

__all__ = ["flipbook", "images", "interactive"]
