"""Enums shared by API requests and responses."""

from enum import Enum


class ImageTrigger(str, Enum):
    """What caused a batch of page illustrations to be requested."""

    ON_PAGE_VISIBLE = "on_page_visible"
    ON_USER_TAP = "on_user_tap"


class PageTypeName(str, Enum):
    """Flipbook page kinds as they appear on the wire."""

    COVER = "cover"
    CONTENT = "content"
    ILLUSTRATION = "illustration"
    END = "end"
