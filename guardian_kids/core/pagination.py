"""
Flipbook pagination for linear stories.

Lays out a story's text and illustrations into an ordered sequence of
cover / content / illustration / end pages. Pure and deterministic: the same
story and image list always produce the same pages, so it is safe to call on
every render.
"""

import math
import re
from typing import Optional, Sequence

from guardian_kids.config.story import STORY_CONSTANTS

from .types import (
    ContentPage,
    CoverPage,
    EndPage,
    FlipbookPage,
    IllustrationPage,
    StoryDocument,
    StoryImage,
)

_WHITESPACE = re.compile(r"\s+")


def count_words(paragraph: str) -> int:
    """Count words the way the page budget does: pieces between whitespace runs."""
    return len(_WHITESPACE.split(paragraph))


def paginate_content(
    content: str,
    words_per_page: int = STORY_CONSTANTS["words_per_page"],
) -> list[str]:
    """
    Greedily pack paragraphs into pages of roughly `words_per_page` words.

    One pass, no look-ahead: a page is flushed when it already holds words and
    the next paragraph would push it over budget. A paragraph longer than the
    budget is never split and gets an oversized page of its own.

    Args:
        content: Story body, paragraphs separated by blank lines
        words_per_page: Word budget per page

    Returns:
        Page texts, paragraphs within a page joined by blank lines
    """
    paragraphs = [p for p in content.split("\n\n") if p.strip()]

    pages: list[str] = []
    current_page: list[str] = []
    current_word_count = 0

    for paragraph in paragraphs:
        paragraph_word_count = count_words(paragraph)

        if current_word_count > 0 and current_word_count + paragraph_word_count > words_per_page:
            pages.append("\n\n".join(current_page))
            current_page = [paragraph]
            current_word_count = paragraph_word_count
        else:
            current_page.append(paragraph)
            current_word_count += paragraph_word_count

    if current_page:
        pages.append("\n\n".join(current_page))

    return pages


def illustration_positions(
    total_content_pages: int,
    fractions: Sequence[float] = STORY_CONSTANTS["illustration_positions"],
) -> list[int]:
    """Content-page indices after which illustrations go (25%, 50%, 75%)."""
    return [math.floor(total_content_pages * fraction) for fraction in fractions]


def generate_flipbook_pages(
    story: StoryDocument,
    images: Sequence[StoryImage],
    creator_name: str,
    words_per_page: int = STORY_CONSTANTS["words_per_page"],
) -> list[FlipbookPage]:
    """
    Build the flipbook page sequence for a story.

    Illustrations are drawn in order from the images that are not the cover.
    The k-th insertion point uses the k-th pool image; when insertion points
    coincide (small stories) only the first of them fires, and points without
    a pool image are skipped.

    Args:
        story: The story document (title, content, cover image)
        images: Story images in creation order
        creator_name: Shown on the cover as "By {creator_name}"
        words_per_page: Word budget per content page

    Returns:
        [cover, content/illustration..., end]
    """
    pages: list[FlipbookPage] = [
        CoverPage(
            title=story.title,
            subtitle=f"By {creator_name}",
            image_url=story.cover_image_url or None,
        )
    ]

    content_pages = paginate_content(story.content, words_per_page)
    positions = illustration_positions(len(content_pages))
    pool = [img for img in images if img.image_url != story.cover_image_url]

    for index, text in enumerate(content_pages):
        pages.append(ContentPage(text=text))

        ordinal = _first_index(positions, index)
        if ordinal is not None and ordinal < len(pool) and pool[ordinal].image_url:
            pages.append(IllustrationPage(image_url=pool[ordinal].image_url))

    pages.append(EndPage(text=STORY_CONSTANTS["end_page_text"]))
    return pages


def _first_index(values: list[int], target: int) -> Optional[int]:
    for i, value in enumerate(values):
        if value == target:
            return i
    return None
