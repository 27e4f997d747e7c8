"""Service-level exceptions, translated to HTTP errors by the routes."""

from guardian_kids.core.modules.story_part_generator import GenerationError


class StoryNotFound(Exception):
    """No story with the requested ID."""

    def __init__(self, story_id: str):
        super().__init__(f"Story {story_id} not found")
        self.story_id = story_id


class ChoiceNotFound(Exception):
    """No choice with the requested ID in the story."""

    def __init__(self, choice_id: str):
        super().__init__(f"Choice {choice_id} not found")
        self.choice_id = choice_id


class NotGeneratable(Exception):
    """The choice does not lead anywhere the generator can continue from."""


class ImageLimitExceeded(Exception):
    """A batch would push the story past its age band's image cap."""

    def __init__(self, max_images: int, current: int, requested: int):
        super().__init__(
            f"Story limit: {max_images}. Current: {current}, Requested: {requested}"
        )
        self.max_images = max_images
        self.current = current
        self.requested = requested


__all__ = [
    "GenerationError",
    "StoryNotFound",
    "ChoiceNotFound",
    "NotGeneratable",
    "ImageLimitExceeded",
]
