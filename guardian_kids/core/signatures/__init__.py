# Interactive story parts
from .story_part import (
    OpeningPartSignature,
    ContinuationPartSignature,
    EndingPartSignature,
)

__all__ = [
    "OpeningPartSignature",
    "ContinuationPartSignature",
    "EndingPartSignature",
]
