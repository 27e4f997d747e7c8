"""
DSPy Module for generating interactive story parts.

One predictor per beat. The model answers with a JSON object; the first
{...} block in the output is parsed, so prose around the JSON is tolerated.
"""

import json
import re
from typing import Optional, Protocol, Sequence

import dspy

from guardian_kids.config.llm import llm_retry

from ..signatures.story_part import (
    ContinuationPartSignature,
    EndingPartSignature,
    OpeningPartSignature,
)
from ..types import GeneratedPart, StoryBeat

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class GenerationError(Exception):
    """The text collaborator failed or returned something unusable. Retryable."""


class StoryPartGenerator(Protocol):
    """Produces the text for one node of an interactive story."""

    def generate(
        self,
        beat: StoryBeat,
        hero_name: str,
        genre: str,
        story_so_far: Sequence[str] = (),
        choice_made: Optional[str] = None,
    ) -> GeneratedPart: ...


def parse_part_output(raw_output: str, beat: StoryBeat) -> GeneratedPart:
    """
    Parse model output into a GeneratedPart.

    Raises:
        GenerationError: No JSON object, empty content, or fewer than two
            choices for a beat that must end on a decision
    """
    match = _JSON_OBJECT.search(raw_output or "")
    if not match:
        raise GenerationError("No JSON found in response")

    try:
        parsed = json.loads(match.group(0))
    except ValueError as e:
        raise GenerationError(f"Malformed JSON in response: {e}") from e

    content = str(parsed.get("content") or "").strip()
    if not content:
        raise GenerationError("Response JSON has no story content")

    choices = [str(c).strip() for c in parsed.get("choices") or [] if str(c).strip()]
    if beat == StoryBeat.ENDING:
        choices = []
    elif len(choices) < 2:
        raise GenerationError(f"Expected two choices for {beat.value} part, got {len(choices)}")

    return GeneratedPart(
        content=content,
        choices=choices[:2],
        title=parsed.get("title") or None,
        illustration_prompt=str(parsed.get("illustration") or "").strip(),
    )


class DspyStoryPartGenerator(dspy.Module):
    """
    Generate opening, continuation and ending parts with an LLM.

    Args:
        lm: Optional explicit LM; falls back to the globally configured one
    """

    def __init__(self, lm: Optional[dspy.LM] = None):
        super().__init__()
        self.lm = lm
        self.opening = dspy.Predict(OpeningPartSignature)
        self.continuation = dspy.Predict(ContinuationPartSignature)
        self.ending = dspy.Predict(EndingPartSignature)

    @llm_retry
    def _predict(self, beat: StoryBeat, **inputs) -> str:
        predictor = {
            StoryBeat.OPENING: self.opening,
            StoryBeat.CONTINUATION: self.continuation,
            StoryBeat.ENDING: self.ending,
        }[beat]

        if self.lm is not None:
            with dspy.context(lm=self.lm):
                result = predictor(**inputs)
        else:
            result = predictor(**inputs)
        return result.story_json

    def forward(
        self,
        beat: StoryBeat,
        hero_name: str,
        genre: str,
        story_so_far: Sequence[str] = (),
        choice_made: Optional[str] = None,
    ) -> GeneratedPart:
        inputs = {"hero_name": hero_name, "genre": genre}
        if beat != StoryBeat.OPENING:
            inputs["story_so_far"] = "\n\n".join(
                f"Part {i}: {text}" for i, text in enumerate(story_so_far, start=1)
            )
            inputs["choice_made"] = choice_made or ""

        try:
            raw = self._predict(beat, **inputs)
        except Exception as e:
            raise GenerationError(f"Story generation failed: {e}") from e

        return parse_part_output(raw, beat)

    def generate(self, *args, **kwargs) -> GeneratedPart:
        return self.forward(*args, **kwargs)
