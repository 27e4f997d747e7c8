"""
DSPy Signatures for the three parts of an interactive adventure.

Each part is 150-200 words. The opening and the continuation end on a
decision with exactly two options; the ending resolves the story.
"""

import dspy


class OpeningPartSignature(dspy.Signature):
    """
    Create the beginning of an adventure story for an 8-10 year old reader.

    Requirements:
    - 150-200 words
    - High-energy opening with immediate conflict
    - Introduce the hero in a tricky (never gruesome) situation
    - End with a critical decision point

    Return JSON in this exact format:
    {"content": "story text here", "choices": ["Choice 1 text", "Choice 2 text"]}
    """

    hero_name: str = dspy.InputField(desc="Name of the story's hero")
    genre: str = dspy.InputField(desc="Story genre, e.g. action, mystery, fantasy")

    story_json: str = dspy.OutputField(
        desc='JSON object with "content" (150-200 words) and "choices" (two short action-oriented options)'
    )


class ContinuationPartSignature(dspy.Signature):
    """
    Continue the adventure based on the hero's choice.

    Requirements:
    - 150-200 words
    - Escalate the stakes
    - Introduce a plot twist or obstacle
    - End with another critical decision

    Return JSON in this exact format:
    {"content": "story text here", "choices": ["Choice 1 text", "Choice 2 text"]}
    """

    hero_name: str = dspy.InputField(desc="Name of the story's hero")
    genre: str = dspy.InputField(desc="Story genre")
    story_so_far: str = dspy.InputField(desc="All earlier parts, oldest first")
    choice_made: str = dspy.InputField(desc="The option the reader picked at the last decision")

    story_json: str = dspy.OutputField(
        desc='JSON object with "content" (150-200 words) and "choices" (two short options)'
    )


class EndingPartSignature(dspy.Signature):
    """
    Complete the adventure with a satisfying ending.

    Requirements:
    - 150-200 words
    - Climactic sequence where the hero overcomes the challenge
    - Clear resolution and a lesson learned, shown rather than preached

    Return JSON in this exact format:
    {"content": "story text here"}
    """

    hero_name: str = dspy.InputField(desc="Name of the story's hero")
    genre: str = dspy.InputField(desc="Story genre")
    story_so_far: str = dspy.InputField(desc="All earlier parts, oldest first")
    choice_made: str = dspy.InputField(desc="The option the reader picked at the last decision")

    story_json: str = dspy.OutputField(desc='JSON object with "content" (150-200 words)')
