"""
Story reading constants for Guardian Kids.

Flipbook layout and interactive-story pacing values.
"""

# Flipbook and interactive reading constants
STORY_CONSTANTS = {
    "words_per_page": 300,  # Greedy paragraph budget per flipbook page
    "illustration_positions": (0.25, 0.50, 0.75),  # Fractions of content pages
    "end_page_text": "~ The End ~",
    "default_creator_name": "Unknown Author",
    "auto_advance_delay_seconds": 2.5,  # Pause on linear intro beats
    # Legacy intro beats; auto choices for older stories without stored edges
    "linear_intro_sequence": {
        "start": "build_up",
        "build_up": "first_decision",
        "path_a": "second_decision_a",
        "path_b": "second_decision_b",
    },
}
