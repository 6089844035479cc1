"""
Constants for review statistics.
"""

from __future__ import annotations

from typing import Final


TRIAL_COLUMNS: Final[list[str]] = [
    "trial_id",
    "session_id",
    "card_id",
    "game_type",
    "timestamp",
    "was_correct",
    "answered",
    "day_utc",
]

CARD_ACCURACY_COLUMNS: Final[list[str]] = ["card_id", "total", "correct", "accuracy"]

CONFUSION_COLUMNS: Final[list[str]] = ["actual", "answered", "count"]

MASTERY_LABELS: Final[dict[str, str]] = {
    "LEARNING": "Learning",
    "FAMILIAR": "Familiar",
    "CONFIDENT": "Confident",
    "MASTERED": "Mastered",
}
