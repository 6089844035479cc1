"""
Types for review statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import pandas as pd

from earbs.analytics.constants import MASTERY_LABELS
from earbs.cards import GameType
from earbs.fsrs.constants import (
    THRESHOLD_CONFIDENT,
    THRESHOLD_FAMILIAR,
    THRESHOLD_MASTERED,
    CardPhase,
)
from earbs.fsrs.phase import is_learning


class MasteryLevel(str, Enum):
    """Coarse mastery bucket derived from stability."""
    LEARNING = "LEARNING"
    FAMILIAR = "FAMILIAR"
    CONFIDENT = "CONFIDENT"
    MASTERED = "MASTERED"

    @property
    def label(self) -> str:
        return MASTERY_LABELS[self.value]

    @classmethod
    def from_state(cls, stability: float, phase: CardPhase) -> "MasteryLevel":
        """
        NEW and RELEARNING cards are always LEARNING; otherwise stability
        thresholds of 7, 21 and 60 days apply.
        """
        if is_learning(phase):
            return cls.LEARNING
        if stability >= THRESHOLD_MASTERED:
            return cls.MASTERED
        if stability >= THRESHOLD_CONFIDENT:
            return cls.CONFIDENT
        if stability >= THRESHOLD_FAMILIAR:
            return cls.FAMILIAR
        return cls.LEARNING


@dataclass(frozen=True)
class MasteryDistribution:
    learning: int = 0
    familiar: int = 0
    confident: int = 0
    mastered: int = 0

    @property
    def total(self) -> int:
        return self.learning + self.familiar + self.confident + self.mastered

    def count_for(self, level: MasteryLevel) -> int:
        return getattr(self, level.value.lower())

    def percentage_for(self, level: MasteryLevel) -> float:
        if self.total == 0:
            return 0.0
        return 100.0 * self.count_for(level) / self.total


@dataclass(frozen=True)
class GameDashboardData:
    """
    Precomputed statistics for one game variant.
    """
    game_type: GameType
    label: str
    unlocked_count: int
    due_count: int
    trial_count: int
    overall_accuracy: float
    mastery: MasteryDistribution
    card_accuracy: pd.DataFrame
    confusion: pd.DataFrame
    trials_per_day: pd.Series
