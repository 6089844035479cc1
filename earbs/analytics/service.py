"""
Service layer to assemble review statistics by game.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from earbs.analytics.metrics import (
    compute_card_accuracy,
    compute_confusion,
    compute_mastery_distribution,
    compute_overall_accuracy,
    compute_trials_per_day,
)
from earbs.analytics.queries import load_trials_df
from earbs.analytics.types import GameDashboardData
from earbs.cards import GameType
from earbs.fsrs.memory_state import utcnow


def build_game_dashboard(store, game_type: GameType, now: Optional[datetime] = None) -> GameDashboardData:
    """
    Build all statistics needed by the history screen for a game.
    """
    game_type = GameType(game_type)
    now = now or utcnow()

    trials_df = load_trials_df(store, game_type)
    unlocked = store.get_unlocked_cards(game_type)

    return GameDashboardData(
        game_type=game_type,
        label=game_type.display_name,
        unlocked_count=len(unlocked),
        due_count=sum(1 for card in unlocked if card.is_due(now)),
        trial_count=len(trials_df),
        overall_accuracy=compute_overall_accuracy(trials_df),
        mastery=compute_mastery_distribution(unlocked),
        card_accuracy=compute_card_accuracy(trials_df),
        confusion=compute_confusion(trials_df),
        trials_per_day=compute_trials_per_day(trials_df),
    )
