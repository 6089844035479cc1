"""
Analytics package exports.
"""

from earbs.analytics.metrics import (
    compute_card_accuracy,
    compute_confusion,
    compute_mastery_distribution,
    compute_session_card_stats,
)
from earbs.analytics.service import build_game_dashboard
from earbs.analytics.types import GameDashboardData, MasteryDistribution, MasteryLevel

__all__ = [
    "build_game_dashboard",
    "compute_card_accuracy",
    "compute_confusion",
    "compute_mastery_distribution",
    "compute_session_card_stats",
    "GameDashboardData",
    "MasteryDistribution",
    "MasteryLevel",
]
