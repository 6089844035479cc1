"""
Metric computations for review statistics.
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from earbs.analytics.constants import CARD_ACCURACY_COLUMNS, CONFUSION_COLUMNS
from earbs.analytics.types import MasteryDistribution, MasteryLevel
from earbs.cards import parse_card_id
from earbs.selection.pool_types import CardWithMemoryState


def compute_mastery_distribution(cards: Iterable[CardWithMemoryState]) -> MasteryDistribution:
    """
    Count unlocked cards per mastery level. Locked cards are excluded.
    """
    counts = {level: 0 for level in MasteryLevel}
    for card in cards:
        if not card.unlocked:
            continue
        counts[MasteryLevel.from_state(card.state.stability, card.state.phase)] += 1
    return MasteryDistribution(
        learning=counts[MasteryLevel.LEARNING],
        familiar=counts[MasteryLevel.FAMILIAR],
        confident=counts[MasteryLevel.CONFIDENT],
        mastered=counts[MasteryLevel.MASTERED],
    )


def compute_card_accuracy(trials_df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-card trial totals and accuracy, weakest cards first.
    """
    if trials_df.empty:
        return pd.DataFrame(columns=CARD_ACCURACY_COLUMNS)

    stats = trials_df.groupby("card_id").agg(
        total=("was_correct", "size"),
        correct=("was_correct", "sum"),
    ).reset_index()
    stats["total"] = stats["total"].astype("int64")
    stats["correct"] = stats["correct"].astype("int64")
    stats["accuracy"] = stats["correct"] / stats["total"]
    stats = stats.sort_values(["accuracy", "card_id"]).reset_index(drop=True)
    return stats[CARD_ACCURACY_COLUMNS]


def compute_session_card_stats(trials_df: pd.DataFrame, session_id: int) -> pd.DataFrame:
    """
    Per-card accuracy restricted to one session.
    """
    if trials_df.empty:
        return pd.DataFrame(columns=CARD_ACCURACY_COLUMNS)
    return compute_card_accuracy(trials_df[trials_df["session_id"] == session_id])


def compute_overall_accuracy(trials_df: pd.DataFrame) -> float:
    if trials_df.empty:
        return 0.0
    return float(trials_df["was_correct"].astype(bool).mean())


def compute_confusion(trials_df: pd.DataFrame) -> pd.DataFrame:
    """
    Counts of (actual content, wrong answer) pairs, most frequent first.

    Only incorrect trials with a recorded answer contribute.
    """
    if trials_df.empty:
        return pd.DataFrame(columns=CONFUSION_COLUMNS)

    wrong = trials_df[~trials_df["was_correct"].astype(bool) & trials_df["answered"].notna()].copy()
    if wrong.empty:
        return pd.DataFrame(columns=CONFUSION_COLUMNS)

    wrong["actual"] = [
        parse_card_id(game_type, card_id).content
        for game_type, card_id in zip(wrong["game_type"], wrong["card_id"])
    ]
    confusion = wrong.groupby(["actual", "answered"]).size().reset_index(name="count")
    confusion["count"] = confusion["count"].astype("int64")
    confusion = confusion.sort_values(
        ["count", "actual", "answered"], ascending=[False, True, True]
    ).reset_index(drop=True)
    return confusion[CONFUSION_COLUMNS]


def compute_trials_per_day(trials_df: pd.DataFrame) -> pd.Series:
    """
    Trial counts on a dense UTC day index spanning the trial range.
    """
    if trials_df.empty:
        return pd.Series(dtype="int64")
    day_index = pd.date_range(
        start=trials_df["day_utc"].min(), end=trials_df["day_utc"].max(), freq="D"
    )
    counts = trials_df.groupby("day_utc").size()
    return counts.reindex(day_index, fill_value=0).astype("int64")
