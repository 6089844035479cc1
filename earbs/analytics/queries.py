"""
Data-loading helpers for review statistics.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from earbs.analytics.constants import TRIAL_COLUMNS
from earbs.cards import GameType
from earbs.schemas import Trial


def trials_to_df(trials: list[Trial]) -> pd.DataFrame:
    """
    Convert trial records into a dataframe sorted by timestamp.
    """
    if not trials:
        return pd.DataFrame(columns=TRIAL_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "trial_id": t.id,
                "session_id": t.session_id,
                "card_id": t.card_id,
                "game_type": GameType(t.game_type).value,
                "timestamp": t.timestamp,
                "was_correct": t.was_correct,
                "answered": t.answered,
            }
            for t in trials
        ]
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df = df.dropna(subset=["card_id", "timestamp"])
    df["day_utc"] = df["timestamp"].dt.floor("D")
    df = df.sort_values(["timestamp", "trial_id"]).reset_index(drop=True)
    return df[TRIAL_COLUMNS]


def load_trials_df(store, game_type: Optional[GameType] = None) -> pd.DataFrame:
    """
    Load trials for one game (or all games) into a dataframe.
    """
    return trials_to_df(store.get_trials(game_type))
