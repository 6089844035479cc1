"""
Stability, difficulty and interval updates.

Implements the FSRS v4 DSR update rules used by the scheduler.

Key principles:
- First reviews seed stability and difficulty from the rating alone
- Success grows stability more when recall was at risk (low R)
- Lapses shrink stability and never increase it
- Difficulty reverts slowly toward the "easy" baseline
"""

from __future__ import annotations

import math
from typing import Sequence

from earbs.fsrs.constants import (
    D_MAX,
    D_MIN,
    DECAY_FACTOR,
    MAX_INTERVAL_DAYS,
    MIN_INTERVAL_DAYS,
    S_MIN,
    Rating,
)


def clamp_difficulty(difficulty: float) -> float:
    return max(D_MIN, min(D_MAX, difficulty))


def initial_stability(rating: Rating, weights: Sequence[float]) -> float:
    """S_0 = w[rating - 1]"""
    return max(S_MIN, weights[int(rating) - 1])


def initial_difficulty(rating: Rating, weights: Sequence[float]) -> float:
    """
    D_0 = w4 - w5 * (rating - 3), clipped to [1, 10].
    """
    return clamp_difficulty(weights[4] - weights[5] * (int(rating) - 3))


def update_difficulty(
    difficulty: float,
    rating: Rating,
    weights: Sequence[float]
) -> float:
    """
    Update difficulty using mean reversion toward D_0(EASY).

    Formula:
        D' = w7 * D_0(EASY) + (1 - w7) * (D - w6 * (rating - 3))

    AGAIN and HARD raise difficulty, GOOD and EASY lower it.
    """
    stepped = difficulty - weights[6] * (int(rating) - 3)
    reverted = weights[7] * initial_difficulty(Rating.EASY, weights) + (1.0 - weights[7]) * stepped
    return clamp_difficulty(reverted)


def update_stability_on_success(
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: Rating,
    weights: Sequence[float]
) -> float:
    """
    Update stability after successful recall (HARD/GOOD/EASY).

    Formula:
        S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^(w10 * (1 - R)) - 1) * hard * easy)

    Where hard = w15 for HARD and easy = w16 for EASY (1 otherwise).
    """
    if rating == Rating.AGAIN:
        raise ValueError("Use update_stability_on_failure for AGAIN")

    hard_penalty = weights[15] if rating == Rating.HARD else 1.0
    easy_bonus = weights[16] if rating == Rating.EASY else 1.0

    growth = (
        math.exp(weights[8])
        * (11.0 - difficulty)
        * stability ** (-weights[9])
        * (math.exp(weights[10] * (1.0 - retrievability)) - 1.0)
        * hard_penalty
        * easy_bonus
    )
    return max(S_MIN, stability * (1.0 + growth))


def update_stability_on_failure(
    stability: float,
    difficulty: float,
    retrievability: float,
    weights: Sequence[float]
) -> float:
    """
    Update stability after a lapse (AGAIN).

    Formula:
        S' = min(S, w11 * D^-w12 * ((S + 1)^w13 - 1) * e^(w14 * (1 - R)))

    Capped at the current stability so a lapse never strengthens a card.
    """
    forgotten = (
        weights[11]
        * difficulty ** (-weights[12])
        * ((stability + 1.0) ** weights[13] - 1.0)
        * math.exp(weights[14] * (1.0 - retrievability))
    )
    return max(S_MIN, min(stability, forgotten))


def next_interval(stability: float, target_retention: float) -> int:
    """
    Days until retrievability falls to the target retention.

    Solves R(I, S) = r for I:  I = K * S * (1/r - 1)
    """
    if not 0.0 < target_retention < 1.0:
        raise ValueError(f"target_retention must be in (0, 1), got {target_retention}")
    raw = DECAY_FACTOR * stability * (1.0 / target_retention - 1.0)
    return max(MIN_INTERVAL_DAYS, min(MAX_INTERVAL_DAYS, int(raw + 0.5)))
