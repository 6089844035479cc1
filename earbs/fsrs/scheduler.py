"""
Scheduler - FSRS Algorithm Logic

Pure scheduling (no database calls).

Main workflow:
1. Caller loads and validates the card's memory state
2. compute_outcomes() builds the candidate next state for every rating
3. The caller picks the entry matching the observed rating
4. Caller persists the new state together with the trial record

This module handles ONLY the algorithm logic.
Database I/O is handled by the database module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence, Tuple

from earbs.fsrs import updates
from earbs.fsrs.constants import (
    DEFAULT_WEIGHTS,
    MAX_INTERVAL_DAYS,
    R_TARGET,
    RELEARNING_STEP,
    CardPhase,
    Rating,
)
from earbs.fsrs.memory_state import (
    MemoryState,
    calculate_retrievability,
    get_elapsed_days,
    utcnow,
)
from earbs.fsrs.phase import next_phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchedulingOutcome:
    """Candidate next state for one rating."""
    rating: Rating
    stability: float
    difficulty: float
    interval_days: int
    due_offset: timedelta
    phase: CardPhase
    review_count: int
    lapses: int

    def due_date(self, now: datetime) -> datetime:
        return now + self.due_offset


OutcomeTable = Dict[Rating, SchedulingOutcome]


def compute_outcomes(
    state: MemoryState,
    now: datetime,
    target_retention: float = R_TARGET,
    weights: Sequence[float] = DEFAULT_WEIGHTS
) -> OutcomeTable:
    """
    Compute the next memory state for every possible rating.

    NEW cards seed stability and difficulty from the rating. Cards in
    REVIEW or RELEARNING update them from the retrievability predicted
    for the time elapsed since the last review.

    Args:
        state: Current (validated) memory state
        now: Review timestamp
        target_retention: Desired retrievability when the card comes due
        weights: FSRS model weights

    Returns:
        Mapping of every Rating to its SchedulingOutcome
    """
    params: Dict[Rating, Tuple[float, float]] = {}

    if state.phase == CardPhase.NEW:
        for rating in Rating:
            difficulty = updates.initial_difficulty(rating, weights)
            if rating == Rating.AGAIN:
                stability = min(state.stability, updates.initial_stability(rating, weights))
            else:
                stability = updates.initial_stability(rating, weights)
            params[rating] = (stability, difficulty)
    else:
        elapsed = get_elapsed_days(state, now)
        retrievability = calculate_retrievability(state.stability, elapsed)
        logger.debug(
            "Scheduling from phase=%s elapsed=%sd R=%.4f",
            CardPhase(state.phase).name, elapsed, retrievability
        )
        for rating in Rating:
            difficulty = updates.update_difficulty(state.difficulty, rating, weights)
            if rating == Rating.AGAIN:
                stability = updates.update_stability_on_failure(
                    state.stability, difficulty, retrievability, weights
                )
            else:
                stability = updates.update_stability_on_success(
                    state.stability, difficulty, retrievability, rating, weights
                )
            params[rating] = (stability, difficulty)

    intervals = _ordered_intervals(params, target_retention)

    table: OutcomeTable = {}
    for rating, (stability, difficulty) in params.items():
        if rating == Rating.AGAIN:
            interval_days = 0
            due_offset = RELEARNING_STEP
        else:
            interval_days = intervals[rating]
            due_offset = timedelta(days=interval_days)
        table[rating] = SchedulingOutcome(
            rating=rating,
            stability=stability,
            difficulty=difficulty,
            interval_days=interval_days,
            due_offset=due_offset,
            phase=next_phase(state.phase, rating),
            review_count=state.review_count + 1,
            lapses=state.lapses + 1 if rating == Rating.AGAIN else state.lapses,
        )
    return table


def _ordered_intervals(
    params: Dict[Rating, Tuple[float, float]],
    target_retention: float
) -> Dict[Rating, int]:
    """
    Solve intervals for the success ratings and keep them ordered:
    hard <= good < easy.
    """
    hard = updates.next_interval(params[Rating.HARD][0], target_retention)
    good = updates.next_interval(params[Rating.GOOD][0], target_retention)
    easy = updates.next_interval(params[Rating.EASY][0], target_retention)

    hard = min(hard, good)
    easy = min(MAX_INTERVAL_DAYS, max(easy, good + 1))
    return {Rating.HARD: hard, Rating.GOOD: good, Rating.EASY: easy}


def apply_outcome(
    state: MemoryState,
    rating: Rating,
    now: datetime,
    target_retention: float = R_TARGET,
    weights: Sequence[float] = DEFAULT_WEIGHTS
) -> MemoryState:
    """
    Return the memory state after a review with the given rating.
    """
    outcome = compute_outcomes(state, now, target_retention, weights)[Rating(rating)]
    return MemoryState(
        stability=outcome.stability,
        difficulty=outcome.difficulty,
        interval=outcome.interval_days,
        due_date=outcome.due_date(now),
        review_count=outcome.review_count,
        last_review=now,
        phase=outcome.phase,
        lapses=outcome.lapses,
    )


def process_review(
    state: MemoryState,
    rating: Rating,
    timestamp: Optional[datetime] = None,
    target_retention: float = R_TARGET,
    weights: Sequence[float] = DEFAULT_WEIGHTS
) -> Tuple[MemoryState, dict]:
    """
    Process a review and return updated state + event data.

    No database calls. Caller is responsible for:
    1. Loading and validating the state
    2. Persisting the new state together with the trial record

    Args:
        state: Current memory state
        rating: Observed rating
        timestamp: Review timestamp (defaults to now)
        target_retention: Desired retrievability at due time
        weights: FSRS model weights

    Returns:
        Tuple of (new_state, event_data_dict)
    """
    if timestamp is None:
        timestamp = utcnow()

    new_state = apply_outcome(state, rating, timestamp, target_retention, weights)

    event_data = {
        'timestamp': timestamp,
        'rating': Rating(rating),
        'phase_before': state.phase,
        'phase_after': new_state.phase,
        'stability_before': state.stability,
        'difficulty_before': state.difficulty,
        'stability_after': new_state.stability,
        'difficulty_after': new_state.difficulty,
        'interval_days': new_state.interval,
        'due_date': new_state.due_date,
    }
    logger.debug(
        "Review %s: S %.3f -> %.3f, D %.3f -> %.3f, due %s",
        Rating(rating).name, state.stability, new_state.stability,
        state.difficulty, new_state.difficulty, new_state.due_date.isoformat()
    )
    return new_state, event_data
