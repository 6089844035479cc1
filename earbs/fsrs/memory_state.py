"""
Memory State - FSRS Card State and Retrievability

Defines the persisted memory state of one card and the derived quantities
used by the scheduler.

Key concepts:
- Stability (S): days until retrievability decays to ~90%
- Difficulty (D): resistance to strengthening (1-10 scale)
- Retrievability (R): probability of successful recall after t days
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from earbs.errors import InvalidMemoryState
from earbs.fsrs.constants import (
    DECAY_FACTOR,
    DEFAULT_DIFFICULTY,
    DEFAULT_STABILITY,
    S_MIN,
    CardPhase,
)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MemoryState:
    """
    Scheduling state for a single (card, game type) pair.

    Instances are immutable; the scheduler returns new states.
    """
    stability: float  # S, in days
    difficulty: float  # D, range 1-10
    interval: int  # Days scheduled by the last review (0 = sub-day)
    due_date: datetime
    review_count: int = 0
    last_review: Optional[datetime] = None
    phase: CardPhase = CardPhase.NEW
    lapses: int = 0

    def is_due(self, now: datetime) -> bool:
        return self.due_date <= now

    def with_updates(self, **changes) -> "MemoryState":
        return replace(self, **changes)


def initialize_memory_state(now: Optional[datetime] = None) -> MemoryState:
    """
    State for a freshly unlocked card: due immediately, never reviewed.
    """
    if now is None:
        now = utcnow()
    return MemoryState(
        stability=DEFAULT_STABILITY,
        difficulty=DEFAULT_DIFFICULTY,
        interval=0,
        due_date=now,
        review_count=0,
        last_review=None,
        phase=CardPhase.NEW,
        lapses=0,
    )


def calculate_retrievability(stability: float, elapsed_days: float) -> float:
    """
    Calculate retrievability using the FSRS power forgetting curve.

    Formula: R = (1 + t / (K * S)) ^ -1

    With K = 9, R equals 0.9 exactly when t == S.

    Args:
        stability: Current stability in days
        elapsed_days: Time since the last review in days

    Returns:
        Retrievability between 0 and 1
    """
    if elapsed_days <= 0:
        return 1.0
    return 1.0 / (1.0 + elapsed_days / (DECAY_FACTOR * stability))


def get_elapsed_days(state: MemoryState, now: datetime) -> int:
    """
    Whole days since the last review, never negative.

    A state that was never reviewed falls back to its scheduled interval.
    """
    if state.last_review is None:
        return state.interval
    seconds = (now - state.last_review).total_seconds()
    return max(0, int(seconds // 86400))


def validate_memory_state(state: MemoryState) -> None:
    """
    Reject states the scheduler must not be called with.

    Raises:
        InvalidMemoryState: on negative/non-finite parameters or counters,
            or timezone-naive timestamps
    """
    for name in ("stability", "difficulty"):
        value = getattr(state, name)
        if not math.isfinite(value) or value < 0:
            raise InvalidMemoryState(f"{name} must be finite and non-negative, got {value}")
    if state.stability < S_MIN:
        raise InvalidMemoryState(f"stability must be at least {S_MIN}, got {state.stability}")
    for name in ("interval", "review_count", "lapses"):
        if getattr(state, name) < 0:
            raise InvalidMemoryState(f"{name} must be non-negative, got {getattr(state, name)}")
    try:
        CardPhase(state.phase)
    except ValueError as exc:
        raise InvalidMemoryState(f"unknown phase {state.phase!r}") from exc
    if state.due_date.tzinfo is None:
        raise InvalidMemoryState("due_date must be timezone-aware")
    if state.last_review is not None and state.last_review.tzinfo is None:
        raise InvalidMemoryState("last_review must be timezone-aware")
