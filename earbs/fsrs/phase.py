"""
Phase state machine for card scheduling.

    NEW --(HARD/GOOD/EASY)--> REVIEW
    any --(AGAIN)-----------> RELEARNING
    RELEARNING --(HARD/GOOD/EASY)--> REVIEW

There is no terminal phase. The phase is persisted with the memory state
and selects which formula branch the scheduler applies.
"""

from __future__ import annotations

from earbs.fsrs.constants import CardPhase, Rating


def next_phase(phase: CardPhase, rating: Rating) -> CardPhase:
    """Phase after a review with the given rating."""
    CardPhase(phase)  # rejects unknown stored values
    if rating == Rating.AGAIN:
        return CardPhase.RELEARNING
    return CardPhase.REVIEW


def is_learning(phase: CardPhase) -> bool:
    """NEW and RELEARNING cards are still being (re)acquired."""
    return phase in (CardPhase.NEW, CardPhase.RELEARNING)
