"""
FSRS - Free Spaced Repetition Scheduler

Scheduling API for the ear-training core.

This module implements the FSRS v4 memory model with:
- Power forgetting curve: R = (1 + t / (9 * S))^-1
- Per-rating outcome tables (AGAIN / HARD / GOOD / EASY)
- NEW -> REVIEW / RELEARNING phase transitions
- Interpretable memory state (Stability, Difficulty, Retrievability)

Quick start:
    from earbs import fsrs

    # Candidate next states for every rating (algorithm only, no DB calls)
    table = fsrs.compute_outcomes(state, now)

    # Apply the observed rating
    state, event_data = fsrs.process_review(state, fsrs.Rating.GOOD, now)
"""

# Core scheduler API (algorithm logic)
from earbs.fsrs.scheduler import (
    OutcomeTable,
    SchedulingOutcome,
    apply_outcome,
    compute_outcomes,
    process_review,
)

# Phase state machine
from earbs.fsrs.phase import is_learning, next_phase

# Constants and parameters
from earbs.fsrs.constants import (
    CardPhase,
    Rating,
    R_TARGET,
    S_MIN,
    D_MIN,
    D_MAX,
    DECAY_FACTOR,
    DEFAULT_WEIGHTS,
    MAX_INTERVAL_DAYS,
    RELEARNING_STEP,
)

# Memory state
from earbs.fsrs.memory_state import (
    MemoryState,
    calculate_retrievability,
    get_elapsed_days,
    initialize_memory_state,
    validate_memory_state,
)

# Database API
from earbs.fsrs.database import CardStore


__all__ = [
    # Core algorithm
    "compute_outcomes",
    "apply_outcome",
    "process_review",
    "OutcomeTable",
    "SchedulingOutcome",

    # Phase
    "next_phase",
    "is_learning",

    # Enums
    "CardPhase",
    "Rating",

    # Memory state
    "MemoryState",
    "calculate_retrievability",
    "get_elapsed_days",
    "initialize_memory_state",
    "validate_memory_state",

    # Database
    "CardStore",

    # Parameters
    "R_TARGET",
    "S_MIN",
    "D_MIN",
    "D_MAX",
    "DECAY_FACTOR",
    "DEFAULT_WEIGHTS",
    "MAX_INTERVAL_DAYS",
    "RELEARNING_STEP",
]
