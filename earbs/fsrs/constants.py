"""
FSRS Constants and Parameters

All tunable parameters for the scheduler in one place.
Weights are the FSRS v4 population defaults.
"""

from datetime import timedelta
from enum import IntEnum


# ---- Review Grades ----

class Rating(IntEnum):
    """Outcome grade of a single review."""
    AGAIN = 1   # Forgot
    HARD = 2    # Recalled with high effort
    GOOD = 3    # Recalled normally
    EASY = 4    # Recalled fluently


SUCCESS_RATINGS = (Rating.HARD, Rating.GOOD, Rating.EASY)


# ---- Card Phases ----

class CardPhase(IntEnum):
    """Learning phase stored with each memory state."""
    NEW = 0          # Unlocked, never reviewed
    RELEARNING = 1   # Recovering from a lapse
    REVIEW = 2       # Steady-state spaced review


# ---- Global Constants ----

R_TARGET = 0.90          # Default target retention at due time
DECAY_FACTOR = 9.0       # K in R = (1 + t / (K * S)) ^ -1
S_MIN = 0.01             # Stability floor (days)
D_MIN = 1.0              # Minimum difficulty
D_MAX = 10.0             # Maximum difficulty
MIN_INTERVAL_DAYS = 1    # Shortest steady-state interval
MAX_INTERVAL_DAYS = 36500

# Sub-day recovery delay after a lapse; never rounded to a day
RELEARNING_STEP = timedelta(minutes=10)


# ---- Fresh Card Defaults ----

DEFAULT_STABILITY = 2.5
DEFAULT_DIFFICULTY = 2.5


# ---- Model Weights ----
# w0-w3   initial stability per rating (AGAIN..EASY)
# w4-w5   initial difficulty intercept / slope
# w6-w7   difficulty step / mean reversion
# w8-w10  stability growth on recall
# w11-w14 stability after a lapse
# w15     hard penalty
# w16     easy bonus

DEFAULT_WEIGHTS = (
    0.4, 0.6, 2.4, 5.8,
    4.93, 0.94, 0.86, 0.01,
    1.49, 0.14, 0.94,
    2.18, 0.05, 0.34, 1.26,
    0.29, 2.61,
)


# ---- Session Configuration ----

DEFAULT_SESSION_SIZE = 20


# ---- Mastery Thresholds (stability, days) ----

THRESHOLD_FAMILIAR = 7.0
THRESHOLD_CONFIDENT = 21.0
THRESHOLD_MASTERED = 60.0
