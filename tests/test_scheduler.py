"""Scheduler numerics and properties."""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from earbs.errors import InvalidMemoryState
from earbs.fsrs import updates
from earbs.fsrs.constants import (
    DEFAULT_WEIGHTS,
    MAX_INTERVAL_DAYS,
    RELEARNING_STEP,
    S_MIN,
    CardPhase,
    Rating,
)
from earbs.fsrs.memory_state import (
    MemoryState,
    calculate_retrievability,
    get_elapsed_days,
    initialize_memory_state,
    validate_memory_state,
)
from earbs.fsrs.scheduler import apply_outcome, compute_outcomes, process_review


def review_state(now, stability=10.0, difficulty=5.0, elapsed_days=10, phase=CardPhase.REVIEW, lapses=0):
    last = now - timedelta(days=elapsed_days)
    return MemoryState(
        stability=stability,
        difficulty=difficulty,
        interval=elapsed_days,
        due_date=last + timedelta(days=elapsed_days),
        review_count=3,
        last_review=last,
        phase=phase,
        lapses=lapses,
    )


STATE_GRID = [
    (stability, difficulty, elapsed, phase)
    for stability in (0.01, 0.4, 2.5, 10.0, 120.0)
    for difficulty in (1.0, 5.0, 10.0)
    for elapsed in (0, 1, 30, 400)
    for phase in (CardPhase.REVIEW, CardPhase.RELEARNING)
]


# ---- Retrievability ----

def test_retrievability_is_ninety_percent_at_stability():
    assert calculate_retrievability(12.0, 12) == pytest.approx(0.9)


def test_retrievability_is_one_without_elapsed_time():
    assert calculate_retrievability(3.0, 0) == 1.0


def test_elapsed_days_floors_partial_days(now):
    state = review_state(now).with_updates(last_review=now - timedelta(days=2, hours=23))
    assert get_elapsed_days(state, now) == 2


def test_elapsed_days_never_negative(now):
    state = review_state(now).with_updates(last_review=now + timedelta(days=1))
    assert get_elapsed_days(state, now) == 0


def test_elapsed_days_falls_back_to_interval(now):
    state = review_state(now).with_updates(last_review=None, interval=6)
    assert get_elapsed_days(state, now) == 6


# ---- Intervals ----

def test_next_interval_tracks_stability_at_default_retention():
    assert updates.next_interval(2.4, 0.9) == 2
    assert updates.next_interval(5.8, 0.9) == 6


def test_next_interval_is_clamped():
    assert updates.next_interval(S_MIN, 0.9) == 1
    assert updates.next_interval(1e9, 0.9) == MAX_INTERVAL_DAYS


def test_lower_target_retention_gives_longer_intervals():
    assert updates.next_interval(10.0, 0.8) > updates.next_interval(10.0, 0.9)


@pytest.mark.parametrize("target", [0.0, 1.0, 1.5, -0.2])
def test_target_retention_out_of_range_raises(target):
    with pytest.raises(ValueError):
        updates.next_interval(10.0, target)


def test_compute_outcomes_rejects_bad_target_retention(now):
    with pytest.raises(ValueError):
        compute_outcomes(review_state(now), now, target_retention=1.0)


# ---- NEW phase ----

def test_new_card_again(now):
    state = initialize_memory_state(now)
    outcome = compute_outcomes(state, now)[Rating.AGAIN]

    assert outcome.phase == CardPhase.RELEARNING
    assert outcome.review_count == 1
    assert outcome.lapses == 1
    assert outcome.interval_days == 0
    assert outcome.due_offset == RELEARNING_STEP
    assert outcome.due_offset < timedelta(days=1)
    assert outcome.stability == pytest.approx(0.4)
    assert outcome.difficulty == pytest.approx(6.81)


def test_new_card_success_seeds_from_weights(now):
    table = compute_outcomes(initialize_memory_state(now), now)

    assert table[Rating.HARD].stability == pytest.approx(DEFAULT_WEIGHTS[1])
    assert table[Rating.GOOD].stability == pytest.approx(DEFAULT_WEIGHTS[2])
    assert table[Rating.EASY].stability == pytest.approx(DEFAULT_WEIGHTS[3])
    assert table[Rating.GOOD].difficulty == pytest.approx(4.93)
    assert table[Rating.HARD].interval_days == 1
    assert table[Rating.GOOD].interval_days == 2
    assert table[Rating.EASY].interval_days == 6
    for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
        assert table[rating].phase == CardPhase.REVIEW
        assert table[rating].lapses == 0


def test_new_card_again_keeps_lower_stability(now):
    state = initialize_memory_state(now).with_updates(stability=0.2)
    outcome = compute_outcomes(state, now)[Rating.AGAIN]
    assert outcome.stability == pytest.approx(0.2)


# ---- REVIEW / RELEARNING ----

def test_good_from_review_grows_stability(now):
    state = review_state(now)
    new_state = apply_outcome(state, Rating.GOOD, now)

    assert new_state.stability > state.stability
    assert new_state.interval > state.interval
    assert new_state.due_date > state.last_review
    assert new_state.due_date == now + timedelta(days=new_state.interval)
    assert new_state.review_count == state.review_count + 1
    assert new_state.last_review == now
    assert new_state.phase == CardPhase.REVIEW


def test_again_from_review_is_a_lapse(now):
    state = review_state(now, lapses=2)
    new_state = apply_outcome(state, Rating.AGAIN, now)

    assert new_state.stability <= state.stability
    assert new_state.stability == pytest.approx(2.83, abs=0.01)
    assert new_state.difficulty > state.difficulty
    assert new_state.phase == CardPhase.RELEARNING
    assert new_state.lapses == 3
    assert new_state.interval == 0
    assert new_state.due_date == now + RELEARNING_STEP


def test_relearning_recovers_to_review(now):
    state = review_state(now, stability=1.5, elapsed_days=0, phase=CardPhase.RELEARNING)
    new_state = apply_outcome(state, Rating.GOOD, now)
    assert new_state.phase == CardPhase.REVIEW
    assert new_state.interval >= 1


def test_difficulty_moves_with_rating(now):
    state = review_state(now)
    table = compute_outcomes(state, now)
    assert table[Rating.AGAIN].difficulty > table[Rating.HARD].difficulty > state.difficulty
    assert table[Rating.EASY].difficulty < table[Rating.GOOD].difficulty < state.difficulty


@pytest.mark.parametrize("stability,difficulty,elapsed,phase", STATE_GRID)
def test_outcome_table_properties(now, stability, difficulty, elapsed, phase):
    state = review_state(now, stability, difficulty, elapsed, phase)
    table = compute_outcomes(state, now)

    assert set(table) == set(Rating)
    again = table[Rating.AGAIN]
    assert again.stability <= state.stability
    assert again.phase == CardPhase.RELEARNING
    assert again.lapses == state.lapses + 1
    assert again.due_offset == RELEARNING_STEP

    hard, good, easy = table[Rating.HARD], table[Rating.GOOD], table[Rating.EASY]
    assert hard.interval_days <= good.interval_days < easy.interval_days
    for outcome in table.values():
        assert outcome.review_count == state.review_count + 1
        assert outcome.lapses >= state.lapses
        assert 1.0 <= outcome.difficulty <= 10.0
        assert outcome.stability >= S_MIN
        assert math.isfinite(outcome.stability)
        assert 0 <= outcome.interval_days <= MAX_INTERVAL_DAYS
    for outcome in (hard, good, easy):
        assert outcome.lapses == state.lapses
        assert outcome.phase == CardPhase.REVIEW
        assert outcome.interval_days >= 1


def test_easy_interval_capped_at_max(now):
    state = review_state(now, stability=30000.0, elapsed_days=30000)
    table = compute_outcomes(state, now)
    assert table[Rating.EASY].interval_days == MAX_INTERVAL_DAYS
    assert table[Rating.GOOD].interval_days <= MAX_INTERVAL_DAYS


def test_success_stability_update_rejects_again():
    with pytest.raises(ValueError):
        updates.update_stability_on_success(5.0, 5.0, 0.9, Rating.AGAIN, DEFAULT_WEIGHTS)


def test_process_review_returns_event_data(now):
    state = review_state(now)
    new_state, event = process_review(state, Rating.HARD, now)

    assert event["rating"] == Rating.HARD
    assert event["stability_before"] == state.stability
    assert event["stability_after"] == new_state.stability
    assert event["phase_after"] == CardPhase.REVIEW
    assert event["due_date"] == new_state.due_date


def test_scheduling_is_deterministic(now):
    state = review_state(now)
    assert compute_outcomes(state, now) == compute_outcomes(state, now)


# ---- Validation ----

@pytest.mark.parametrize("changes", [
    {"stability": -1.0},
    {"stability": float("nan")},
    {"stability": 0.0},
    {"difficulty": float("inf")},
    {"review_count": -1},
    {"lapses": -1},
    {"interval": -3},
    {"phase": 7},
])
def test_validate_rejects_out_of_range_states(now, changes):
    state = review_state(now).with_updates(**changes)
    with pytest.raises(InvalidMemoryState):
        validate_memory_state(state)


def test_validate_rejects_naive_due_date(now):
    state = review_state(now).with_updates(due_date=now.replace(tzinfo=None))
    with pytest.raises(InvalidMemoryState):
        validate_memory_state(state)


def test_validate_accepts_fresh_state(now):
    validate_memory_state(initialize_memory_state(now))
