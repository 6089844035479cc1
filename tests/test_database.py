"""Card store persistence."""

from __future__ import annotations

import sqlite3
from datetime import timedelta

import pytest

from earbs.cards import GameType
from earbs.errors import InvalidCardIdentity, SessionAlreadyCompleted, SessionNotFound
from earbs.fsrs.constants import CardPhase, Rating
from earbs.fsrs.database import CardStore
from earbs.fsrs.memory_state import MemoryState
from earbs.fsrs.scheduler import apply_outcome, compute_outcomes
from earbs.schemas import ReviewSession, Trial

GAME = GameType.CHORD_FUNCTION
CARD = "IV_MAJOR_4_BLOCK"


def test_unlock_creates_default_state_once(store, now):
    assert store.unlock_card(GAME, CARD, now) is True
    assert store.unlock_card(GAME, CARD, now + timedelta(days=1)) is False

    state = store.load_memory_state(GAME, CARD)
    assert state.stability == 2.5
    assert state.difficulty == 2.5
    assert state.phase == CardPhase.NEW
    assert state.due_date == now
    assert state.last_review is None


def test_unlock_rejects_malformed_ids(store, now):
    with pytest.raises(InvalidCardIdentity):
        store.unlock_card(GAME, "IV_4_BLOCK", now)


def test_grouping_columns_come_from_the_id(store, now):
    store.unlock_card(GAME, CARD, now)
    (card,) = store.get_unlocked_cards(GAME)
    assert card.grouping_key == ("MAJOR", 4, "BLOCK")
    assert card.game_type is GAME


def test_state_round_trip_reproduces_scheduling(store, now):
    store.unlock_card(GAME, CARD, now)
    state = apply_outcome(store.load_memory_state(GAME, CARD), Rating.GOOD, now)
    state = apply_outcome(state, Rating.AGAIN, now + timedelta(days=2, minutes=3, microseconds=17))
    store.update_memory_state(GAME, CARD, state)

    reloaded = store.load_memory_state(GAME, CARD)
    assert reloaded == state
    assert reloaded.due_date.tzinfo is not None
    later = now + timedelta(days=5)
    assert compute_outcomes(reloaded, later) == compute_outcomes(state, later)


def test_memory_state_is_per_game(store, now):
    store.unlock_card(GameType.CHORD_TYPE, "MAJOR_4_BLOCK", now)
    assert store.load_memory_state(GameType.CHORD_TYPE, "MAJOR_4_BLOCK") is not None
    assert store.load_memory_state(GameType.CHORD_PROGRESSION, "MAJOR_4_BLOCK") is None


def test_locking_keeps_state(store, now):
    store.unlock_card(GAME, CARD, now)
    store.set_card_unlocked(GAME, CARD, False)

    assert not store.is_unlocked(GAME, CARD)
    assert store.load_memory_state(GAME, CARD) is not None
    assert store.count_unlocked(GAME) == 0
    assert store.get_due_cards(GAME, now) == []


def test_set_unlocked_on_unknown_card(store):
    with pytest.raises(KeyError):
        store.set_card_unlocked(GAME, CARD, True)


def test_upsert_card_registers_locked_card(store):
    store.upsert_card(GAME, CARD)
    assert not store.is_unlocked(GAME, CARD)
    store.upsert_card(GAME, CARD, unlocked=True)
    assert store.is_unlocked(GAME, CARD)
    assert store.load_memory_state(GAME, CARD) is None


def test_due_and_not_due_queries(store, now):
    for card_id, offset in [
        ("IV_MAJOR_4_BLOCK", -2),
        ("V_MAJOR_4_BLOCK", -1),
        ("vi_MAJOR_4_BLOCK", 3),
        ("iv_MINOR_4_BLOCK", 1),
        ("v_MINOR_4_BLOCK", 2),
    ]:
        store.unlock_card(GAME, card_id, now)
        state = store.load_memory_state(GAME, card_id)
        store.update_memory_state(GAME, card_id, state.with_updates(due_date=now + timedelta(hours=offset)))

    assert [c.card_id for c in store.get_due_cards(GAME, now)] == ["IV_MAJOR_4_BLOCK", "V_MAJOR_4_BLOCK"]
    assert store.count_due(GAME, now) == 2
    assert store.count_unlocked(GAME) == 5

    group = store.get_not_due_cards_for_group(GAME, ("MINOR", 4, "BLOCK"), now)
    assert [c.card_id for c in group] == ["iv_MINOR_4_BLOCK", "v_MINOR_4_BLOCK"]
    assert len(store.get_not_due_cards_for_group(GAME, ("MINOR", 4, "BLOCK"), now, limit=1)) == 1
    assert store.get_not_due_cards_for_group(GAME, ("MINOR", 3, "BLOCK"), now) == []

    rest = store.get_not_due_cards(GAME, now, limit=2)
    assert [c.card_id for c in rest] == ["iv_MINOR_4_BLOCK", "v_MINOR_4_BLOCK"]


def test_group_query_matches_missing_group_key(store, now):
    store.unlock_card(GameType.CHORD_TYPE, "MAJOR_4_BLOCK", now)
    state = store.load_memory_state(GameType.CHORD_TYPE, "MAJOR_4_BLOCK")
    store.update_memory_state(
        GameType.CHORD_TYPE, "MAJOR_4_BLOCK", state.with_updates(due_date=now + timedelta(days=1))
    )
    found = store.get_not_due_cards_for_group(GameType.CHORD_TYPE, (None, 4, "BLOCK"), now)
    assert [c.card_id for c in found] == ["MAJOR_4_BLOCK"]


def test_session_lifecycle(store, now):
    session_id = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    session = store.get_session(session_id)
    assert session.started_at == now
    assert not session.is_completed

    completed = store.mark_session_complete(session_id, now + timedelta(minutes=5))
    assert completed.completed_at == now + timedelta(minutes=5)

    with pytest.raises(SessionAlreadyCompleted):
        store.mark_session_complete(session_id, now)
    with pytest.raises(SessionNotFound):
        store.mark_session_complete(session_id + 100, now)
    assert store.get_session(session_id + 100) is None


def test_record_trial_and_update_writes_both(store, now):
    store.unlock_card(GAME, CARD, now)
    session_id = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    trial = Trial(session_id=session_id, card_id=CARD, game_type=GAME, timestamp=now, was_correct=True)

    new_state = store.record_trial_and_update(trial, lambda s: apply_outcome(s, Rating.GOOD, now))

    assert store.load_memory_state(GAME, CARD) == new_state
    (saved,) = store.get_trials_for_session(session_id)
    assert saved.card_id == CARD
    assert saved.was_correct is True
    assert saved.answered is None
    assert saved.timestamp == now


def test_record_trial_and_update_rolls_back_on_failure(store, now):
    store.unlock_card(GAME, CARD, now)
    before = store.load_memory_state(GAME, CARD)
    session_id = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    trial = Trial(session_id=session_id, card_id=CARD, game_type=GAME, timestamp=now, was_correct=False)

    def broken_schedule(state: MemoryState) -> MemoryState:
        raise RuntimeError("scheduler exploded")

    with pytest.raises(RuntimeError):
        store.record_trial_and_update(trial, broken_schedule)

    assert store.load_memory_state(GAME, CARD) == before
    assert store.get_trials_for_session(session_id) == []


def test_record_trial_without_state_writes_nothing(store, now):
    session_id = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    trial = Trial(session_id=session_id, card_id=CARD, game_type=GAME, timestamp=now, was_correct=True)

    assert store.record_trial_and_update(trial, lambda s: s) is None
    assert store.get_trials_for_session(session_id) == []


def test_insert_trial_and_filter_by_game(store, now):
    chord_session = store.insert_session(ReviewSession(game_type=GameType.CHORD_TYPE, started_at=now))
    function_session = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    store.insert_trial(Trial(
        session_id=chord_session, card_id="MAJOR_4_BLOCK", game_type=GameType.CHORD_TYPE,
        timestamp=now, was_correct=False, answered="MINOR",
    ))
    store.insert_trial(Trial(
        session_id=function_session, card_id=CARD, game_type=GAME,
        timestamp=now + timedelta(seconds=1), was_correct=True,
    ))

    assert len(store.get_trials()) == 2
    (chord_trial,) = store.get_trials(GameType.CHORD_TYPE)
    assert chord_trial.answered == "MINOR"


def test_reset_memory_state_keeps_trials(store, now):
    store.unlock_card(GAME, CARD, now)
    session_id = store.insert_session(ReviewSession(game_type=GAME, started_at=now))
    trial = Trial(session_id=session_id, card_id=CARD, game_type=GAME, timestamp=now, was_correct=True)
    store.record_trial_and_update(trial, lambda s: apply_outcome(s, Rating.EASY, now))

    later = now + timedelta(days=3)
    state = store.reset_memory_state(GAME, CARD, later)

    assert state.phase == CardPhase.NEW
    assert state.review_count == 0
    assert store.load_memory_state(GAME, CARD) == state
    assert len(store.get_trials_for_session(session_id)) == 1


def test_reset_db_drops_everything(store, now):
    store.unlock_card(GAME, CARD, now)
    store.reset_db()
    assert store.load_memory_state(GAME, CARD) is None
    assert store.count_unlocked(GAME) == 0


def test_from_url_in_memory():
    store = CardStore.from_url("sqlite:///:memory:")
    store.init_db()
    assert store.count_unlocked(GAME) == 0


def test_reset_memory_state_requires_existing_state(store, now):
    with pytest.raises(KeyError):
        store.reset_memory_state(GAME, CARD, now)
    assert store.load_memory_state(GAME, CARD) is None


def test_file_store_takes_write_lock_on_begin(tmp_path):
    path = tmp_path / "earbs.db"
    file_store = CardStore.from_url(f"sqlite:///{path}")
    file_store.init_db()

    other = sqlite3.connect(str(path), timeout=0, isolation_level=None)
    try:
        with file_store.session_scope() as session:
            session.connection()
            with pytest.raises(sqlite3.OperationalError, match="locked"):
                other.execute("BEGIN IMMEDIATE")
        other.execute("BEGIN IMMEDIATE")
        other.execute("ROLLBACK")
    finally:
        other.close()
        file_store.engine.dispose()
