"""
earbs - spaced repetition core for an ear-training flashcard app.

Quick start:
    from earbs import CardStore, SessionManager, GameType

    store = CardStore.from_settings()
    store.init_db()
    manager = SessionManager(store)

    manager.initialize_deck(GameType.CHORD_TYPE, ["MAJOR_4_ARPEGGIATED"])
    session_id = manager.start_session(GameType.CHORD_TYPE)
    for card_id in manager.select_session(GameType.CHORD_TYPE):
        manager.record_trial(session_id, card_id, was_correct=True)
    manager.complete_session(session_id)
"""

from earbs.cards import GameType, parse_card_id
from earbs.config import Settings, get_settings
from earbs.errors import (
    EarbsError,
    InvalidCardIdentity,
    InvalidMemoryState,
    SessionAlreadyCompleted,
    SessionNotFound,
)
from earbs.fsrs import CardPhase, MemoryState, Rating, compute_outcomes
from earbs.fsrs.database import CardStore
from earbs.selection import select_session
from earbs.session_manager import SessionManager

__all__ = [
    "CardPhase",
    "CardStore",
    "EarbsError",
    "GameType",
    "InvalidCardIdentity",
    "InvalidMemoryState",
    "MemoryState",
    "Rating",
    "SessionAlreadyCompleted",
    "SessionManager",
    "SessionNotFound",
    "Settings",
    "compute_outcomes",
    "get_settings",
    "parse_card_id",
    "select_session",
]
