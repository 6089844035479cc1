"""Shared fixtures: in-memory card store, fixed clock, session manager."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from earbs.cards import GameType
from earbs.config import Settings
from earbs.fsrs.database import CardStore
from earbs.fsrs.memory_state import MemoryState, initialize_memory_state
from earbs.selection.pool_types import CardWithMemoryState
from earbs.session_manager import SessionManager

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> CardStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    card_store = CardStore(engine)
    card_store.init_db()
    yield card_store
    engine.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", session_size=20, target_retention=0.9)


@pytest.fixture
def manager(store, settings, clock) -> SessionManager:
    return SessionManager(store, settings=settings, clock=clock, rng=random.Random(7))


def make_card(
    card_id: str,
    due_date: datetime,
    group_key=None,
    octave: int = 4,
    mode: str = "ARPEGGIATED",
    game_type: GameType = GameType.CHORD_TYPE,
    unlocked: bool = True,
    state: MemoryState = None,
) -> CardWithMemoryState:
    """Build a selector card without touching the database."""
    if state is None:
        state = initialize_memory_state(due_date)
    return CardWithMemoryState(
        card_id=card_id,
        game_type=game_type,
        octave=octave,
        playback_mode=mode,
        group_key=group_key,
        state=state,
        unlocked=unlocked,
    )


@pytest.fixture
def card_factory():
    return make_card
