"""
Database - Card Store I/O Operations

Handles all database operations for cards, memory state, sessions and
trials. Uses SQLAlchemy ORM; SQLite by default, Postgres in production.

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from earbs.cards import GameType, GroupingKey, parse_card_id
from earbs.errors import SessionAlreadyCompleted, SessionNotFound
from earbs.fsrs.constants import CardPhase
from earbs.fsrs.memory_state import MemoryState, initialize_memory_state, utcnow
from earbs.fsrs.models import Base, CardRow, MemoryStateRow, ReviewSessionRow, TrialRow
from earbs.schemas import ReviewSession, Trial
from earbs.selection.pool_types import CardWithMemoryState

logger = logging.getLogger(__name__)

ScheduleFn = Callable[[MemoryState], MemoryState]


def create_store_engine(db_url: str) -> Engine:
    """
    Get SQLAlchemy engine for a database URL.

    In-memory SQLite shares one connection so every session sees the same
    database; other backends use connection pooling.
    """
    if db_url.startswith("sqlite"):
        if ":memory:" in db_url or db_url.rstrip("/") == "sqlite:":
            return create_engine(
                db_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False
            )
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            echo=False
        )
        use_immediate_transactions(engine)
        return engine
    return create_engine(
        db_url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


def use_immediate_transactions(engine: Engine) -> None:
    """
    Make every transaction on a file-backed SQLite engine take the write lock
    up front with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so a read-then-write such as
    record_trial_and_update could otherwise read a row another connection is
    about to overwrite. SQLite ignores SELECT ... FOR UPDATE.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class CardStore:
    """
    SQLAlchemy-backed persistence for one learner's deck.

    Every public method runs in its own transaction. Datetimes go in and
    come out as aware UTC.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, db_url: str) -> "CardStore":
        return cls(create_store_engine(db_url))

    @classmethod
    def from_settings(cls, settings=None) -> "CardStore":
        """Build a store from the environment (see earbs.config)."""
        from earbs.config import get_settings

        settings = settings or get_settings()
        return cls.from_url(settings.database_url)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Transaction scope: commit on success, roll back on any error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ---- Schema ----

    def init_db(self) -> None:
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times.
        """
        Base.metadata.create_all(self.engine)

    def reset_db(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.

        Only use this for testing or when you want to start fresh.
        All review history will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("All tables dropped")
        self.init_db()

    # ---- Cards ----

    def upsert_card(self, game_type: GameType, card_id: str, unlocked: Optional[bool] = None) -> None:
        """
        Register a card, deriving its grouping columns from the id.

        An existing card keeps its unlock flag unless `unlocked` is given.
        """
        identity = parse_card_id(game_type, card_id)
        with self.session_scope() as session:
            row = session.get(CardRow, (identity.card_id, identity.game_type.value))
            if row is None:
                row = CardRow(
                    id=identity.card_id,
                    game_type=identity.game_type.value,
                    octave=identity.octave,
                    playback_mode=identity.mode,
                    group_key=identity.group_key,
                    unlocked=bool(unlocked),
                )
                session.add(row)
            elif unlocked is not None:
                row.unlocked = unlocked

    def unlock_card(self, game_type: GameType, card_id: str, now: Optional[datetime] = None) -> bool:
        """
        Unlock a card, creating its memory state on first unlock.

        Returns:
            True if a new memory state was created
        """
        identity = parse_card_id(game_type, card_id)
        now = now or utcnow()
        with self.session_scope() as session:
            row = session.get(CardRow, (identity.card_id, identity.game_type.value))
            if row is None:
                row = CardRow(
                    id=identity.card_id,
                    game_type=identity.game_type.value,
                    octave=identity.octave,
                    playback_mode=identity.mode,
                    group_key=identity.group_key,
                )
                session.add(row)
            row.unlocked = True

            state_row = session.get(MemoryStateRow, (identity.card_id, identity.game_type.value))
            if state_row is not None:
                return False
            state_row = MemoryStateRow(card_id=identity.card_id, game_type=identity.game_type.value)
            _apply_state(state_row, initialize_memory_state(now))
            session.add(state_row)
            return True

    def set_card_unlocked(self, game_type: GameType, card_id: str, unlocked: bool) -> None:
        """
        Set the unlock flag of a registered card. Memory state is preserved.

        Raises:
            KeyError: if the card was never registered
        """
        game = GameType(game_type).value
        with self.session_scope() as session:
            row = session.get(CardRow, (card_id, game))
            if row is None:
                raise KeyError(f"card {card_id!r} ({game}) is not registered")
            row.unlocked = unlocked

    def is_unlocked(self, game_type: GameType, card_id: str) -> bool:
        with self.session_scope() as session:
            row = session.get(CardRow, (card_id, GameType(game_type).value))
            return bool(row is not None and row.unlocked)

    # ---- Memory state ----

    def load_memory_state(self, game_type: GameType, card_id: str) -> Optional[MemoryState]:
        """
        Load memory state from database.

        Returns:
            MemoryState if found, None if the card was never unlocked
        """
        with self.session_scope() as session:
            row = session.get(MemoryStateRow, (card_id, GameType(game_type).value))
            return _state_from_row(row) if row is not None else None

    def update_memory_state(self, game_type: GameType, card_id: str, state: MemoryState) -> None:
        """
        Save memory state (insert or update).
        """
        game = GameType(game_type).value
        with self.session_scope() as session:
            row = session.get(MemoryStateRow, (card_id, game))
            if row is None:
                row = MemoryStateRow(card_id=card_id, game_type=game)
                session.add(row)
            _apply_state(row, state)

    def reset_memory_state(self, game_type: GameType, card_id: str, now: Optional[datetime] = None) -> MemoryState:
        """
        Replace a card's memory state with a fresh one. Trials are kept.

        Raises:
            KeyError: if the card was never unlocked (it has no state to reset)
        """
        game = GameType(game_type).value
        state = initialize_memory_state(now or utcnow())
        with self.session_scope() as session:
            row = session.get(MemoryStateRow, (card_id, game))
            if row is None:
                raise KeyError(f"card {card_id!r} ({game}) has no memory state")
            _apply_state(row, state)
        return state

    def get_memory_states(self, game_type: GameType) -> dict[str, MemoryState]:
        """All memory states of a game, keyed by card id."""
        with self.session_scope() as session:
            rows = session.query(MemoryStateRow).filter(
                MemoryStateRow.game_type == GameType(game_type).value
            ).all()
            return {row.card_id: _state_from_row(row) for row in rows}

    # ---- Selection queries ----

    def _unlocked_query(self, session: Session, game_type: GameType):
        return session.query(CardRow, MemoryStateRow).join(
            MemoryStateRow,
            (MemoryStateRow.card_id == CardRow.id) & (MemoryStateRow.game_type == CardRow.game_type)
        ).filter(
            CardRow.game_type == GameType(game_type).value,
            CardRow.unlocked.is_(True)
        ).order_by(MemoryStateRow.due_date.asc(), CardRow.id.asc())

    def get_due_cards(self, game_type: GameType, now: datetime) -> list[CardWithMemoryState]:
        """
        Unlocked cards with due_date <= now, most overdue first.
        """
        with self.session_scope() as session:
            rows = self._unlocked_query(session, game_type).filter(
                MemoryStateRow.due_date <= now
            ).all()
            return [_card_from_rows(card, state) for card, state in rows]

    def get_not_due_cards_for_group(
        self,
        game_type: GameType,
        grouping_key: GroupingKey,
        now: datetime,
        limit: Optional[int] = None
    ) -> list[CardWithMemoryState]:
        """
        Unlocked, not-yet-due cards of one (group_key, octave, mode) group,
        soonest due first.
        """
        group_key, octave, mode = grouping_key
        with self.session_scope() as session:
            query = self._unlocked_query(session, game_type).filter(
                MemoryStateRow.due_date > now,
                CardRow.octave == octave,
                CardRow.playback_mode == mode,
            )
            if group_key is None:
                query = query.filter(CardRow.group_key.is_(None))
            else:
                query = query.filter(CardRow.group_key == group_key)
            if limit is not None:
                query = query.limit(limit)
            return [_card_from_rows(card, state) for card, state in query.all()]

    def get_not_due_cards(
        self,
        game_type: GameType,
        now: datetime,
        limit: Optional[int] = None
    ) -> list[CardWithMemoryState]:
        """
        Unlocked, not-yet-due cards of any group, soonest due first.
        """
        with self.session_scope() as session:
            query = self._unlocked_query(session, game_type).filter(MemoryStateRow.due_date > now)
            if limit is not None:
                query = query.limit(limit)
            return [_card_from_rows(card, state) for card, state in query.all()]

    def get_unlocked_cards(self, game_type: GameType) -> list[CardWithMemoryState]:
        with self.session_scope() as session:
            rows = self._unlocked_query(session, game_type).all()
            return [_card_from_rows(card, state) for card, state in rows]

    def count_due(self, game_type: GameType, now: datetime) -> int:
        with self.session_scope() as session:
            return session.query(func.count(CardRow.id)).join(
                MemoryStateRow,
                (MemoryStateRow.card_id == CardRow.id) & (MemoryStateRow.game_type == CardRow.game_type)
            ).filter(
                CardRow.game_type == GameType(game_type).value,
                CardRow.unlocked.is_(True),
                MemoryStateRow.due_date <= now
            ).scalar()

    def count_unlocked(self, game_type: GameType) -> int:
        with self.session_scope() as session:
            return session.query(func.count(CardRow.id)).filter(
                CardRow.game_type == GameType(game_type).value,
                CardRow.unlocked.is_(True)
            ).scalar()

    # ---- Sessions ----

    def insert_session(self, review_session: ReviewSession) -> int:
        """
        Persist a new session.

        Returns:
            The generated session id
        """
        with self.session_scope() as session:
            row = ReviewSessionRow(
                game_type=GameType(review_session.game_type).value,
                started_at=review_session.started_at,
                completed_at=review_session.completed_at,
            )
            session.add(row)
            session.flush()
            return row.id

    def get_session(self, session_id: int) -> Optional[ReviewSession]:
        with self.session_scope() as session:
            row = session.get(ReviewSessionRow, session_id)
            return _session_from_row(row) if row is not None else None

    def mark_session_complete(self, session_id: int, completed_at: datetime) -> ReviewSession:
        """
        Set completed_at on an open session.

        Raises:
            SessionNotFound: if no such session exists
            SessionAlreadyCompleted: if the session was already completed
        """
        with self.session_scope() as session:
            row = _open_session_row(session, session_id)
            row.completed_at = completed_at
            return _session_from_row(row)

    # ---- Trials ----

    def insert_trial(self, trial: Trial) -> int:
        """Append a trial record. Returns the generated trial id."""
        with self.session_scope() as session:
            row = _trial_row(trial)
            session.add(row)
            session.flush()
            return row.id

    def record_trial_and_update(self, trial: Trial, schedule: ScheduleFn) -> Optional[MemoryState]:
        """
        Append a trial and persist the card's next memory state atomically.

        The memory-state row is locked for the duration of the transaction
        (FOR UPDATE; BEGIN IMMEDIATE on file-backed SQLite), so trials for
        the same card never interleave. `schedule` maps the
        locked current state to the new one; any exception it raises rolls
        back the whole transaction.

        Returns:
            The new memory state, or None (and nothing written) when the
            card has no memory state

        Raises:
            SessionNotFound: if the trial's session does not exist
            SessionAlreadyCompleted: if the trial's session was completed
        """
        game = GameType(trial.game_type).value
        with self.session_scope() as session:
            _open_session_row(session, trial.session_id)

            state_row = session.query(MemoryStateRow).filter(
                MemoryStateRow.card_id == trial.card_id,
                MemoryStateRow.game_type == game
            ).with_for_update().one_or_none()
            if state_row is None:
                return None

            new_state = schedule(_state_from_row(state_row))
            session.add(_trial_row(trial))
            _apply_state(state_row, new_state)
            return new_state

    def get_trials_for_session(self, session_id: int) -> list[Trial]:
        with self.session_scope() as session:
            rows = session.query(TrialRow).filter(
                TrialRow.session_id == session_id
            ).order_by(TrialRow.timestamp.asc(), TrialRow.id.asc()).all()
            return [_trial_from_row(row) for row in rows]

    def get_trials(self, game_type: Optional[GameType] = None, limit: Optional[int] = None) -> list[Trial]:
        """
        Get trials, oldest first, optionally for one game.
        """
        with self.session_scope() as session:
            query = session.query(TrialRow)
            if game_type is not None:
                query = query.filter(TrialRow.game_type == GameType(game_type).value)
            query = query.order_by(TrialRow.timestamp.asc(), TrialRow.id.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_trial_from_row(row) for row in query.all()]


# ---- Row mapping ----

def _state_from_row(row: MemoryStateRow) -> MemoryState:
    return MemoryState(
        stability=row.stability,
        difficulty=row.difficulty,
        interval=row.interval,
        due_date=row.due_date,
        review_count=row.review_count,
        last_review=row.last_review,
        phase=CardPhase(row.phase),
        lapses=row.lapses,
    )


def _apply_state(row: MemoryStateRow, state: MemoryState) -> None:
    row.stability = state.stability
    row.difficulty = state.difficulty
    row.interval = state.interval
    row.due_date = state.due_date
    row.review_count = state.review_count
    row.last_review = state.last_review
    row.phase = int(state.phase)
    row.lapses = state.lapses


def _card_from_rows(card: CardRow, state: MemoryStateRow) -> CardWithMemoryState:
    return CardWithMemoryState(
        card_id=card.id,
        game_type=GameType(card.game_type),
        octave=card.octave,
        playback_mode=card.playback_mode,
        group_key=card.group_key,
        state=_state_from_row(state),
        unlocked=card.unlocked,
    )


def _session_from_row(row: ReviewSessionRow) -> ReviewSession:
    return ReviewSession(
        id=row.id,
        game_type=GameType(row.game_type),
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def _open_session_row(session: Session, session_id: int) -> ReviewSessionRow:
    row = session.get(ReviewSessionRow, session_id)
    if row is None:
        raise SessionNotFound(session_id)
    if row.completed_at is not None:
        raise SessionAlreadyCompleted(session_id)
    return row


def _trial_row(trial: Trial) -> TrialRow:
    return TrialRow(
        session_id=trial.session_id,
        card_id=trial.card_id,
        game_type=GameType(trial.game_type).value,
        timestamp=trial.timestamp,
        was_correct=trial.was_correct,
        answered=trial.answered,
    )


def _trial_from_row(row: TrialRow) -> Trial:
    return Trial(
        id=row.id,
        session_id=row.session_id,
        card_id=row.card_id,
        game_type=GameType(row.game_type),
        timestamp=row.timestamp,
        was_correct=row.was_correct,
        answered=row.answered,
    )
