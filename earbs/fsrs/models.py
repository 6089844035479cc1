"""
SQLAlchemy ORM Models for the scheduling database

Defines cards, their FSRS memory state, review sessions and trials.
All timestamps are stored as UTC and read back timezone-aware.
"""

from datetime import timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always round-trips aware UTC datetimes.

    SQLite drops tzinfo on read; values are normalized to naive UTC on the
    way in and tagged as UTC on the way out.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetimes are not accepted; pass an aware UTC datetime")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class CardRow(Base):
    """
    A card of one game variant with its grouping attributes.

    Grouping attributes are denormalized from the card id so selection
    queries can filter by group without parsing ids.
    """
    __tablename__ = 'cards'

    id = Column(String(100), primary_key=True)
    game_type = Column(String(50), primary_key=True)

    octave = Column(Integer, nullable=False)
    playback_mode = Column(String(50), nullable=False)  # Direction for interval/scale games
    group_key = Column(String(100), nullable=True)  # Key quality, interval or scale

    unlocked = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<CardRow({self.game_type}, {self.id}, unlocked={self.unlocked})>"


class MemoryStateRow(Base):
    """
    Persistent FSRS memory state for a single (card, game type).

    Exists iff the card has been unlocked at least once.
    """
    __tablename__ = 'fsrs_state'
    __table_args__ = (
        ForeignKeyConstraint(
            ['card_id', 'game_type'], ['cards.id', 'cards.game_type'], ondelete='CASCADE'
        ),
        Index('ix_fsrs_state_game_due', 'game_type', 'due_date'),
    )

    card_id = Column(String(100), primary_key=True)
    game_type = Column(String(50), primary_key=True)

    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    interval = Column(Integer, nullable=False, default=0)
    due_date = Column(UTCDateTime(), nullable=False)

    review_count = Column(Integer, nullable=False, default=0)
    last_review = Column(UTCDateTime(), nullable=True)
    phase = Column(Integer, nullable=False, default=0)  # 0=NEW, 1=RELEARNING, 2=REVIEW
    lapses = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<MemoryStateRow({self.game_type}, {self.card_id}, due={self.due_date})>"


class ReviewSessionRow(Base):
    """Metadata for one review session."""
    __tablename__ = 'review_sessions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_type = Column(String(50), nullable=False)
    started_at = Column(UTCDateTime(), nullable=False)
    completed_at = Column(UTCDateTime(), nullable=True)

    def __repr__(self):
        return f"<ReviewSessionRow(id={self.id}, {self.game_type}, completed={self.completed_at})>"


class TrialRow(Base):
    """
    Append-only log entry for a single answered trial.
    """
    __tablename__ = 'trials'

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        Integer, ForeignKey('review_sessions.id', ondelete='CASCADE'), nullable=False, index=True
    )
    card_id = Column(String(100), nullable=False, index=True)
    game_type = Column(String(50), nullable=False)

    timestamp = Column(UTCDateTime(), nullable=False)
    was_correct = Column(Boolean, nullable=False)
    answered = Column(String(100), nullable=True)  # Wrong choice; None when correct

    def __repr__(self):
        return f"<TrialRow(id={self.id}, session={self.session_id}, {self.card_id}, correct={self.was_correct})>"
