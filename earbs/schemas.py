"""
Pydantic models for session and trial records.

These are the plain records passed between the session manager and the
card store; ORM rows never leave the database module.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from earbs.cards import GameType


class ReviewSession(BaseModel):
    """One practice session; completed exactly once."""
    id: Optional[int] = None
    game_type: GameType
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Trial(BaseModel):
    """
    A single answered question within a session.

    `answered` holds the wrong choice for incorrect answers and is None
    for correct ones.
    """
    id: Optional[int] = None
    session_id: int
    card_id: str = Field(..., min_length=1)
    game_type: GameType
    timestamp: datetime
    was_correct: bool
    answered: Optional[str] = None
