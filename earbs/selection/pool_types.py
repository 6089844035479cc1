"""
Typed pool models shared by the card selector and the card store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from earbs.cards import GameType, GroupingKey
from earbs.fsrs.memory_state import MemoryState


@dataclass(frozen=True)
class CardWithMemoryState:
    """
    An unlocked card joined with its current memory state.
    """
    card_id: str
    game_type: GameType
    octave: int
    playback_mode: str
    group_key: Optional[str]
    state: MemoryState
    unlocked: bool = True

    @property
    def due_date(self) -> datetime:
        return self.state.due_date

    @property
    def grouping_key(self) -> GroupingKey:
        return (self.group_key, self.octave, self.playback_mode)

    def is_due(self, now: datetime) -> bool:
        return self.state.is_due(now)
