"""
Session Manager - review session lifecycle.

The only writer of memory state, trials and sessions. Selection and
scheduling are pure; this module wires them to the card store.

Main workflow:
1. start_session() opens a session row
2. select_session() picks the cards to present
3. record_trial() logs each answer and reschedules the card atomically
4. complete_session() finalizes the session exactly once
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Iterable, Optional

from earbs.cards import GameType, parse_card_id
from earbs.config import Settings, get_settings
from earbs.errors import SessionNotFound
from earbs.fsrs.constants import Rating
from earbs.fsrs.memory_state import MemoryState, utcnow, validate_memory_state
from earbs.fsrs.scheduler import apply_outcome
from earbs.schemas import ReviewSession, Trial
from earbs.selection.card_selector import select_session_from_store

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SessionManager:
    """
    Orchestrates sessions against a CardStore.

    Args:
        store: Persistence object (see earbs.fsrs.database.CardStore)
        settings: Runtime settings; read from the environment if None
        clock: Returns the current aware UTC time (utcnow if None)
        rng: Random source for presentation order
    """

    def __init__(
        self,
        store,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.rng = rng

    # ---- Session lifecycle ----

    def start_session(self, game_type: GameType) -> int:
        game_type = GameType(game_type)
        session_id = self.store.insert_session(
            ReviewSession(game_type=game_type, started_at=self.clock())
        )
        logger.info("Started %s session %s", game_type.value, session_id)
        return session_id

    def select_session(
        self,
        game_type: GameType,
        session_size: Optional[int] = None,
        repeat_to_fill: bool = False
    ) -> list[str]:
        """
        Card ids for the next session, in presentation order.
        """
        if session_size is None:
            session_size = self.settings.session_size
        return select_session_from_store(
            self.store,
            GameType(game_type),
            session_size,
            self.clock(),
            rng=self.rng,
            repeat_to_fill=repeat_to_fill,
        )

    def record_trial(
        self,
        session_id: int,
        card_id: str,
        was_correct: bool,
        chosen_answer: Optional[str] = None,
        rating: Optional[Rating] = None
    ) -> Optional[MemoryState]:
        """
        Log one answer and reschedule the card in a single transaction.

        Correct answers are graded GOOD and incorrect ones AGAIN unless an
        explicit rating is given.

        Returns:
            The card's new memory state, or None if the card has no memory
            state (nothing is written in that case)

        Raises:
            SessionNotFound: unknown session
            SessionAlreadyCompleted: the session was already completed
            InvalidCardIdentity: card id does not parse for the session's game
            InvalidMemoryState: the stored state is out of range
        """
        review_session = self.store.get_session(session_id)
        if review_session is None:
            raise SessionNotFound(session_id)
        game_type = review_session.game_type
        identity = parse_card_id(game_type, card_id)

        if rating is None:
            rating = Rating.GOOD if was_correct else Rating.AGAIN
        rating = Rating(rating)
        now = self.clock()
        target_retention = self.settings.target_retention

        def schedule(state: MemoryState) -> MemoryState:
            validate_memory_state(state)
            return apply_outcome(state, rating, now, target_retention)

        trial = Trial(
            session_id=session_id,
            card_id=identity.card_id,
            game_type=game_type,
            timestamp=now,
            was_correct=was_correct,
            answered=None if was_correct else chosen_answer,
        )
        new_state = self.store.record_trial_and_update(trial, schedule)

        if new_state is None:
            logger.warning(
                "No memory state for %s card %s; trial in session %s skipped",
                game_type.value, identity.card_id, session_id
            )
            return None

        logger.debug(
            "Trial %s %s: %s -> phase=%s due=%s",
            identity.card_id, "correct" if was_correct else "wrong",
            rating.name, new_state.phase.name, new_state.due_date.isoformat()
        )
        return new_state

    def complete_session(self, session_id: int) -> ReviewSession:
        """
        Finalize a session.

        Raises:
            SessionNotFound: unknown session
            SessionAlreadyCompleted: on the second call
        """
        review_session = self.store.mark_session_complete(session_id, self.clock())
        logger.info("Completed session %s", session_id)
        return review_session

    def get_trials_for_session(self, session_id: int) -> list[Trial]:
        return self.store.get_trials_for_session(session_id)

    # ---- Memory state accessors ----

    def get_memory_state(self, game_type: GameType, card_id: str) -> Optional[MemoryState]:
        return self.store.load_memory_state(game_type, card_id)

    def reset_memory_state(self, game_type: GameType, card_id: str) -> MemoryState:
        """
        Forget a card's progress; its trial history is kept.

        Raises:
            KeyError: if the card was never unlocked
        """
        identity = parse_card_id(game_type, card_id)
        state = self.store.reset_memory_state(identity.game_type, identity.card_id, self.clock())
        logger.info("Reset memory state for %s card %s", identity.game_type.value, identity.card_id)
        return state

    def unlock_card(self, game_type: GameType, card_id: str) -> bool:
        """
        Unlock a card. Returns True if this created its memory state.
        """
        created = self.store.unlock_card(game_type, card_id, self.clock())
        logger.info("Unlocked %s card %s", GameType(game_type).value, card_id)
        return created

    def lock_card(self, game_type: GameType, card_id: str) -> None:
        """Lock a card; its memory state is preserved for a later unlock."""
        identity = parse_card_id(game_type, card_id)
        self.store.set_card_unlocked(identity.game_type, identity.card_id, False)
        logger.info("Locked %s card %s", identity.game_type.value, identity.card_id)

    def initialize_deck(self, game_type: GameType, card_ids: Iterable[str]) -> int:
        """
        Unlock the starting deck, creating any missing memory states.

        Safe to call on every launch.

        Returns:
            Number of memory states created
        """
        game_type = GameType(game_type)
        now = self.clock()
        created = sum(1 for card_id in card_ids if self.store.unlock_card(game_type, card_id, now))
        if created:
            logger.info("Created %d missing memory states for %s cards", created, game_type.value)
        return created

    # ---- Counts ----

    def get_due_count(self, game_type: GameType) -> int:
        count = self.store.count_due(game_type, self.clock())
        logger.debug("%s due count: %d", GameType(game_type).value, count)
        return count

    def get_unlocked_count(self, game_type: GameType) -> int:
        return self.store.count_unlocked(game_type)
