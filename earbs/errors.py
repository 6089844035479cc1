"""
Exceptions raised by the scheduling core.

Persistence errors are not wrapped: SQLAlchemy exceptions reach the caller
unchanged after the transaction has been rolled back.
"""

from __future__ import annotations


class EarbsError(Exception):
    """Base class for all errors raised by the core."""


class InvalidCardIdentity(EarbsError, ValueError):
    """A card id does not parse into its constituent attributes."""

    def __init__(self, card_id: str, reason: str = ""):
        self.card_id = card_id
        self.reason = reason
        message = f"Invalid card id: {card_id!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidMemoryState(EarbsError, ValueError):
    """A memory state is out of range and must not be scheduled."""


class SessionNotFound(EarbsError, LookupError):
    """No review session exists with the given id."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Review session {session_id} does not exist")


class SessionAlreadyCompleted(EarbsError):
    """The review session was already finalized."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Review session {session_id} is already completed")
