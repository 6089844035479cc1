"""Card selection for review sessions."""

from earbs.selection.card_selector import (
    choose_anchor,
    default_grouping_key,
    select_session,
    select_session_from_store,
)
from earbs.selection.pool_types import CardWithMemoryState

__all__ = [
    "CardWithMemoryState",
    "choose_anchor",
    "default_grouping_key",
    "select_session",
    "select_session_from_store",
]
