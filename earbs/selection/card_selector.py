"""
Card Selector - Grouped Session Creation

Builds a review session from the unlocked cards of one game:
1. Anchor group: the (group_key, octave, mode) group with the most due cards
2. Pad with the anchor group's not-yet-due cards
3. Pad with due cards from other groups
4. Pad with not-yet-due cards from any group

Session Logic:
- Anchor ties go to the most overdue group, then the smallest group key
- Every due_date ordering breaks ties by card id
- Content is deterministic for a given deck and time; only the
  presentation order is shuffled
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Hashable, Optional, Sequence

from earbs.cards import GameType
from earbs.selection.pool_types import CardWithMemoryState
from earbs.selection.pool_utils import group_by, order_by_due, repeat_to_fill, sortable_key

logger = logging.getLogger(__name__)

GroupingFn = Callable[[CardWithMemoryState], Hashable]


def default_grouping_key(card: CardWithMemoryState) -> Hashable:
    return card.grouping_key


def choose_anchor(groups: dict[Hashable, list[CardWithMemoryState]]) -> Hashable:
    """
    Pick the anchor group.

    Most cards first; ties go to the group holding the earliest due_date,
    then to the lexicographically smallest key (None first).
    """
    return min(
        groups,
        key=lambda k: (
            -len(groups[k]),
            min(c.due_date for c in groups[k]),
            sortable_key(k),
        )
    )


def _pick_cards(
    due: list[CardWithMemoryState],
    not_due: list[CardWithMemoryState],
    session_size: int,
    grouping_key: GroupingFn
) -> list[CardWithMemoryState]:
    """Walk the padding tiers until session_size cards are chosen."""
    if due:
        groups = group_by(due, grouping_key)
        anchor = choose_anchor(groups)
        chosen = list(groups[anchor])
        chosen += [c for c in not_due if grouping_key(c) == anchor]
        chosen += [c for c in due if grouping_key(c) != anchor]
        chosen += [c for c in not_due if grouping_key(c) != anchor]
    else:
        groups = group_by(not_due, grouping_key)
        anchor = choose_anchor(groups)
        chosen = list(groups[anchor])
        chosen += [c for c in not_due if grouping_key(c) != anchor]

    logger.debug(
        "Anchor group %s (%d cards), %d candidates after padding",
        anchor, len(groups[anchor]), len(chosen)
    )
    return chosen[:session_size]


def _finalize(
    chosen: list[CardWithMemoryState],
    session_size: int,
    rng: Optional[random.Random],
    fill: bool
) -> list[str]:
    card_ids = [c.card_id for c in chosen]
    if fill:
        card_ids = repeat_to_fill(card_ids, session_size)
    (rng or random).shuffle(card_ids)
    return card_ids


def select_session(
    universe: Sequence[CardWithMemoryState],
    session_size: int,
    now: datetime,
    grouping_key: GroupingFn = default_grouping_key,
    rng: Optional[random.Random] = None,
    repeat_to_fill: bool = False
) -> list[str]:
    """
    Choose the cards for one review session.

    Pure: reads only its arguments.

    Args:
        universe: Cards of one game with their memory state; locked cards
            are ignored
        session_size: Maximum number of cards (<= 0 yields an empty session)
        now: Reference time for due checks
        grouping_key: Key-extraction function used to group cards
        rng: Random source for presentation order (module random if None)
        repeat_to_fill: Cycle the selection up to session_size when the
            deck is smaller than the session

    Returns:
        Card ids in presentation order
    """
    if session_size <= 0:
        return []
    cards = [c for c in universe if c.unlocked]
    if not cards:
        return []

    due = order_by_due(c for c in cards if c.is_due(now))
    not_due = order_by_due(c for c in cards if not c.is_due(now))

    chosen = _pick_cards(due, not_due, session_size, grouping_key)
    logger.info(
        "Selected %d cards (%d due of %d unlocked, size %d)",
        len(chosen), len(due), len(cards), session_size
    )
    return _finalize(chosen, session_size, rng, repeat_to_fill)


def select_session_from_store(
    store,
    game_type: GameType,
    session_size: int,
    now: datetime,
    rng: Optional[random.Random] = None,
    repeat_to_fill: bool = False
) -> list[str]:
    """
    Same selection as select_session, querying the store tier by tier.

    Only the tiers needed to fill the session are fetched.
    """
    if session_size <= 0:
        return []

    due = order_by_due(store.get_due_cards(game_type, now))
    if not due:
        not_due = store.get_not_due_cards(game_type, now)
        return select_session(not_due, session_size, now, rng=rng, repeat_to_fill=repeat_to_fill)

    groups = group_by(due, default_grouping_key)
    anchor = choose_anchor(groups)
    chosen = list(groups[anchor])

    if len(chosen) < session_size:
        chosen += store.get_not_due_cards_for_group(
            game_type, anchor, now, limit=session_size - len(chosen)
        )
    if len(chosen) < session_size:
        chosen += [c for c in due if default_grouping_key(c) != anchor]
    if len(chosen) < session_size:
        taken = {c.card_id for c in chosen}
        # Over-fetch by the number already taken, some of which may reappear
        extra = store.get_not_due_cards(game_type, now, limit=session_size - len(chosen) + len(taken))
        chosen += [c for c in extra if c.card_id not in taken]

    chosen = chosen[:session_size]
    logger.info(
        "Selected %d %s cards from store (anchor %s, %d due)",
        len(chosen), GameType(game_type).value, anchor, len(due)
    )
    return _finalize(chosen, session_size, rng, repeat_to_fill)
