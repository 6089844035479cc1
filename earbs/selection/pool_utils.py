"""
Pool utilities for the card selector.

These helpers provide shared, minimal primitives for building and reasoning
about session pools without enforcing a single selection policy.
"""

from __future__ import annotations

from itertools import cycle, islice
from typing import Any, Callable, Hashable, Iterable, TypeVar

from earbs.selection.pool_types import CardWithMemoryState


T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def group_by(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    """
    Group items by key, preserving input order within each group.
    """
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def order_by_due(cards: Iterable[CardWithMemoryState]) -> list[CardWithMemoryState]:
    """Most overdue first; ties broken by card id."""
    return sorted(cards, key=lambda c: (c.due_date, c.card_id))


def sortable_key(group_key: Any) -> tuple:
    """
    Total order over grouping keys with None sorting before any value.
    """
    if isinstance(group_key, tuple):
        return tuple(sortable_key(part) for part in group_key)
    if group_key is None:
        return (0, "")
    return (1, group_key)


def repeat_to_fill(items: list[T], target_size: int) -> list[T]:
    """
    Cycle items until target_size is reached: [A, B], 5 -> A, B, A, B, A.
    """
    if not items or len(items) >= target_size:
        return list(items)
    return list(islice(cycle(items), target_size))
