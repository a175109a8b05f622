"""Sibling ordering rules.

Two orders coexist: ``sort_order`` is the explicit drag order among siblings,
while ``sorted_for_display`` is the prioritised order shown to the user.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from todoeveryday.data.models import Task


def display_key(task: Task) -> tuple:
    """Incomplete before completed; deadlines first, earliest first; then oldest."""
    if task.is_completed:
        return (1, 0, datetime.min, task.created_at)
    if task.deadline is not None:
        return (0, 0, task.deadline, task.created_at)
    return (0, 1, datetime.min, task.created_at)


def sorted_for_display(tasks: Iterable[Task]) -> list[Task]:
    """Return ``tasks`` in display order (stable)."""
    return sorted(tasks, key=display_key)


def next_top_level_sort_order(siblings: Iterable[Task]) -> int:
    """One more than the largest sort_order, or 0 for an empty list."""
    return max((t.sort_order for t in siblings), default=-1) + 1


def shift_for_move(siblings: list[Task], old_index: int, new_index: int) -> None:
    """Reassign sort_order for moving ``siblings[old_index]`` to ``new_index``.

    ``siblings`` must be ranked by ascending sort_order. Only the gap between
    the two positions is shifted; the moved task takes ``new_index``.
    """
    moved = siblings[old_index]
    if old_index < new_index:
        for sibling in siblings[old_index + 1:new_index + 1]:
            sibling.sort_order -= 1
    else:
        for sibling in siblings[new_index:old_index]:
            sibling.sort_order += 1
    moved.sort_order = new_index
