"""Linked-instance queries.

All tasks sharing a ``task_group_id`` are one logical task seen on
different days. A task's day is its ``day_id``, so nested tasks count on
the day of their top-level ancestor.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

from todoeveryday.core.arena import TaskArena
from todoeveryday.data.models import Day, Task

BADGE_SATURATION_DAYS = 7


def is_carryover_instance(arena: TaskArena, days: Mapping[str, Day], task: Task) -> bool:
    """True if another instance of the group lives on a strictly earlier day."""
    own_day = days.get(task.day_id)
    if own_day is None:
        return False
    for other in arena.group(task.task_group_id):
        if other.id == task.id:
            continue
        other_day = days.get(other.day_id)
        if other_day is not None and other_day.date < own_day.date:
            return True
    return False


def linked_instance_count(arena: TaskArena, days: Mapping[str, Day], task: Task) -> int:
    """Instances of the task's group across loaded days, the task included."""
    return sum(1 for t in arena.group(task.task_group_id) if t.day_id in days)


def first_appearance(arena: TaskArena, days: Mapping[str, Day], task_group_id: str) -> date | None:
    dates = [days[t.day_id].date for t in arena.group(task_group_id) if t.day_id in days]
    return min(dates, default=None)


def carryover_age_days(arena: TaskArena, days: Mapping[str, Day], task: Task) -> int:
    """Days between the group's first appearance and this task's day."""
    own_day = days.get(task.day_id)
    if own_day is None:
        return 0
    first = first_appearance(arena, days, task.task_group_id)
    if first is None:
        return 0
    return (own_day.date - first).days


def badge_intensity(age_days: int) -> float:
    """Interpolation parameter in [0, 1]: 0 when fresh, 1 at seven days or more."""
    clamped = min(max(age_days, 0), BADGE_SATURATION_DAYS)
    return clamped / BADGE_SATURATION_DAYS
