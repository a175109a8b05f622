"""Carryover rules — pure business logic.

Decides which unfinished work moves into a new day and clones it while
keeping each clone in its source's task group.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from todoeveryday.core.arena import TaskArena
from todoeveryday.data.models import Day, Task

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 7


def normalize_date(moment: datetime | date) -> date:
    """Strip the time of day."""
    if isinstance(moment, datetime):
        return moment.date()
    return moment


def is_weekend(day: date) -> bool:
    """Saturday or Sunday."""
    return day.weekday() >= 5


def find_day(days: Sequence[Day], target: date) -> Day | None:
    for day in days:
        if day.date == target:
            return day
    return None


def previous_date(day: date) -> date:
    return day - timedelta(days=1)


def partition_recent(days: Sequence[Day], today: date) -> tuple[list[Day], list[Day]]:
    """Split days into (recent, older); recent means fewer than 7 days before today.

    Input order is preserved in both lists.
    """
    recent: list[Day] = []
    older: list[Day] = []
    for day in days:
        if (today - day.date).days < RECENT_WINDOW_DAYS:
            recent.append(day)
        else:
            older.append(day)
    return recent, older


def clone_task_tree(
    arena: TaskArena,
    source: Task,
    day_id: str,
    now: datetime,
    parent_id: str | None = None,
) -> list[Task]:
    """Clone ``source`` and its incomplete descendants into ``day_id``.

    Completed children are dropped together with everything below them.
    Clones keep title, description, deadline, sort_order and task_group_id,
    start incomplete and get ``created_at = now``. Returns the new tasks in
    pre-order (each parent before its children); nothing is added to the
    arena.
    """
    clone = Task(
        title=source.title,
        description=source.description,
        deadline=source.deadline,
        sort_order=source.sort_order,
        task_group_id=source.task_group_id,
        day_id=day_id,
        parent_id=parent_id,
        created_at=now,
    )
    cloned = [clone]
    for child in arena.children(source):
        if child.is_completed:
            continue
        cloned.extend(clone_task_tree(arena, child, day_id, now, parent_id=clone.id))
    return cloned


def carry_over(arena: TaskArena, source_day: Day, target_day: Day, now: datetime) -> list[Task]:
    """Clone every incomplete top-level task of ``source_day`` into ``target_day``.

    Returns the new tasks in pre-order, top-level tasks by sort_order.
    """
    carried: list[Task] = []
    for task in sorted(arena.top_level(source_day.id), key=lambda t: t.sort_order):
        if task.is_completed:
            continue
        carried.extend(clone_task_tree(arena, task, target_day.id, now))
    logger.debug(
        "Carryover %s -> %s: %d task(s)",
        source_day.date, target_day.date, len(carried),
    )
    return carried
