"""CSV export of every loaded day.

One header row, then one row per task in depth-first pre-order. Children
follow ``sort_order``, the same order the UI shows. Every task field is quoted;
values that a spreadsheet would read as a formula get a leading apostrophe.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from datetime import datetime

from todoeveryday.core.arena import TaskArena
from todoeveryday.data.models import Day, Task

HEADER = [
    "Date", "Level", "Title", "Description", "Status",
    "Created", "Completed", "Deadline", "Overdue",
]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
EXPORT_FILENAME_PREFIX = "TodoEveryday_Export"

_FORMULA_STARTERS = ("=", "+", "-", "@", "\t", "\r")


def escape_field(value: str) -> str:
    """Neutralise spreadsheet formulas.

    Quote doubling is left to the csv writer; it never changes the first
    character of a value that starts with a formula trigger.
    """
    if value.startswith(_FORMULA_STARTERS):
        return "'" + value
    return value


def _timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value is not None else ""


def _row(day: Day, task: Task, level: int, now: datetime) -> list[str]:
    return [
        day.date_string,
        str(level),
        escape_field("  " * level + task.title),
        escape_field(task.description),
        "Completed" if task.is_completed else "Pending",
        _timestamp(task.created_at),
        _timestamp(task.completed_at),
        _timestamp(task.deadline),
        "Yes" if task.is_overdue(now) else "No",
    ]


def export_csv(days: Sequence[Day], arena: TaskArena, now: datetime) -> str:
    """Serialise every day's task forest, days in the given order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(HEADER) + "\n")
    for day in days:
        roots = sorted(arena.top_level(day.id), key=lambda t: t.sort_order)
        for root in roots:
            for task, level in arena.walk(root):
                writer.writerow(_row(day, task, level, now))
    return buffer.getvalue()


def export_filename(now: datetime) -> str:
    return f"{EXPORT_FILENAME_PREFIX}_{int(now.timestamp())}.csv"
