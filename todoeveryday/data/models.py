"""
TodoEveryday — Data Models.

A Day owns one calendar date's task list. Tasks form a forest under their
Day through ``parent_id``; every carried-over copy of the same logical task
shares one ``task_group_id``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime


def new_id() -> str:
    """Return a fresh unique identifier for a Day, Task or task group."""
    return str(uuid.uuid4())


@dataclass
class Day:
    """One calendar day's task list and free-text summary.

    ``date`` carries no time-of-day component. At most one Day exists per
    date. Ephemeral days are created by debug tooling and purged on startup.
    """

    date: date
    id: str = field(default_factory=new_id)
    summary: str = ""
    is_ephemeral: bool = False

    @property
    def date_string(self) -> str:
        """Medium date, e.g. 'Jan 6, 2026'."""
        return f"{self.date:%b} {self.date.day}, {self.date.year}"

    @property
    def short_date_string(self) -> str:
        """e.g. 'Jan 6'."""
        return f"{self.date:%b} {self.date.day}"

    @property
    def weekday_string(self) -> str:
        """e.g. 'Tuesday'."""
        return f"{self.date:%A}"

    def is_today(self, today: date) -> bool:
        return self.date == today


@dataclass
class Task:
    """A single to-do entry, possibly nested under a parent task.

    ``day_id`` is the Day whose forest contains the task. Top-level tasks are
    owned by it directly; nested tasks inherit their ancestor's day.
    ``parent_id`` is a weak reference: the parent owns its children, not the
    other way round.
    """

    title: str
    day_id: str
    created_at: datetime
    id: str = field(default_factory=new_id)
    description: str = ""
    is_completed: bool = False
    completed_at: datetime | None = None
    deadline: datetime | None = None
    is_expanded: bool = True
    sort_order: int = 0
    task_group_id: str = field(default_factory=new_id)
    parent_id: str | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Has a deadline, is not completed, and the deadline has passed."""
        if self.deadline is None or self.is_completed:
            return False
        return self.deadline < (now or datetime.now())

    @property
    def deadline_string(self) -> str | None:
        """e.g. 'Jan 6, 3:30 PM', or None without a deadline."""
        if self.deadline is None:
            return None
        d = self.deadline
        hour = d.hour % 12 or 12
        return f"{d:%b} {d.day}, {hour}:{d:%M} {d:%p}"
