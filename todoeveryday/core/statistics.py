"""Completion statistics — pure business logic.

Counts are deduplicated by task group: a group is completed as soon as any
of its instances is. Daily rates are per-day snapshots and are not
deduplicated.

Always a full pass over the loaded data; at personal scale this is cheap.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from todoeveryday.core.arena import TaskArena
from todoeveryday.data.models import Day, Task


@dataclass(frozen=True)
class DailyRate:
    date: date
    rate: float


@dataclass(frozen=True)
class Statistics:
    """Cached aggregate view of all loaded days."""

    total_task_groups: int = 0
    total_completed_task_groups: int = 0
    total_pending_task_groups: int = 0
    average_completion_minutes: float = 0.0
    daily_completion_rates: list[DailyRate] = field(default_factory=list)
    average_daily_completion_rate: float = 0.0
    today_completion_rate: float = 0.0
    today_completed: int = 0
    today_pending: int = 0
    today_overdue: int = 0


def daily_completion_rate(tasks: Sequence[Task]) -> float:
    """Percentage of completed tasks in one day, 0 for an empty day."""
    if not tasks:
        return 0.0
    completed = sum(1 for t in tasks if t.is_completed)
    return completed / len(tasks) * 100


def _group_durations(groups: dict[str, list[Task]]) -> list[float]:
    """Minutes from a group's first creation to its latest completion."""
    durations: list[float] = []
    for instances in groups.values():
        completed_at = [t.completed_at for t in instances if t.is_completed and t.completed_at]
        if not completed_at:
            continue
        started = min(t.created_at for t in instances)
        durations.append((max(completed_at) - started).total_seconds() / 60)
    return durations


def compute_statistics(
    days: Sequence[Day],
    arena: TaskArena,
    today: Day | None,
    now: datetime,
) -> Statistics:
    """Recompute every statistic from the loaded days."""
    groups: dict[str, list[Task]] = {}
    rates: list[DailyRate] = []
    for day in days:
        tasks = arena.tasks_for_day(day.id)
        rates.append(DailyRate(date=day.date, rate=daily_completion_rate(tasks)))
        for task in tasks:
            groups.setdefault(task.task_group_id, []).append(task)

    completed_groups = sum(
        1 for instances in groups.values() if any(t.is_completed for t in instances)
    )
    durations = _group_durations(groups)

    today_tasks = arena.tasks_for_day(today.id) if today is not None else []

    return Statistics(
        total_task_groups=len(groups),
        total_completed_task_groups=completed_groups,
        total_pending_task_groups=len(groups) - completed_groups,
        average_completion_minutes=sum(durations) / len(durations) if durations else 0.0,
        daily_completion_rates=rates,
        average_daily_completion_rate=(
            sum(r.rate for r in rates) / len(rates) if rates else 0.0
        ),
        today_completion_rate=daily_completion_rate(today_tasks),
        today_completed=sum(1 for t in today_tasks if t.is_completed),
        today_pending=sum(1 for t in today_tasks if not t.is_completed),
        today_overdue=sum(1 for t in today_tasks if t.is_overdue(now)),
    )


def format_completion_time(minutes: float) -> str:
    """Human-readable duration: '< 1 min', '42 min', '2.5 hrs', '1.3 days'."""
    if minutes < 1:
        return "< 1 min"
    if minutes < 60:
        return f"{minutes:.0f} min"
    if minutes < 1440:
        return f"{minutes / 60:.1f} hrs"
    return f"{minutes / 1440:.1f} days"


def progress_level(rate: float) -> str:
    """Bucket a completion rate: 'high' (>= 80), 'medium' (>= 50) or 'low'."""
    if rate >= 80:
        return "high"
    if rate >= 50:
        return "medium"
    return "low"
