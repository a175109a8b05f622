"""
TodoEveryday — Daily Rollover Check.

The engine never notices on its own that the calendar date changed while
the process keeps running. This check is the external hook for that: the
bot's job queue runs it once a day, shortly after midnight.

Provider-agnostic: depends on the NotificationPort protocol only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from todoeveryday.core.task_engine import TaskEngine
    from todoeveryday.data.models import Day
    from todoeveryday.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


async def run_rollover_check(
    engine: TaskEngine,
    notifier: NotificationPort,
    user_ids: Iterable[int],
) -> Day | None:
    """Ensure today's day exists and announce it when it was just created.

    Returns the newly created day, or None when nothing changed (the day
    already existed, or a weekend day was skipped).
    """
    existed = engine.find_day(engine.today()) is not None
    today = engine.ensure_todays_day()
    engine.repartition()
    if today is None or existed:
        logger.info("Rollover check: nothing to do")
        return None

    message = _format_rollover_message(engine, today)
    for user_id in user_ids:
        try:
            await notifier.send_message(user_id, message)
            logger.info("Rollover message sent to user %d", user_id)
        except Exception as exc:
            logger.error("Failed to send rollover message to %d: %s", user_id, exc)
    return today


def _format_rollover_message(engine: TaskEngine, day: Day) -> str:
    """Format the 'new day' notification."""
    roots = engine.top_level_tasks(day)
    lines = [f"📅 *{day.weekday_string}, {day.date_string}*"]

    if not roots:
        lines.append("A fresh, empty list. Add something with /add.")
        return "\n".join(lines)

    lines.append(f"{len(roots)} unfinished task(s) carried over:")
    for task in roots:
        age = engine.carryover_age_days(task)
        suffix = f" ({age}d)" if age > 1 else ""
        lines.append(f"• {task.title}{suffix}")
    return "\n".join(lines)
