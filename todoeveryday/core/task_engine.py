"""
TodoEveryday — Task Engine.

Owns the single in-memory snapshot of all days and tasks. Every mutation
goes through here: change memory, persist, recompute the cached
statistics. UI adapters call the engine and re-read ``statistics``,
``todays_day``, ``recent_days`` and ``older_days`` afterwards.

Persistence is best effort: a failed save is logged and kept in
``last_error``, and the in-memory change stays.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from todoeveryday.core import carryover, linking
from todoeveryday.core.arena import TaskArena
from todoeveryday.core.csv_export import export_csv
from todoeveryday.core.ordering import (
    next_top_level_sort_order,
    shift_for_move,
    sorted_for_display,
)
from todoeveryday.core.statistics import Statistics, compute_statistics
from todoeveryday.data.models import Day, Task
from todoeveryday.ports.storage_port import StorageError

if TYPE_CHECKING:
    from todoeveryday.ports.feedback_port import CompletionFeedbackPort
    from todoeveryday.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


@dataclass
class OutlineEntry:
    """One visible row of a day: ``ref`` is the dotted position, e.g. '2.1'."""

    ref: str
    depth: int
    task: Task


class TaskEngine:
    """Carryover, task CRUD, linked-instance aggregation and statistics."""

    def __init__(
        self,
        store: StoragePort,
        feedback: CompletionFeedbackPort | None = None,
        clock: Callable[[], datetime] = datetime.now,
        create_weekend_days: bool = True,
        auto_carryover: bool = True,
    ) -> None:
        self._store = store
        self._feedback = feedback
        self._clock = clock
        self.create_weekend_days = create_weekend_days
        self.auto_carryover = auto_carryover

        self.arena = TaskArena()
        self.days: list[Day] = []
        self.todays_day: Day | None = None
        self.recent_days: list[Day] = []
        self.older_days: list[Day] = []
        self.statistics = Statistics()
        self.last_error: StorageError | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return carryover.normalize_date(self.now())

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Purge ephemeral days, load, compute statistics, ensure today, partition.

        Runs once per engine; later calls are ignored.
        """
        if self._started:
            return
        self._started = True

        try:
            self._store.purge_ephemeral_days()
        except StorageError as exc:
            self._report(exc, "purge ephemeral days")

        self.load()
        self.ensure_todays_day()
        self.repartition()

    def load(self) -> None:
        """Replace the in-memory snapshot with everything in storage."""
        try:
            days = self._store.load_days()
            tasks = self._store.load_tasks()
        except StorageError as exc:
            self._report(exc, "load")
            days, tasks = [], []

        self.days = sorted(days, key=lambda d: d.date, reverse=True)
        known = {d.id for d in self.days}
        self.arena = _build_arena(t for t in tasks if t.day_id in known)
        self._recalculate_statistics()
        logger.info("Loaded %d day(s) and %d task(s)", len(self.days), len(self.arena))

    # ------------------------------------------------------------------
    # Day bootstrap & carryover
    # ------------------------------------------------------------------

    def ensure_todays_day(
        self,
        create_weekend_days: bool | None = None,
        auto_carryover: bool | None = None,
    ) -> Day | None:
        """Select today's Day, creating it from yesterday's unfinished work.

        Returns the active day, or None when a weekend day was skipped.
        """
        if create_weekend_days is None:
            create_weekend_days = self.create_weekend_days
        if auto_carryover is None:
            auto_carryover = self.auto_carryover

        today = self.today()
        existing = self.find_day(today)
        if existing is not None:
            self.todays_day = existing
            return existing

        if carryover.is_weekend(today) and not create_weekend_days:
            logger.info("Skipping weekend day creation (today is %s)", f"{today:%A}")
            if self.todays_day is not None and self.todays_day.date != today:
                self.todays_day = None
                self._recalculate_statistics()
            return None

        day = Day(date=today)
        carried: list[Task] = []
        if auto_carryover:
            yesterday = self.find_day(carryover.previous_date(today))
            if yesterday is not None:
                carried = carryover.carry_over(self.arena, yesterday, day, self.now())

        self._insert_day(day, carried)
        self.todays_day = day
        logger.info("Created day %s with %d carried-over task(s)", today.isoformat(), len(carried))
        self._persist(lambda: self._store.add_day(day, carried), "create today's day")
        return day

    def create_next_debug_day(
        self,
        auto_carryover: bool | None = None,
        create_weekend_days: bool | None = None,
    ) -> Day | None:
        """Create an ephemeral day after the newest day and make it active."""
        if not self.days:
            logger.info("DEBUG: No days exist to create a next day from")
            return None
        if auto_carryover is None:
            auto_carryover = self.auto_carryover

        newest = max(self.days, key=lambda d: d.date)
        source = newest if auto_carryover else None
        return self._create_debug_day(
            newest.date + timedelta(days=1),
            source=source,
            create_weekend_days=create_weekend_days,
            set_as_today=True,
        )

    def create_previous_debug_day(self, create_weekend_days: bool | None = None) -> Day | None:
        """Create an ephemeral, empty day before the oldest day."""
        if not self.days:
            logger.info("DEBUG: No days exist to create a previous day from")
            return None
        oldest = min(self.days, key=lambda d: d.date)
        return self._create_debug_day(
            oldest.date - timedelta(days=1),
            create_weekend_days=create_weekend_days,
        )

    def _create_debug_day(
        self,
        target: date,
        source: Day | None = None,
        create_weekend_days: bool | None = None,
        set_as_today: bool = False,
    ) -> Day | None:
        if create_weekend_days is None:
            create_weekend_days = self.create_weekend_days

        if carryover.is_weekend(target) and not create_weekend_days:
            logger.info("DEBUG: Skipping weekend (%s)", f"{target:%A}")
            return None
        if self.find_day(target) is not None:
            logger.info("DEBUG: Day already exists for %s", target.isoformat())
            return None

        day = Day(date=target, is_ephemeral=True)
        carried: list[Task] = []
        if source is not None:
            carried = carryover.carry_over(self.arena, source, day, self.now())

        self._insert_day(day, carried)
        if set_as_today:
            self.todays_day = day
            logger.info("DEBUG: Set %s as active 'today' day", day.date_string)

        logger.info("DEBUG: Created day for %s with %d task(s)", day.date_string, len(carried))
        self._persist(lambda: self._store.add_day(day, carried), "create debug day")
        return day

    def _insert_day(self, day: Day, tasks: list[Task]) -> None:
        for task in tasks:
            self.arena.add(task)
        self.days.append(day)
        self.days.sort(key=lambda d: d.date, reverse=True)
        self.repartition()

    def repartition(self) -> None:
        """Split days into recent (under a week old) and older."""
        self.recent_days, self.older_days = carryover.partition_recent(self.days, self.today())

    # ------------------------------------------------------------------
    # Task CRUD & ordering
    # ------------------------------------------------------------------

    def add_task(self, day: Day, title: str, deadline: datetime | None = None) -> Task | None:
        """Append a top-level task to ``day``; empty titles are ignored."""
        title = title.strip()
        if not title:
            logger.info("Ignoring top-level task with empty title")
            return None

        task = Task(
            title=title,
            day_id=day.id,
            created_at=self.now(),
            deadline=deadline,
            sort_order=next_top_level_sort_order(self.arena.top_level(day.id)),
        )
        self.arena.add(task)
        self._persist(lambda: self._store.save_tasks([task]), "add task")
        return task

    def add_subtask(self, parent: Task, title: str) -> Task | None:
        """Insert a sub-task first among ``parent``'s children."""
        title = title.strip()
        if not title:
            logger.info("Ignoring sub-task with empty title")
            return None

        siblings = self.arena.children(parent)
        for sibling in siblings:
            sibling.sort_order += 1

        task = Task(
            title=title,
            day_id=parent.day_id,
            parent_id=parent.id,
            created_at=self.now(),
            sort_order=0,
        )
        self.arena.add(task)
        self._persist(lambda: self._store.save_tasks([*siblings, task]), "add sub-task")
        return task

    def move_subtask(self, task: Task, from_index: int, to_index: int) -> bool:
        """Move a sub-task among its siblings ranked by sort_order.

        Indices must come from the current ranking. Returns False when the
        task is top-level or the indices do not match that ranking.
        """
        parent = self.arena.parent(task)
        if parent is None:
            return False

        siblings = self.arena.children(parent)
        if not (0 <= from_index < len(siblings) and 0 <= to_index < len(siblings)):
            logger.warning("Move of task %s out of range: %d -> %d", task.id, from_index, to_index)
            return False
        if siblings[from_index].id != task.id:
            logger.warning("Move of task %s does not match index %d", task.id, from_index)
            return False

        shift_for_move(siblings, from_index, to_index)
        return self._persist(lambda: self._store.save_tasks(siblings), "move sub-task")

    def toggle_expansion(self, task: Task) -> bool:
        task.is_expanded = not task.is_expanded
        return self._persist(lambda: self._store.save_tasks([task]), "toggle expansion")

    def update_title(self, task: Task, title: str) -> bool:
        task.title = title
        return self._persist(lambda: self._store.save_tasks([task]), "update title")

    def update_description(self, task: Task, description: str) -> bool:
        task.description = description
        return self._persist(lambda: self._store.save_tasks([task]), "update description")

    def update_deadline(self, task: Task, deadline: datetime | None) -> bool:
        task.deadline = deadline
        return self._persist(lambda: self._store.save_tasks([task]), "update deadline")

    def update_summary(self, day: Day, summary: str) -> bool:
        day.summary = summary
        return self._persist(lambda: self._store.update_day(day), "update summary")

    def delete_task(self, task: Task) -> bool:
        """Delete a task and its descendants; other days' instances stay."""
        removed = self.arena.remove_subtree(task)
        return self._persist(lambda: self._store.delete_tasks(removed), "delete task")

    def delete_day(self, day: Day) -> bool:
        """Delete a day with all its tasks; re-ensure today if it was active."""
        self.arena.remove_day(day.id)
        self.days = [d for d in self.days if d.id != day.id]
        saved = self._persist(lambda: self._store.delete_day(day.id), "delete day")

        if self.todays_day is not None and self.todays_day.id == day.id:
            self.todays_day = None
            self.ensure_todays_day()

        self.repartition()
        self._recalculate_statistics()
        return saved

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def toggle_completion(self, task: Task, mark_all_linked: bool = True) -> bool:
        """Flip completion of ``task`` (and its linked instances). Returns the new state."""
        was_completed = task.is_completed
        new_state = not was_completed
        completed_at = self.now() if new_state else None

        targets = [task]
        if mark_all_linked:
            day_map = self.day_map()
            targets = [t for t in self.arena.group(task.task_group_id) if t.day_id in day_map]
            if all(t.id != task.id for t in targets):
                targets.append(task)

        for target in targets:
            target.is_completed = new_state
            target.completed_at = completed_at

        if new_state and self._feedback is not None:
            self._feedback.task_completed(task)

        self._persist(lambda: self._store.save_tasks(targets), "toggle completion")
        return new_state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def day_map(self) -> dict[str, Day]:
        return {d.id: d for d in self.days}

    def find_day(self, target: date) -> Day | None:
        return carryover.find_day(self.days, target)

    def find_task(self, task_id: str) -> Task | None:
        return self.arena.get(task_id)

    def day_of(self, task: Task) -> Day | None:
        return self.day_map().get(task.day_id)

    def top_level_tasks(self, day: Day) -> list[Task]:
        """Top-level tasks of ``day`` in display order."""
        return sorted_for_display(self.arena.top_level(day.id))

    def children(self, task: Task) -> list[Task]:
        """Direct children by sort_order."""
        return self.arena.children(task)

    def tasks_for_day(self, day: Day) -> list[Task]:
        return self.arena.tasks_for_day(day.id)

    def outline(self, day: Day, include_collapsed: bool = True) -> list[OutlineEntry]:
        """Rows of ``day`` as shown: roots in display order, children by sort_order."""
        entries: list[OutlineEntry] = []

        def visit(task: Task, ref: str, depth: int) -> None:
            entries.append(OutlineEntry(ref=ref, depth=depth, task=task))
            if not task.is_expanded and not include_collapsed:
                return
            for i, child in enumerate(self.arena.children(task), start=1):
                visit(child, f"{ref}.{i}", depth + 1)

        for i, root in enumerate(self.top_level_tasks(day), start=1):
            visit(root, str(i), 0)
        return entries

    def resolve_ref(self, day: Day, ref: str) -> Task | None:
        """Find the task at outline position ``ref`` (e.g. '2.1') in ``day``."""
        for entry in self.outline(day):
            if entry.ref == ref:
                return entry.task
        return None

    def is_carryover_instance(self, task: Task) -> bool:
        return linking.is_carryover_instance(self.arena, self.day_map(), task)

    def linked_instance_count(self, task: Task) -> int:
        return linking.linked_instance_count(self.arena, self.day_map(), task)

    def carryover_age_days(self, task: Task) -> int:
        return linking.carryover_age_days(self.arena, self.day_map(), task)

    def carryover_badge_intensity(self, task: Task) -> float:
        return linking.badge_intensity(self.carryover_age_days(task))

    def export_csv(self) -> str:
        return export_csv(self.days, self.arena, self.now())

    # ------------------------------------------------------------------
    # Persistence & caches
    # ------------------------------------------------------------------

    def _persist(self, save: Callable[[], None], action: str) -> bool:
        """Run a storage call, then recompute statistics whatever the outcome."""
        self.last_error = None
        try:
            save()
            return True
        except StorageError as exc:
            self._report(exc, action)
            return False
        finally:
            self._recalculate_statistics()

    def _report(self, exc: StorageError, action: str) -> None:
        self.last_error = exc
        logger.error("Failed to %s: %s", action, exc)

    def _recalculate_statistics(self) -> None:
        self.statistics = compute_statistics(self.days, self.arena, self.todays_day, self.now())


def _build_arena(tasks) -> TaskArena:
    """Index loaded tasks, parents first; tasks whose parent is missing are dropped."""
    arena = TaskArena()
    pending = list(tasks)
    while pending:
        deferred = [t for t in pending if t.parent_id is not None and t.parent_id not in arena]
        deferred_ids = {t.id for t in deferred}
        ready = [t for t in pending if t.id not in deferred_ids]
        if not ready:
            for orphan in deferred:
                logger.warning("Dropping task %s: parent %s not found", orphan.id, orphan.parent_id)
            break
        for task in ready:
            arena.add(task)
        pending = deferred
    return arena
