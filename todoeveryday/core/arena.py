"""Task arena — every loaded Task keyed by id.

Parent/child links are stored only as ``Task.parent_id``; the arena derives
children through a secondary index (parent id -> ordered child ids) and
top-level tasks through a day index (day id -> ordered top-level ids).
Index order is insertion order, which mirrors storage order.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from todoeveryday.data.models import Task


class TaskArena:
    """In-memory owner of all Task records."""

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        self._children: dict[str, list[str]] = {}
        self._top_level: dict[str, list[str]] = {}
        for task in tasks:
            self.add(task)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def add(self, task: Task) -> None:
        """Register a task. Its parent (if any) must already be present."""
        if task.parent_id is not None and task.parent_id not in self._tasks:
            raise KeyError(f"parent {task.parent_id} of task {task.id} is not loaded")
        self._tasks[task.id] = task
        if task.parent_id is None:
            self._top_level.setdefault(task.day_id, []).append(task.id)
        else:
            self._children.setdefault(task.parent_id, []).append(task.id)

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def parent(self, task: Task) -> Task | None:
        if task.parent_id is None:
            return None
        return self._tasks.get(task.parent_id)

    def children(self, task: Task) -> list[Task]:
        """Direct children in ascending sort_order."""
        kids = [self._tasks[cid] for cid in self._children.get(task.id, [])]
        return sorted(kids, key=lambda t: t.sort_order)

    def top_level(self, day_id: str) -> list[Task]:
        """Top-level tasks of a day in storage order."""
        return [self._tasks[tid] for tid in self._top_level.get(day_id, [])]

    def walk(self, task: Task) -> Iterator[tuple[Task, int]]:
        """Pre-order traversal yielding ``(task, depth)``; children by sort_order."""
        stack: list[tuple[Task, int]] = [(task, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for child in reversed(self.children(node)):
                stack.append((child, depth + 1))

    def subtree(self, task: Task) -> list[Task]:
        return [node for node, _ in self.walk(task)]

    def tasks_for_day(self, day_id: str) -> list[Task]:
        """The whole forest of a day, pre-order."""
        result: list[Task] = []
        for root in self.top_level(day_id):
            result.extend(self.subtree(root))
        return result

    def group(self, task_group_id: str) -> list[Task]:
        """Every loaded instance of a task group."""
        return [t for t in self._tasks.values() if t.task_group_id == task_group_id]

    def remove_subtree(self, task: Task) -> list[str]:
        """Remove a task and all its descendants; return the removed ids."""
        removed = [t.id for t in self.subtree(task)]
        if task.parent_id is None:
            siblings = self._top_level.get(task.day_id, [])
        else:
            siblings = self._children.get(task.parent_id, [])
        if task.id in siblings:
            siblings.remove(task.id)
        for tid in removed:
            self._tasks.pop(tid, None)
            self._children.pop(tid, None)
        return removed

    def remove_day(self, day_id: str) -> list[str]:
        """Remove every task of a day; return the removed ids."""
        removed: list[str] = []
        for root in self.top_level(day_id):
            removed.extend(self.remove_subtree(root))
        self._top_level.pop(day_id, None)
        return removed
