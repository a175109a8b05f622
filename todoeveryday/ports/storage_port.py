"""Storage port — abstract interface for persisting days and tasks.

The engine depends on this protocol, never on a specific database.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from todoeveryday.data.models import Day, Task


class StorageError(Exception):
    """Raised when the storage substrate rejects a read or a save."""


class StoragePort(Protocol):
    """Abstract persistence interface used by the engine."""

    def load_days(self) -> list[Day]: ...

    def load_tasks(self) -> list[Task]: ...

    def purge_ephemeral_days(self) -> int: ...

    def add_day(self, day: Day, tasks: Iterable[Task] = ()) -> None: ...

    def update_day(self, day: Day) -> None: ...

    def save_tasks(self, tasks: Iterable[Task]) -> None: ...

    def delete_tasks(self, task_ids: Iterable[str]) -> None: ...

    def delete_day(self, day_id: str) -> None: ...
