"""
TodoEveryday — Task Database.

Days and their task trees persist in SQLite across restarts. Every public
method is a single transaction: it either commits fully or raises
StorageError.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

from todoeveryday.data.models import Day, Task
from todoeveryday.ports.storage_port import StorageError

logger = logging.getLogger(__name__)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


class TaskDB:
    """SQLite-backed storage for days and their tasks."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from todoeveryday.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        # An in-memory database lives only as long as its connection
        self._shared: sqlite3.Connection | None = None
        if db_path == ":memory:":
            self._shared = self._open()
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        return self._open()

    def _run(self, action: str, fn):
        """Run ``fn(conn)`` in one transaction, mapping sqlite errors to StorageError."""
        try:
            conn = self._connect()
            try:
                with conn:
                    return fn(conn)
            finally:
                if conn is not self._shared:
                    conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"{action} failed: {exc}") from exc

    def _init_db(self) -> None:
        """Create the tables if they don't exist, and migrate schema."""

        def init(conn: sqlite3.Connection) -> None:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS days (
                    id            TEXT    PRIMARY KEY,
                    date          TEXT    NOT NULL UNIQUE,
                    summary       TEXT    NOT NULL DEFAULT '',
                    is_ephemeral  INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id             TEXT    PRIMARY KEY,
                    day_id         TEXT    NOT NULL
                                   REFERENCES days(id) ON DELETE CASCADE,
                    parent_id      TEXT
                                   REFERENCES tasks(id) ON DELETE CASCADE,
                    title          TEXT    NOT NULL,
                    description    TEXT    NOT NULL DEFAULT '',
                    is_completed   INTEGER NOT NULL DEFAULT 0,
                    created_at     TEXT    NOT NULL,
                    completed_at   TEXT,
                    deadline       TEXT,
                    is_expanded    INTEGER NOT NULL DEFAULT 1,
                    sort_order     INTEGER NOT NULL DEFAULT 0,
                    task_group_id  TEXT    NOT NULL
                )
            """)
            # Migrate existing DBs: add new columns if missing
            day_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(days)").fetchall()
            }
            if "is_ephemeral" not in day_cols:
                conn.execute(
                    "ALTER TABLE days ADD COLUMN is_ephemeral INTEGER NOT NULL DEFAULT 0"
                )
            task_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()
            }
            if "deadline" not in task_cols:
                conn.execute("ALTER TABLE tasks ADD COLUMN deadline TEXT")
            if "is_expanded" not in task_cols:
                conn.execute(
                    "ALTER TABLE tasks ADD COLUMN is_expanded INTEGER NOT NULL DEFAULT 1"
                )
            if "sort_order" not in task_cols:
                conn.execute(
                    "ALTER TABLE tasks ADD COLUMN sort_order INTEGER NOT NULL DEFAULT 0"
                )
            if "task_group_id" not in task_cols:
                # Legacy rows: every task is its own group
                conn.execute("ALTER TABLE tasks ADD COLUMN task_group_id TEXT")
                conn.execute("UPDATE tasks SET task_group_id = id WHERE task_group_id IS NULL")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_day ON tasks(day_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_group ON tasks(task_group_id)")

        self._run("schema init", init)
        logger.debug("Days/tasks tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_day(row: sqlite3.Row) -> Day:
        return Day(
            id=row["id"],
            date=date.fromisoformat(row["date"]),
            summary=row["summary"] or "",
            is_ephemeral=bool(row["is_ephemeral"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            day_id=row["day_id"],
            parent_id=row["parent_id"],
            title=row["title"],
            description=row["description"] or "",
            is_completed=bool(row["is_completed"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=_parse_ts(row["completed_at"]),
            deadline=_parse_ts(row["deadline"]),
            is_expanded=bool(row["is_expanded"]),
            sort_order=row["sort_order"],
            task_group_id=row["task_group_id"],
        )

    @staticmethod
    def _task_params(task: Task) -> tuple:
        return (
            task.id, task.day_id, task.parent_id, task.title, task.description,
            int(task.is_completed), task.created_at.isoformat(),
            _ts(task.completed_at), _ts(task.deadline), int(task.is_expanded),
            task.sort_order, task.task_group_id,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def load_days(self) -> list[Day]:
        """Return every day, newest date first."""
        rows = self._run(
            "load days",
            lambda conn: conn.execute("SELECT * FROM days ORDER BY date DESC").fetchall(),
        )
        return [self._row_to_day(r) for r in rows]

    def load_tasks(self) -> list[Task]:
        """Return every task in insertion order (parents before children)."""
        rows = self._run(
            "load tasks",
            lambda conn: conn.execute("SELECT * FROM tasks ORDER BY rowid").fetchall(),
        )
        return [self._row_to_task(r) for r in rows]

    def count_tasks(self) -> int:
        row = self._run(
            "count tasks",
            lambda conn: conn.execute("SELECT COUNT(*) FROM tasks").fetchone(),
        )
        return int(row[0])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def purge_ephemeral_days(self) -> int:
        """Delete every ephemeral day together with its tasks."""
        purged = self._run(
            "purge ephemeral days",
            lambda conn: conn.execute("DELETE FROM days WHERE is_ephemeral = 1").rowcount,
        )
        if purged:
            logger.info("Purged %d ephemeral day(s)", purged)
        return purged

    def add_day(self, day: Day, tasks: Iterable[Task] = ()) -> None:
        """Insert a new day and its initial tasks (parents must precede children)."""
        task_rows = [self._task_params(t) for t in tasks]

        def insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT INTO days (id, date, summary, is_ephemeral) VALUES (?, ?, ?, ?)",
                (day.id, day.date.isoformat(), day.summary, int(day.is_ephemeral)),
            )
            conn.executemany(_UPSERT_TASK, task_rows)

        self._run("add day", insert)
        logger.info("Day added: %s with %d task(s)", day.date.isoformat(), len(task_rows))

    def update_day(self, day: Day) -> None:
        self._run(
            "update day",
            lambda conn: conn.execute(
                "UPDATE days SET summary = ?, is_ephemeral = ? WHERE id = ?",
                (day.summary, int(day.is_ephemeral), day.id),
            ),
        )

    def save_tasks(self, tasks: Iterable[Task]) -> None:
        """Insert or update tasks (parents must precede new children)."""
        rows = [self._task_params(t) for t in tasks]
        if not rows:
            return
        self._run("save tasks", lambda conn: conn.executemany(_UPSERT_TASK, rows))
        logger.debug("Saved %d task(s)", len(rows))

    def delete_tasks(self, task_ids: Iterable[str]) -> None:
        ids = [(tid,) for tid in task_ids]
        if not ids:
            return
        self._run(
            "delete tasks",
            lambda conn: conn.executemany("DELETE FROM tasks WHERE id = ?", ids),
        )
        logger.info("Deleted %d task(s)", len(ids))

    def delete_day(self, day_id: str) -> None:
        """Delete a day; its tasks cascade."""
        self._run(
            "delete day",
            lambda conn: conn.execute("DELETE FROM days WHERE id = ?", (day_id,)),
        )
        logger.info("Day %s deleted", day_id)


_UPSERT_TASK = """
    INSERT INTO tasks
        (id, day_id, parent_id, title, description, is_completed,
         created_at, completed_at, deadline, is_expanded, sort_order, task_group_id)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        day_id = excluded.day_id,
        parent_id = excluded.parent_id,
        title = excluded.title,
        description = excluded.description,
        is_completed = excluded.is_completed,
        completed_at = excluded.completed_at,
        deadline = excluded.deadline,
        is_expanded = excluded.is_expanded,
        sort_order = excluded.sort_order,
        task_group_id = excluded.task_group_id
"""
