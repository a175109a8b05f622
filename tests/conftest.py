"""Shared test fixtures and configuration.

Sets up fake environment variables so todoeveryday.config doesn't sys.exit(),
and provides common fixtures like a temp DB, a controllable clock and a
started engine.
"""

import os

# Patch env vars BEFORE any todoeveryday imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")

import pytest
from datetime import datetime, timedelta


class Clock:
    """Callable clock the tests can move around."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)

    def set(self, moment):
        self.current = moment


class RecordingFeedback:
    """CompletionFeedbackPort fake that remembers completed tasks."""

    def __init__(self):
        self.completed = []

    def task_completed(self, task):
        self.completed.append(task)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_tasks.db")


@pytest.fixture
def task_db(tmp_db_path):
    """Return a TaskDB instance backed by a temp file."""
    from todoeveryday.data.db import TaskDB
    return TaskDB(db_path=tmp_db_path)


@pytest.fixture
def clock():
    """A clock set to Tuesday, Jan 6, 2026 at 09:00."""
    return Clock(datetime(2026, 1, 6, 9, 0))


@pytest.fixture
def feedback():
    return RecordingFeedback()


@pytest.fixture
def engine(task_db, feedback, clock):
    """A started TaskEngine backed by a temp DB."""
    from todoeveryday.core.task_engine import TaskEngine
    eng = TaskEngine(task_db, feedback=feedback, clock=clock)
    eng.start()
    return eng
