"""Completion feedback port — fired when a task becomes completed.

Replaces a process-wide sound player: the engine calls whatever
implementation it was given, so tests can count the calls.
"""

from __future__ import annotations

from typing import Protocol

from todoeveryday.data.models import Task


class CompletionFeedbackPort(Protocol):
    """Called once per incomplete -> complete transition."""

    def task_completed(self, task: Task) -> None: ...
