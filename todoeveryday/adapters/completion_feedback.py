"""Completion feedback adapters — implement CompletionFeedbackPort."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from todoeveryday.data.models import Task

logger = logging.getLogger(__name__)


class SilentFeedback:
    """No-op feedback, used when completion sounds are disabled."""

    def task_completed(self, task: Task) -> None:
        logger.debug("Task completed: '%s'", task.title)


class TerminalBellFeedback:
    """Rings the terminal bell of the host running the bot."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def task_completed(self, task: Task) -> None:
        try:
            self._stream.write("\a")
            self._stream.flush()
        except OSError as exc:
            logger.warning("Failed to play completion sound: %s", exc)


def create_feedback(enabled: bool) -> SilentFeedback | TerminalBellFeedback:
    """Return the feedback adapter matching the COMPLETION_SOUND setting."""
    if enabled:
        return TerminalBellFeedback()
    return SilentFeedback()
