"""
Structured errors for CPM calculations.

Every error carries the ids needed for diagnostics so callers can report
the problem without parsing messages.
"""

from typing import Iterable, Optional


class ScheduleError(Exception):
    """Base class for all scheduling failures."""


class CyclicDependencyError(ScheduleError):
    """Raised when the dependency network contains a cycle."""

    def __init__(self, task_ids: Iterable[str]):
        self.task_ids = tuple(sorted(task_ids))
        preview = ', '.join(self.task_ids[:10])
        if len(self.task_ids) > 10:
            preview += ', ...'
        super().__init__(
            f"Circular dependency detected involving {len(self.task_ids)} tasks: {preview}"
        )


class UnknownTaskReferenceError(ScheduleError):
    """Raised (strict mode) when a link points at a task that does not exist."""

    def __init__(self, link_id: str, missing_task_ids: Iterable[str]):
        self.link_id = link_id
        self.missing_task_ids = tuple(missing_task_ids)
        super().__init__(
            f"Link {link_id} references unknown task(s): {', '.join(self.missing_task_ids)}"
        )


class DuplicateTaskError(ScheduleError):
    """Raised when two tasks share the same id."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Duplicate task id: {task_id}")


class InvalidTaskError(ScheduleError):
    """Raised for tasks with an unusable duration or anchor."""

    def __init__(self, task_id: str, reason: str):
        self.task_id = task_id
        self.reason = reason
        super().__init__(f"Invalid task {task_id}: {reason}")


class InvalidDependencyError(ScheduleError):
    """Raised (strict mode) for malformed links, e.g. duplicate link ids."""

    def __init__(self, link_id: str, reason: str):
        self.link_id = link_id
        self.reason = reason
        super().__init__(f"Invalid link {link_id}: {reason}")


class ComputationCancelled(ScheduleError):
    """Raised when a computation is cancelled between phases."""

    def __init__(self, phase: Optional[str] = None):
        self.phase = phase
        if phase:
            message = f"CPM computation cancelled after {phase}"
        else:
            message = "CPM computation cancelled"
        super().__init__(message)
