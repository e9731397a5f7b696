"""
Error taxonomy for taskmd.

Parse errors carry the 1-based line number of the offending task line so the
caller can point the user at it. Nothing here is retried internally.
"""

from typing import Optional


class TaskmdError(Exception):
    """Base class for every error raised by taskmd."""


class ParseValidationError(TaskmdError, ValueError):
    """A task line is rejected: duplicate tag, malformed date or disallowed markup."""

    def __init__(self, reason: str, line_number: Optional[int] = None) -> None:
        self.reason = reason
        self.line_number = line_number
        if line_number is not None:
            super().__init__(f"line {line_number}: {reason}")
        else:
            super().__init__(reason)

    def with_line(self, line_number: int) -> "ParseValidationError":
        """Return a copy of this error bound to a source line."""
        return ParseValidationError(self.reason, line_number)


class ReconciliationConflict(TaskmdError):
    """
    Two task trees cannot be reconciled.

    Positional matching never produces one; reserved for content-based
    matching strategies.
    """


class RecurrenceError(TaskmdError):
    """Reserved: a missing due date on a repeating task is not an error."""


class InputValidationError(TaskmdError, ValueError):
    """A project id or title was rejected before reaching a store."""


class ProjectNotFound(TaskmdError, KeyError):
    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")

    def __str__(self) -> str:
        return self.args[0]


class TaskNotFound(TaskmdError, KeyError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found")

    def __str__(self) -> str:
        return self.args[0]


class ProjectLockTimeout(TaskmdError):
    """The per-project lock could not be acquired in time; nothing was written."""

    def __init__(self, project_id: str, timeout: float) -> None:
        self.project_id = project_id
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout:g}s waiting for lock on project '{project_id}'"
        )
