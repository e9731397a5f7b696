"""Markdown task documents, task forests, and identity-preserving reconciliation."""

from .errors import (
    ParseValidationError,
    ReconciliationConflict,
    RecurrenceError,
    TaskmdError,
)
from .models import ChangeSet, Project, Task, TaskSkeleton, TaskUpdate
from .parsers import ParsedDocument, parse_document, render_document
from .sync import next_occurrence, reconcile

__version__ = "0.1.0"

__all__ = [
    "Task",
    "TaskSkeleton",
    "Project",
    "ChangeSet",
    "TaskUpdate",
    "ParsedDocument",
    "parse_document",
    "render_document",
    "reconcile",
    "next_occurrence",
    "TaskmdError",
    "ParseValidationError",
    "ReconciliationConflict",
    "RecurrenceError",
]
