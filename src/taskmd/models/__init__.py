from .task import (
    FREQUENCIES,
    MUTABLE_FIELDS,
    STATUSES,
    Project,
    RepeatFrequency,
    Task,
    TaskSkeleton,
    TaskStatus,
)
from .changes import ChangeSet, TaskUpdate

__all__ = [
    "Task",
    "TaskSkeleton",
    "Project",
    "TaskStatus",
    "RepeatFrequency",
    "STATUSES",
    "FREQUENCIES",
    "MUTABLE_FIELDS",
    "ChangeSet",
    "TaskUpdate",
]
