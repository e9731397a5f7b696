from .base import ProjectLocks, TaskStore
from .file_store import FileTaskStore
from .sqlite_store import SqliteTaskStore

__all__ = [
    "TaskStore",
    "ProjectLocks",
    "FileTaskStore",
    "SqliteTaskStore",
]
