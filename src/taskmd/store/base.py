"""
Persistence contract consumed by the document service.

Both backends keep sibling order, cascade deletes to descendants and never
reuse a task id within a project.
"""

import threading
from contextlib import contextmanager
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol

from ..errors import ProjectLockTimeout
from ..models.changes import ChangeSet
from ..models.task import MUTABLE_FIELDS, Project, Task


class TaskStore(Protocol):
    def list_projects(self) -> List[Project]: ...

    def create_project(self, project_id: str, title: str) -> Project: ...

    def load_project(self, project_id: str) -> Project: ...

    def load_project_tasks(self, project_id: str) -> List[Task]: ...

    def load_project_title(self, project_id: str) -> str: ...

    def update_project_title(self, project_id: str, title: str) -> None: ...

    def create_task(
        self, project_id: str, parent_id: Optional[str], fields: Dict[str, Any]
    ) -> Task: ...

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> None: ...

    def delete_task(self, task_id: str) -> None: ...

    def apply_change_set(self, project_id: str, changes: ChangeSet) -> None: ...

    def project_lock(self, project_id: str) -> ContextManager[None]: ...


def check_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Reject field names a store does not manage."""
    unknown = set(fields) - set(MUTABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")
    return fields


class ProjectLocks:
    """
    One re-entrant lock per project, acquired with a timeout.

    Holding a project's lock across read → parse → reconcile → apply makes a
    document save the only writer of that project for its duration.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, project_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[project_id] = lock
            return lock

    @contextmanager
    def hold(self, project_id: str) -> Iterator[None]:
        lock = self._lock_for(project_id)
        if not lock.acquire(timeout=self._timeout):
            raise ProjectLockTimeout(project_id, self._timeout)
        try:
            yield
        finally:
            lock.release()
