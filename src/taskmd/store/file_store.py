"""
Markdown-file task store: one <project_id>.md per project under a data dir.

Design:
    Primary store:  Dict[str, CachedProject]   (parsed Project + file mtime)
    ID index:       Dict[str, str]             (task id → project id)

The files hold no ids. Ids are derived when a file is parsed: a file that
changed on disk is re-parsed with the cached forest as the previous tree, so
tasks that kept their position keep their id. Every write re-renders the whole
file in canonical form through a temp file + rename, so a project is never
half written. Writers edit a deep copy of the cached project; the cache
adopts it only after the rename, so a failed write leaves cache and file in
agreement. All cache access holds _lock (threading.RLock).
"""

import copy
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ContextManager, Dict, List, Optional, Tuple

from ..errors import InputValidationError, ProjectNotFound, TaskNotFound
from ..models.changes import ChangeSet
from ..models.task import Project, Task
from ..parsers.document import parse_project
from ..parsers.renderer import canonical_order, render_project
from ..sync.reconciler import apply_change_set as apply_to_forest
from ..utils.ids import id_allocator, next_serial
from ..utils.validation import validate_project_id
from .base import ProjectLocks, check_fields

log = logging.getLogger(__name__)

PROJECT_FILE_SUFFIX = ".md"


@dataclass
class CachedProject:
    project: Project
    mtime: float


class FileTaskStore:
    """
    Task store backed by markdown files.

    Usage:
        store = FileTaskStore(Path("data"))
        store.create_project("groceries", "Groceries")
        store.create_task("groceries", None, {"content": "Buy milk"})
    """

    def __init__(self, data_dir: Path, lock_timeout: float = 10.0) -> None:
        self._data_dir = Path(data_dir)
        self._lock = threading.RLock()
        self._locks = ProjectLocks(lock_timeout)
        self._projects: Dict[str, CachedProject] = {}
        self._task_index: Dict[str, str] = {}
        self._high_serial: Dict[str, int] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def project_lock(self, project_id: str) -> ContextManager[None]:
        return self._locks.hold(project_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, project_id: str) -> Path:
        return self._data_dir / f"{validate_project_id(project_id)}{PROJECT_FILE_SUFFIX}"

    def _allocator(self, project_id: str, tasks: List[Task]):
        return id_allocator(
            project_id,
            (t.id for root in tasks for t in root.all_tasks()),
            floor=self._high_serial.get(project_id, 0),
        )

    def _index(self, project: Project) -> None:
        """Refresh the id index and serial high-water mark for one project."""
        stale = [tid for tid, pid in self._task_index.items() if pid == project.id]
        for tid in stale:
            del self._task_index[tid]
        ids = [t.id for t in project.all_tasks()]
        for tid in ids:
            self._task_index[tid] = project.id
        self._high_serial[project.id] = max(
            self._high_serial.get(project.id, 0), next_serial(project.id, ids) - 1
        )

    def _load(self, project_id: str) -> Project:
        """Return the cached project, re-parsing the file if it changed on disk."""
        path = self._path(project_id)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            with self._lock:
                self._forget(project_id)
            raise ProjectNotFound(project_id) from None

        with self._lock:
            cached = self._projects.get(project_id)
            if cached and cached.mtime >= mtime:
                return cached.project

            previous = cached.project.tasks if cached else None
            text = path.read_text(encoding="utf-8")
            project = parse_project(
                project_id,
                text,
                existing=previous,
                path=str(path),
                new_id=self._allocator(project_id, previous or []),
            )
            self._projects[project_id] = CachedProject(project=project, mtime=mtime)
            self._index(project)
            log.debug("Loaded %s (%d tasks)", path, len(project.all_tasks()))
            return project

    def _draft(self, project_id: str) -> Project:
        """Private copy of the cached project to edit before a write."""
        return copy.deepcopy(self._load(project_id))

    def _forget(self, project_id: str) -> None:
        self._projects.pop(project_id, None)
        for tid in [tid for tid, pid in self._task_index.items() if pid == project_id]:
            del self._task_index[tid]

    def _write(self, project: Project) -> None:
        """
        Render and atomically replace the project file. Caller holds _lock.

        ``project`` must be a draft, not the cached object: the cache only
        takes it over once the file has been replaced.
        """
        project.tasks = canonical_order(project.tasks)
        path = self._path(project.id)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._data_dir), prefix=f".{project.id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(render_project(project))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        project.path = str(path)
        self._projects[project.id] = CachedProject(project=project, mtime=path.stat().st_mtime)
        self._index(project)

    def _locate(self, task_id: str) -> Tuple[Project, Task]:
        """Draft of the project holding a task, and the task within that draft."""
        with self._lock:
            project_id = self._task_index.get(task_id)
            if project_id is None:
                for path in sorted(self._data_dir.glob(f"*{PROJECT_FILE_SUFFIX}")):
                    if path.stem not in self._projects:
                        try:
                            self._load(path.stem)
                        except ValueError:
                            log.warning("Skipping unreadable project file %s", path)
                project_id = self._task_index.get(task_id)
            if project_id is None:
                raise TaskNotFound(task_id)

            project = self._draft(project_id)
            task = project.find_task(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            return project, task

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> List[Project]:
        """Every parseable project file in the data dir, sorted by id."""
        projects = []
        for path in sorted(self._data_dir.glob(f"*{PROJECT_FILE_SUFFIX}")):
            try:
                projects.append(self.load_project(path.stem))
            except InputValidationError:
                log.debug("Skipping non-project file %s", path)
            except ValueError:
                log.exception("Failed to parse %s", path)
        return projects

    def create_project(self, project_id: str, title: str) -> Project:
        path = self._path(project_id)
        with self._lock:
            if path.exists():
                raise InputValidationError(f"Project '{project_id}' already exists")
            self._data_dir.mkdir(parents=True, exist_ok=True)
            project = Project(id=project_id, title=title, path=str(path))
            self._write(project)
            log.info("Created project %s at %s", project_id, path)
            return copy.deepcopy(project)

    def load_project(self, project_id: str) -> Project:
        with self._lock:
            return self._draft(project_id)

    def load_project_tasks(self, project_id: str) -> List[Task]:
        return self.load_project(project_id).tasks

    def load_project_title(self, project_id: str) -> str:
        with self._lock:
            return self._load(project_id).title

    def update_project_title(self, project_id: str, title: str) -> None:
        with self._lock:
            project = self._draft(project_id)
            project.title = title
            self._write(project)

    def read_raw(self, project_id: str) -> str:
        """File contents exactly as stored."""
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFound(project_id)
        return path.read_text(encoding="utf-8")

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self, project_id: str, parent_id: Optional[str], fields: Dict[str, Any]
    ) -> Task:
        """Append a task to the end of its parent's subtasks (or the forest)."""
        check_fields(fields)
        with self._lock:
            project = self._draft(project_id)
            siblings = project.tasks
            if parent_id is not None:
                parent = project.find_task(parent_id)
                if parent is None:
                    raise TaskNotFound(parent_id)
                siblings = parent.subtasks

            new_id = self._allocator(project.id, project.tasks)
            task = Task(id=new_id(), content="", parent_id=parent_id)
            for name, value in fields.items():
                setattr(task, name, value)
            siblings.append(task)
            self._write(project)
            return copy.deepcopy(task)

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> None:
        check_fields(fields)
        with self._lock:
            project, task = self._locate(task_id)
            for name, value in fields.items():
                setattr(task, name, value)
            self._write(project)

    def delete_task(self, task_id: str) -> None:
        """Remove a task and its whole subtree."""
        with self._lock:
            project, task = self._locate(task_id)
            if task.parent_id is None:
                siblings = project.tasks
            else:
                siblings = project.find_task(task.parent_id).subtasks
            siblings.remove(task)
            self._write(project)

    def apply_change_set(self, project_id: str, changes: ChangeSet) -> None:
        """Apply a whole change set with a single file write."""
        with self._lock:
            project = self._draft(project_id)
            # Change sets index top-level tasks in rendered order
            existing = canonical_order(project.tasks)
            project.tasks = apply_to_forest(
                existing, changes, self._allocator(project.id, existing)
            )
            self._write(project)
