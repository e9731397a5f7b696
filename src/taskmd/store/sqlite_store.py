"""
Relational task store on SQLite.

Schema:
    projects(id, title, next_serial)
    tasks(id, project_id, parent_id → tasks.id ON DELETE CASCADE, position, ...)

Sibling order is the position column. next_serial only grows, so deleted
task ids are never handed out again. A change set is applied inside a single
transaction: it commits or rolls back as a whole.
"""

import logging
import sqlite3
import threading
from typing import Any, ContextManager, Dict, List, Optional

from ..errors import InputValidationError, ProjectNotFound, TaskNotFound
from ..models.changes import ChangeSet
from ..models.task import Project, Task
from ..parsers.renderer import canonical_order
from ..utils.ids import make_task_id
from ..utils.validation import validate_project_id
from .base import ProjectLocks, check_fields

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQLite schema
# ---------------------------------------------------------------------------

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    next_serial INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    parent_id TEXT REFERENCES tasks(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    content TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('todo', 'doing', 'done')),
    due_date TEXT,
    repeat_frequency TEXT CHECK (repeat_frequency IN ('daily', 'weekly', 'monthly')),
    raw_line TEXT NOT NULL DEFAULT '',
    line_number INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_tasks_project_parent ON tasks (project_id, parent_id, position);
"""


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        content=row["content"],
        status=row["status"],
        due_date=row["due_date"],
        repeat_frequency=row["repeat_frequency"],
        raw_line=row["raw_line"],
        line_number=row["line_number"],
        parent_id=row["parent_id"],
    )


class SqliteTaskStore:
    """
    Thread-safe SQLite task store.

    Pass ":memory:" for a throwaway database.
    """

    def __init__(self, db_path: str = ":memory:", lock_timeout: float = 10.0) -> None:
        self._lock = threading.RLock()
        self._locks = ProjectLocks(lock_timeout)
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA foreign_keys = ON")
        self._db.executescript(_CREATE_TABLES)
        log.info("Opened SQLite task store at %s", db_path)

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def project_lock(self, project_id: str) -> ContextManager[None]:
        return self._locks.hold(project_id)

    # ------------------------------------------------------------------
    # Internal helpers (caller holds _lock)
    # ------------------------------------------------------------------

    def _require_project(self, project_id: str) -> sqlite3.Row:
        row = self._db.execute(
            "SELECT id, title, next_serial FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            raise ProjectNotFound(project_id)
        return row

    def _task_row(self, task_id: str) -> sqlite3.Row:
        row = self._db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise TaskNotFound(task_id)
        return row

    def _allocate_id(self, project_id: str) -> str:
        serial = self._require_project(project_id)["next_serial"]
        self._db.execute(
            "UPDATE projects SET next_serial = ? WHERE id = ?", (serial + 1, project_id)
        )
        return make_task_id(project_id, serial)

    def _insert(self, project_id: str, parent_id: Optional[str], fields: Dict[str, Any]) -> str:
        if parent_id is not None:
            parent = self._task_row(parent_id)
            if parent["project_id"] != project_id:
                raise TaskNotFound(parent_id)
        position = self._db.execute(
            "SELECT COALESCE(MAX(position) + 1, 0) FROM tasks"
            " WHERE project_id = ? AND parent_id IS ?",
            (project_id, parent_id),
        ).fetchone()[0]
        task_id = self._allocate_id(project_id)
        self._db.execute(
            """
            INSERT INTO tasks
            (id, project_id, parent_id, position, content, status, due_date, repeat_frequency)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task_id,
                project_id,
                parent_id,
                position,
                fields.get("content", ""),
                fields.get("status", "todo"),
                fields.get("due_date"),
                fields.get("repeat_frequency"),
            ),
        )
        return task_id

    def _update(self, task_id: str, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        cur = self._db.execute(
            f"UPDATE tasks SET {assignments} WHERE id = ?", (*fields.values(), task_id)
        )
        if cur.rowcount == 0:
            raise TaskNotFound(task_id)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> List[Project]:
        with self._lock:
            ids = [r["id"] for r in self._db.execute("SELECT id FROM projects ORDER BY id")]
        return [self.load_project(pid) for pid in ids]

    def create_project(self, project_id: str, title: str) -> Project:
        validate_project_id(project_id)
        with self._lock:
            try:
                with self._db:
                    self._db.execute(
                        "INSERT INTO projects (id, title) VALUES (?, ?)", (project_id, title)
                    )
            except sqlite3.IntegrityError:
                raise InputValidationError(f"Project '{project_id}' already exists") from None
        log.info("Created project %s", project_id)
        return Project(id=project_id, title=title)

    def load_project(self, project_id: str) -> Project:
        with self._lock:
            title = self._require_project(project_id)["title"]
            rows = self._db.execute(
                "SELECT * FROM tasks WHERE project_id = ? ORDER BY position, rowid",
                (project_id,),
            ).fetchall()

        tasks = {row["id"]: _row_to_task(row) for row in rows}
        roots: List[Task] = []
        for row in rows:
            task = tasks[row["id"]]
            if task.parent_id is None:
                roots.append(task)
            else:
                tasks[task.parent_id].subtasks.append(task)
        return Project(id=project_id, title=title, tasks=roots)

    def load_project_tasks(self, project_id: str) -> List[Task]:
        return self.load_project(project_id).tasks

    def load_project_title(self, project_id: str) -> str:
        with self._lock:
            return self._require_project(project_id)["title"]

    def update_project_title(self, project_id: str, title: str) -> None:
        with self._lock, self._db:
            self._require_project(project_id)
            self._db.execute("UPDATE projects SET title = ? WHERE id = ?", (title, project_id))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self, project_id: str, parent_id: Optional[str], fields: Dict[str, Any]
    ) -> Task:
        check_fields(fields)
        with self._lock:
            with self._db:
                task_id = self._insert(project_id, parent_id, fields)
            return _row_to_task(self._task_row(task_id))

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> None:
        check_fields(fields)
        with self._lock, self._db:
            self._update(task_id, fields)

    def delete_task(self, task_id: str) -> None:
        """Delete a task; foreign keys cascade to its subtree."""
        with self._lock, self._db:
            cur = self._db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise TaskNotFound(task_id)

    def apply_change_set(self, project_id: str, changes: ChangeSet) -> None:
        """
        Deletes, then updates, then creates (parents first), in one transaction.

        Change sets index top-level tasks in rendered order, so stored
        positions are first renumbered to that order.
        """
        with self._lock, self._db:
            self._require_project(project_id)
            roots = canonical_order(self.load_project_tasks(project_id))
            for position, task in enumerate(roots):
                self._db.execute("UPDATE tasks SET position = ? WHERE id = ?", (position, task.id))
            for task_id in sorted(changes.to_delete):
                # Descendants may already be gone through the cascade
                self._db.execute(
                    "DELETE FROM tasks WHERE id = ? AND project_id = ?", (task_id, project_id)
                )
            for update in changes.to_update:
                check_fields(update.fields)
                self._update(update.id, update.fields)

            created: Dict[str, str] = {}
            for skeleton in changes.to_create:
                parent_id = skeleton.parent_id
                if parent_id is None and skeleton.parent_key is not None:
                    parent_id = created.get(skeleton.parent_key)
                task_id = self._insert(project_id, parent_id, skeleton.fields())
                if skeleton.key is not None:
                    created[skeleton.key] = task_id
