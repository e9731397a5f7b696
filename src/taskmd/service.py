"""
Document service: the read → parse → reconcile → apply cycle over a store.

Handler-facing operations shared by the REST API and the MCP tools. Each
document save holds the project's lock for the whole cycle, and nothing is
written unless the whole document parses.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import InputValidationError, ParseValidationError, TaskNotFound
from .models.task import STATUSES, Project, Task
from .parsers.document import parse_document
from .parsers.renderer import canonical_order, render_document
from .parsers.tags import extract_tags
from .store.base import TaskStore
from .sync.reconciler import reconcile, title_changed
from .sync.recurrence import next_occurrence
from .utils.validation import (
    DEFAULT_MAX_TITLE_LENGTH,
    contains_dangerous_markup,
    validate_project_id,
    validate_project_title,
)

log = logging.getLogger(__name__)


@dataclass
class SaveResult:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    title_updated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "titleUpdated": self.title_updated,
        }


class DocumentService:
    """Task and document operations for one store."""

    def __init__(self, store: TaskStore, max_title_length: int = DEFAULT_MAX_TITLE_LENGTH) -> None:
        self.store = store
        self.max_title_length = max_title_length

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> List[Project]:
        return self.store.list_projects()

    def create_project(self, project_id: str, title: str) -> Project:
        validate_project_id(project_id)
        title = validate_project_title(title, self.max_title_length)
        return self.store.create_project(project_id, title)

    def get_project(self, project_id: str) -> Project:
        validate_project_id(project_id)
        project = self.store.load_project(project_id)
        project.tasks = canonical_order(project.tasks)
        return project

    def rename_project(self, project_id: str, title: str) -> None:
        validate_project_id(project_id)
        title = validate_project_title(title, self.max_title_length)
        with self.store.project_lock(project_id):
            self.store.update_project_title(project_id, title)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_raw(self, project_id: str) -> str:
        """Render the stored project as a markdown document."""
        project = self.get_project(project_id)
        return render_document(project.title, project.tasks)

    def save_raw(self, project_id: str, text: str) -> SaveResult:
        """
        Replace a project's tasks with those of an edited document.

        Tasks whose position did not change keep their ids.

        Raises:
            ParseValidationError: first invalid task line (bad tag or disallowed
                markup); nothing is written
            InputValidationError: the document's title is not acceptable
        """
        validate_project_id(project_id)
        with self.store.project_lock(project_id):
            stored_title = self.store.load_project_title(project_id)
            existing = canonical_order(self.store.load_project_tasks(project_id))

            parsed = parse_document(stored_title, text, existing=existing, project_id=project_id)
            if parsed.errors:
                raise parsed.errors[0]
            _check_markup(parsed.tasks)

            rename = title_changed(stored_title, parsed.title)
            new_title = (
                validate_project_title(parsed.title, self.max_title_length) if rename else None
            )

            changes = reconcile(existing, parsed.tasks)
            if not changes.is_empty:
                self.store.apply_change_set(project_id, changes)
            if new_title is not None:
                self.store.update_project_title(project_id, new_title)

        summary = changes.summary()
        log.info(
            "Saved document for %s: %d created, %d updated, %d deleted%s",
            project_id,
            summary["created"],
            summary["updated"],
            summary["deleted"],
            ", title updated" if rename else "",
        )
        return SaveResult(title_updated=rename, **summary)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        project_id: str,
        content: str,
        status: str = "todo",
        parent_id: Optional[str] = None,
    ) -> Task:
        """Insert one task; inline #due / #repeat tags in content are extracted."""
        validate_project_id(project_id)
        _check_status(status)
        tags = extract_tags(content)
        if contains_dangerous_markup(tags.content):
            raise InputValidationError("Task content contains disallowed markup")
        fields = {
            "content": tags.content,
            "status": status,
            "due_date": tags.due_date,
            "repeat_frequency": tags.repeat_frequency,
        }
        with self.store.project_lock(project_id):
            return self.store.create_task(project_id, parent_id, fields)

    def set_task_status(self, project_id: str, task_id: str, status: str) -> Optional[Task]:
        """
        Change a task's status.

        Moving a repeating task to done creates its next occurrence, which is
        returned; otherwise returns None.
        """
        validate_project_id(project_id)
        _check_status(status)
        with self.store.project_lock(project_id):
            task = self._find(project_id, task_id)
            was_done = task.status == "done"
            self.store.update_task(task_id, {"status": status})
            if status != "done" or was_done:
                return None

            skeleton = next_occurrence(task)
            if skeleton is None:
                return None
            successor = self.store.create_task(project_id, skeleton.parent_id, skeleton.fields())
            log.info(
                "Task %s repeats %s: created %s due %s",
                task_id,
                task.repeat_frequency,
                successor.id,
                successor.due_date,
            )
            return successor

    def complete_task(self, project_id: str, task_id: str) -> Optional[Task]:
        return self.set_task_status(project_id, task_id, "done")

    def delete_task(self, project_id: str, task_id: str) -> None:
        validate_project_id(project_id)
        with self.store.project_lock(project_id):
            self._find(project_id, task_id)
            self.store.delete_task(task_id)

    def _find(self, project_id: str, task_id: str) -> Task:
        project = self.store.load_project(project_id)
        task = project.find_task(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task


def _check_markup(tasks: List[Task]) -> None:
    for task in (t for root in tasks for t in root.all_tasks()):
        if contains_dangerous_markup(task.content):
            raise ParseValidationError("task content contains disallowed markup", task.line_number)


def _check_status(status: str) -> None:
    if status not in STATUSES:
        raise InputValidationError(
            f"Invalid status {status!r}: expected one of {', '.join(STATUSES)}"
        )
