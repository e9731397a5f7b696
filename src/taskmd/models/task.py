"""
Core task data models.

A Task captures everything needed to re-render its markdown line via
parsers.renderer; raw_line and line_number are diagnostics from the parse that
produced it and are not used when rendering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

TaskStatus = Literal["todo", "doing", "done"]
RepeatFrequency = Literal["daily", "weekly", "monthly"]

STATUSES = ("todo", "doing", "done")
FREQUENCIES = ("daily", "weekly", "monthly")

# Fields a store may change on an existing task
MUTABLE_FIELDS = ("content", "status", "due_date", "repeat_frequency")


@dataclass
class Task:
    """
    A single task node in a project's forest.

    subtasks is ordered (document order) and every child carries
    parent_id == self.id.
    """

    id: str
    content: str
    status: TaskStatus = "todo"
    due_date: Optional[str] = None  # YYYY-MM-DD
    repeat_frequency: Optional[RepeatFrequency] = None
    raw_line: str = ""
    line_number: int = 0
    parent_id: Optional[str] = None
    subtasks: List[Task] = field(default_factory=list)

    def all_tasks(self) -> List[Task]:
        """Return this task and all descendants in document order."""
        result = []
        stack = [self]
        while stack:
            task = stack.pop()
            result.append(task)
            stack.extend(reversed(task.subtasks))
        return result

    def fields(self) -> Dict[str, Any]:
        """The mutable fields of this task as a dict."""
        return {name: getattr(self, name) for name in MUTABLE_FIELDS}


@dataclass
class TaskSkeleton:
    """
    A task that does not exist in a store yet.

    key identifies the node in the tree it came from, parent_key its parent in
    that same tree. When the parent is created by the same change set its id
    is unknown up front: parent_id is None and the store resolves parent_key
    against the ids it hands out.
    """

    content: str
    status: TaskStatus = "todo"
    due_date: Optional[str] = None  # YYYY-MM-DD
    repeat_frequency: Optional[RepeatFrequency] = None
    parent_id: Optional[str] = None
    key: Optional[str] = None
    parent_key: Optional[str] = None

    def fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in MUTABLE_FIELDS}


@dataclass
class Project:
    """A titled forest of tasks held under one storage key."""

    id: str
    title: str
    path: str = ""
    tasks: List[Task] = field(default_factory=list)

    def all_tasks(self) -> List[Task]:
        """Return every task in the project as a flat list."""
        result = []
        for task in self.tasks:
            result.extend(task.all_tasks())
        return result

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.all_tasks():
            if task.id == task_id:
                return task
        return None
