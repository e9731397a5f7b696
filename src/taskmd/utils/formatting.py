"""
Canonical inline tag formatting for task markdown serialization.

This module is the single source of truth for how task tags are rendered back
to markdown. The due tag always comes before the repeat tag.
"""

from typing import List, Optional

from ..models.task import Task

INDENT = "    "


def render_tags(due_date: Optional[str], repeat_frequency: Optional[str]) -> str:
    """
    Render a task's inline tags.

    Returns:
        Space-separated tags (e.g. "#due:2026-02-15 #repeat:weekly"), or "" if none
    """
    tags: List[str] = []
    if due_date:
        tags.append(f"#due:{due_date}")
    if repeat_frequency:
        tags.append(f"#repeat:{repeat_frequency}")
    return " ".join(tags)


def render_task_line(task: Task, depth: int = 0) -> str:
    """Render one task as its canonical checkbox line."""
    checkbox = "[x]" if task.status == "done" else "[ ]"
    parts = [task.content] if task.content else []
    tag_str = render_tags(task.due_date, task.repeat_frequency)
    if tag_str:
        parts.append(tag_str)
    return f"{INDENT * depth}- {checkbox} {' '.join(parts)}"
