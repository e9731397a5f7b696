"""Next occurrence of a repeating task."""

import logging
from typing import Optional

from ..models.task import Task, TaskSkeleton
from ..utils.dates import add_days, add_months

log = logging.getLogger(__name__)


def next_due_date(due_date: Optional[str], frequency: str) -> Optional[str]:
    """
    Due date of the occurrence after ``due_date``.

    daily → +1 day, weekly → +7 days, monthly → +1 calendar month (clamped
    to month end). No due date in, no due date out.
    """
    if not due_date:
        return None
    if frequency == "daily":
        return add_days(due_date, 1)
    if frequency == "weekly":
        return add_days(due_date, 7)
    if frequency == "monthly":
        return add_months(due_date, 1)
    raise ValueError(f"Unknown repeat frequency: {frequency!r}")


def next_occurrence(task: Task) -> Optional[TaskSkeleton]:
    """
    Skeleton of the task that replaces a completed repeating task.

    The new task is a sibling of the completed one (same parent), starts as
    todo and keeps content and frequency. Returns None for non-repeating tasks.
    Nothing is persisted here.
    """
    if not task.repeat_frequency:
        return None

    due = next_due_date(task.due_date, task.repeat_frequency)
    log.debug("Next %s occurrence of %s due %s", task.repeat_frequency, task.id, due)
    return TaskSkeleton(
        content=task.content,
        status="todo",
        due_date=due,
        repeat_frequency=task.repeat_frequency,
        parent_id=task.parent_id,
    )
