"""
Task ID generation utilities.

Task ids have the form "<project_id>-<serial>". Serials only grow, so an id is
never handed out twice for the same project.
"""

import re
from typing import Callable, Iterable, Optional


def make_task_id(project_id: str, serial: int) -> str:
    return f"{project_id}-{serial}"


def serial_of(task_id: str, project_id: str) -> Optional[int]:
    """
    Return the serial encoded in a task id, or None if the id was not
    produced by make_task_id for this project.
    """
    m = re.fullmatch(re.escape(project_id) + r"-(\d+)", task_id)
    return int(m.group(1)) if m else None


def next_serial(project_id: str, task_ids: Iterable[str]) -> int:
    """Lowest serial strictly above every serial already in use."""
    serials = [s for s in (serial_of(tid, project_id) for tid in task_ids) if s is not None]
    return max(serials, default=0) + 1


def id_allocator(
    project_id: str, task_ids: Iterable[str] = (), floor: int = 0
) -> Callable[[], str]:
    """
    Build a callable that hands out fresh task ids for a project.

    Args:
        project_id: Owning project
        task_ids: Ids already in use; allocation starts above all of them
        floor: Highest serial ever handed out, even if since deleted

    Returns:
        Zero-argument function returning a new id on each call
    """
    counter = [max(next_serial(project_id, task_ids), floor + 1)]

    def allocate() -> str:
        task_id = make_task_id(project_id, counter[0])
        counter[0] += 1
        return task_id

    return allocate
