"""
Task forest → canonical markdown.

    # <title>

    ## Todo

    - [ ] Buy milk #due:2025-11-23
        - [ ] Pick brand

    ## Done

    - [x] Setup

Top-level tasks are grouped into Todo, Doing, Done (empty buckets omitted);
subtasks always follow their parent one level deeper. A top-level task sits in
the bucket of its own status, except that a done task with unfinished
subtasks sits in the bucket of its first unfinished subtask.

The parser gives unchecked lines the status of their section, and a heading
does not close open nesting. An unfinished subtask whose status differs from
the section it falls in is therefore preceded by a heading for its own status,
and the bucket heading is repeated before the next top-level task:

    ## Todo

    - [ ] Parent

    ## Doing

        - [ ] Child

    ## Todo

    - [ ] Next

With these placements every forest parses back to the same statuses.
"""

from typing import Dict, List, Sequence

from ..models.task import STATUSES, Project, Task
from ..utils.formatting import render_task_line

SECTION_HEADINGS: Dict[str, str] = {
    "todo": "Todo",
    "doing": "Doing",
    "done": "Done",
}


def bucket_status(task: Task) -> str:
    """Section a top-level task (and its subtree) is rendered under."""
    if task.status != "done":
        return task.status
    for descendant in task.all_tasks()[1:]:
        if descendant.status != "done":
            return descendant.status
    return "done"


def canonical_order(tasks: Sequence[Task]) -> List[Task]:
    """
    Top-level tasks in the order render_document emits them.

    Stable within each bucket. Subtasks are untouched.
    """
    rank = {status: i for i, status in enumerate(STATUSES)}
    return sorted(tasks, key=lambda t: rank[bucket_status(t)])


def _section_blocks(status: str, bucket: Sequence[Task]) -> List[List[str]]:
    """Heading and task lines of one bucket, switching sections where a subtask needs it."""
    blocks: List[List[str]] = []
    current = None

    def enter(section: str) -> None:
        blocks.append([f"## {SECTION_HEADINGS[section]}"])
        blocks.append([])

    for root in bucket:
        if current != status:
            enter(status)
            current = status
        stack = [(root, 0)]
        while stack:
            task, depth = stack.pop()
            if task.status != "done" and task.status != current:
                enter(task.status)
                current = task.status
            blocks[-1].append(render_task_line(task, depth))
            stack.extend((child, depth + 1) for child in reversed(task.subtasks))
    return blocks


def render_document(title: str, tasks: Sequence[Task]) -> str:
    """
    Serialize a title and task forest to canonical markdown.

    Args:
        title: Project title (H1)
        tasks: Top-level forest in stored order

    Returns:
        Markdown text ending with a newline
    """
    blocks: List[List[str]] = [[f"# {title}"]]
    for status in STATUSES:
        bucket = [t for t in tasks if bucket_status(t) == status]
        if not bucket:
            continue
        blocks.extend(_section_blocks(status, bucket))

    return "\n\n".join("\n".join(block) for block in blocks) + "\n"


def render_project(project: Project) -> str:
    return render_document(project.title, project.tasks)
