"""
Markdown document → task forest.

Main API:
    parse_document(title, body, existing=None)  → ParsedDocument
    build_tree(classified_lines, project_id, existing=None)  → List[Task]
    parse_project(project_id, text, existing=None)  → Project

Nesting is rebuilt from indentation with an explicit stack of (level, task)
pairs. When a previously stored forest is supplied, a task that lands on the
same position (same sibling index under the same matched ancestors) takes
over the stored task's id; every other task gets a fresh id above all ids in
use.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ParseValidationError
from ..models.task import Project, Task
from ..utils.ids import id_allocator
from .lines import LineKind, Section, TaskLine, Title, classify_line
from .tags import extract_tags

log = logging.getLogger(__name__)

DEFAULT_PROJECT_ID = "task"

Position = Tuple[int, ...]
ClassifiedLine = Tuple[int, str, LineKind]


@dataclass
class ParsedDocument:
    title: str
    tasks: List[Task] = field(default_factory=list)
    errors: List[ParseValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class _BuildState:
    """Per-parse accumulator: status inherited from the last section heading."""

    section_status: Optional[str] = None


def classify_document(text: str) -> List[ClassifiedLine]:
    """Classify every line of a document as (1-based line number, raw line, kind)."""
    return [
        (line_number, line, classify_line(line))
        for line_number, line in enumerate(text.splitlines(), start=1)
    ]


def position_index(tasks: Sequence[Task]) -> Dict[Position, Task]:
    """Map each task's sibling-index path to the task."""
    index: Dict[Position, Task] = {}
    stack: List[Tuple[Position, Task]] = [((i,), t) for i, t in enumerate(tasks)]
    while stack:
        position, task = stack.pop()
        index[position] = task
        stack.extend((position + (i,), child) for i, child in enumerate(task.subtasks))
    return index


def _build(
    lines: Sequence[ClassifiedLine],
    project_id: str,
    existing: Optional[Sequence[Task]],
    errors: Optional[List[ParseValidationError]],
    new_id: Optional[Callable[[], str]] = None,
) -> List[Task]:
    existing = existing or []
    previous = position_index(existing)
    allocate = new_id or id_allocator(
        project_id, (t.id for root in existing for t in root.all_tasks())
    )

    state = _BuildState()
    forest: List[Task] = []
    stack: List[Tuple[int, Task, Position]] = []

    for line_number, raw_line, kind in lines:
        if isinstance(kind, Section):
            state.section_status = kind.status
            continue
        if not isinstance(kind, TaskLine):
            continue

        try:
            tags = extract_tags(kind.content)
        except ParseValidationError as e:
            located = e.with_line(line_number)
            if errors is None:
                raise located from e
            errors.append(located)
            continue

        level = kind.level
        while stack and stack[-1][0] >= level:
            stack.pop()

        if stack:
            _, parent, parent_position = stack[-1]
            siblings = parent.subtasks
            position = parent_position + (len(siblings),)
            parent_id: Optional[str] = parent.id
        else:
            # No eligible parent: clamp to a top-level task
            level = 0
            siblings = forest
            position = (len(forest),)
            parent_id = None

        if kind.checked:
            status = "done"
        else:
            status = state.section_status or "todo"

        matched = previous.get(position)
        task = Task(
            id=matched.id if matched else allocate(),
            content=tags.content,
            status=status,
            due_date=tags.due_date,
            repeat_frequency=tags.repeat_frequency,
            raw_line=raw_line,
            line_number=line_number,
            parent_id=parent_id,
        )
        siblings.append(task)
        stack.append((level, task, position))

    return forest


def build_tree(
    lines: Sequence[ClassifiedLine],
    project_id: str = DEFAULT_PROJECT_ID,
    existing: Optional[Sequence[Task]] = None,
    new_id: Optional[Callable[[], str]] = None,
) -> List[Task]:
    """
    Rebuild the task forest from classified lines.

    Args:
        lines: Output of classify_document (or equivalent triples)
        project_id: Prefix for freshly assigned ids
        existing: Previously stored forest used to carry ids over by position
        new_id: Id factory for unmatched tasks (default: serials above existing)

    Returns:
        Ordered list of top-level tasks

    Raises:
        ParseValidationError: first invalid task line, with its line number
    """
    return _build(lines, project_id, existing, errors=None, new_id=new_id)


def parse_document(
    title: str,
    body: str,
    existing: Optional[Sequence[Task]] = None,
    project_id: str = DEFAULT_PROJECT_ID,
    new_id: Optional[Callable[[], str]] = None,
) -> ParsedDocument:
    """
    Parse a full task document.

    The first H1 in the body wins over the title argument, which is only the
    fallback for bodies without one. Every invalid task line is reported in
    errors; when there are any, the parse is aborted and no tasks are returned.
    """
    lines = classify_document(body)

    doc_title = title
    for _, _, kind in lines:
        if isinstance(kind, Title):
            doc_title = kind.text
            break

    errors: List[ParseValidationError] = []
    tasks = _build(lines, project_id, existing, errors, new_id)
    if errors:
        log.warning(
            "Rejected document for %s: invalid task lines %s",
            project_id,
            [e.line_number for e in errors],
        )
        return ParsedDocument(title=doc_title, tasks=[], errors=errors)

    log.debug("Parsed %d top-level tasks for %s", len(tasks), project_id)
    return ParsedDocument(title=doc_title, tasks=tasks)


def parse_project(
    project_id: str,
    text: str,
    existing: Optional[Sequence[Task]] = None,
    path: str = "",
    new_id: Optional[Callable[[], str]] = None,
) -> Project:
    """Parse a stored document into a Project, raising on the first invalid line."""
    parsed = parse_document(
        project_id, text, existing=existing, project_id=project_id, new_id=new_id
    )
    if parsed.errors:
        raise parsed.errors[0]
    return Project(id=project_id, title=parsed.title, path=path, tasks=parsed.tasks)
