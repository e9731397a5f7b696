"""
Stored forest vs. freshly parsed forest → ChangeSet.

Matching is positional: two nodes match when they have the same sibling index
under matched parents (the two forest roots match each other). Matched pairs
keep the stored id and are updated only in the fields that differ. Stored
nodes without a match are deleted along with their subtree; parsed nodes
without a match are created, parent first.

Moving a task to another position is therefore seen as an edit of whatever
task used to sit there, never as a move.
"""

import copy
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models.changes import ChangeSet, TaskUpdate
from ..models.task import MUTABLE_FIELDS, Task, TaskSkeleton

log = logging.getLogger(__name__)


def _changed_fields(stored: Task, incoming: Task) -> Dict[str, object]:
    return {
        name: getattr(incoming, name)
        for name in MUTABLE_FIELDS
        if getattr(stored, name) != getattr(incoming, name)
    }


def _skeleton(task: Task, parent_id: Optional[str], parent_key: Optional[str]) -> TaskSkeleton:
    return TaskSkeleton(
        content=task.content,
        status=task.status,
        due_date=task.due_date,
        repeat_frequency=task.repeat_frequency,
        parent_id=parent_id,
        key=task.id,
        parent_key=parent_key,
    )


def reconcile(existing: Sequence[Task], incoming: Sequence[Task]) -> ChangeSet:
    """
    Compute the changes that turn ``existing`` into ``incoming``.

    Args:
        existing: Stored forest with durable ids
        incoming: Forest parsed from the submitted document

    Returns:
        ChangeSet; to_delete lists every removed id including descendants,
        to_create lists parents before children
    """
    changes = ChangeSet()

    # (stored siblings, incoming siblings, matched parent id)
    pending: List[Tuple[Sequence[Task], Sequence[Task], Optional[str]]] = [
        (existing, incoming, None)
    ]
    while pending:
        stored_siblings, incoming_siblings, parent_id = pending.pop()

        for index in range(max(len(stored_siblings), len(incoming_siblings))):
            stored = stored_siblings[index] if index < len(stored_siblings) else None
            new = incoming_siblings[index] if index < len(incoming_siblings) else None

            if stored is not None and new is not None:
                diff = _changed_fields(stored, new)
                if diff:
                    changes.to_update.append(TaskUpdate(id=stored.id, fields=diff))
                pending.append((stored.subtasks, new.subtasks, stored.id))
            elif stored is not None:
                changes.to_delete.update(t.id for t in stored.all_tasks())
            else:
                _schedule_creates(changes, new, parent_id)

    log.debug("Reconciled forests: %s", changes.summary())
    return changes


def _schedule_creates(changes: ChangeSet, root: Task, parent_id: Optional[str]) -> None:
    """Queue a new subtree, parent before children."""
    changes.to_create.append(_skeleton(root, parent_id, root.parent_id))
    stack = [root]
    while stack:
        task = stack.pop()
        for child in task.subtasks:
            changes.to_create.append(_skeleton(child, None, task.id))
        stack.extend(reversed(task.subtasks))


def title_changed(stored_title: str, incoming_title: str) -> bool:
    """Title edits are reported apart from the task change set."""
    return stored_title.strip() != incoming_title.strip()


def apply_change_set(
    existing: Sequence[Task],
    changes: ChangeSet,
    new_id: Callable[[], str],
) -> List[Task]:
    """
    Apply a change set to an in-memory forest, returning a new forest.

    The input forest is not modified. New tasks are appended after their
    surviving siblings, which is where positional matching put them.

    Args:
        existing: Forest the change set was computed against
        changes: Output of reconcile (or a hand-built set)
        new_id: Factory for ids of created tasks
    """
    forest = copy.deepcopy(list(existing))

    # Deletes
    def prune(siblings: List[Task]) -> List[Task]:
        kept = [t for t in siblings if t.id not in changes.to_delete]
        for task in kept:
            task.subtasks = prune(task.subtasks)
        return kept

    forest = prune(forest)

    by_id: Dict[str, Task] = {t.id: t for root in forest for t in root.all_tasks()}

    # Updates
    for update in changes.to_update:
        task = by_id.get(update.id)
        if task is None:
            continue
        for name, value in update.fields.items():
            setattr(task, name, value)

    # Creates
    created_by_key: Dict[str, Task] = {}
    for skeleton in changes.to_create:
        parent: Optional[Task] = None
        if skeleton.parent_id is not None:
            parent = by_id[skeleton.parent_id]
        elif skeleton.parent_key is not None:
            parent = created_by_key.get(skeleton.parent_key)

        task = Task(
            id=new_id(),
            content=skeleton.content,
            status=skeleton.status,
            due_date=skeleton.due_date,
            repeat_frequency=skeleton.repeat_frequency,
            parent_id=parent.id if parent else None,
        )
        (parent.subtasks if parent else forest).append(task)
        by_id[task.id] = task
        if skeleton.key is not None:
            created_by_key[skeleton.key] = task

    return forest
