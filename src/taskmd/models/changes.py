"""Change sets produced by the reconciler and applied by a store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

from .task import TaskSkeleton


@dataclass
class TaskUpdate:
    """Changed fields of one existing task. Unchanged fields are absent."""

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChangeSet:
    """
    Everything needed to turn a stored forest into an edited one.

    Apply deletes first, then updates, then creates in list order: to_create
    always lists a parent before any child that references it.
    """

    to_delete: Set[str] = field(default_factory=set)
    to_update: List[TaskUpdate] = field(default_factory=list)
    to_create: List[TaskSkeleton] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_delete or self.to_update or self.to_create)

    def summary(self) -> Dict[str, int]:
        return {
            "created": len(self.to_create),
            "updated": len(self.to_update),
            "deleted": len(self.to_delete),
        }
