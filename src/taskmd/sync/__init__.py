from .reconciler import apply_change_set, reconcile, title_changed
from .recurrence import next_due_date, next_occurrence

__all__ = [
    "reconcile",
    "apply_change_set",
    "title_changed",
    "next_occurrence",
    "next_due_date",
]
