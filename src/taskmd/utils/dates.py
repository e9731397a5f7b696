"""
Calendar helpers for due dates.

Due dates travel as ISO strings (YYYY-MM-DD). Only the digit shape is checked
when parsing, so a shape-valid string such as 2025-02-30 can reach these
helpers; its day is clamped to the end of the month before any arithmetic.
"""

import calendar
from datetime import date, timedelta


def to_date(value: str) -> date:
    """Convert a YYYY-MM-DD string to a date, clamping the day to the month length."""
    year, month, day = (int(part) for part in value.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_days(value: str, days: int) -> str:
    return (to_date(value) + timedelta(days=days)).isoformat()


def add_months(value: str, months: int) -> str:
    """
    Add calendar months, clamping to the last day of the target month.

    "2025-01-31" + 1 → "2025-02-28"; "2024-01-31" + 1 → "2024-02-29".
    """
    start = to_date(value)
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day)).isoformat()
