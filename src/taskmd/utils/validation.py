"""
Input checks applied before a project id or title reaches a store.
"""

import re

from ..errors import InputValidationError

PROJECT_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,50}")

DEFAULT_MAX_TITLE_LENGTH = 100

# Markup that must never end up in a title or task rendered by a client
DANGEROUS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<object[^>]*>.*?</object>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<embed[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
]


def validate_project_id(project_id: str) -> str:
    """Accept slug-like ids only, so an id can never escape the data directory."""
    if not isinstance(project_id, str) or not PROJECT_ID_RE.fullmatch(project_id):
        raise InputValidationError(
            f"Invalid project id {project_id!r}: use 1-50 letters, digits, '-' or '_'"
        )
    return project_id


def contains_dangerous_markup(text: str) -> bool:
    return any(p.search(text) for p in DANGEROUS_PATTERNS)


def validate_project_title(title: str, max_length: int = DEFAULT_MAX_TITLE_LENGTH) -> str:
    """Return the trimmed title or raise InputValidationError."""
    if not isinstance(title, str) or not title.strip():
        raise InputValidationError("Project title must not be empty")
    trimmed = title.strip()
    if "\n" in trimmed:
        raise InputValidationError("Project title must be a single line")
    if len(trimmed) > max_length:
        raise InputValidationError(f"Project title exceeds {max_length} characters")
    if contains_dangerous_markup(trimmed):
        raise InputValidationError("Project title contains disallowed markup")
    return trimmed
