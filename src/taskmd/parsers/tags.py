"""
Inline tag extraction for task lines.

Recognised tags (anywhere in the task text):
    #due:YYYY-MM-DD                 → due_date
    #repeat:daily|weekly|monthly    → repeat_frequency

Each tag kind may appear at most once. A #due: token whose value does not
have the YYYY-MM-DD digit shape (month 01-12, day 01-31) is rejected; no
calendar check is made beyond that. A #repeat: token with any other value is
not a tag and stays in the content.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..errors import ParseValidationError

DUE_TAG_RE = re.compile(r"#due:(\S*)")
REPEAT_TAG_RE = re.compile(r"#repeat:(daily|weekly|monthly)(?!\S)")
DUE_VALUE_RE = re.compile(r"\d{4}-(?:0[1-9]|1[0-2])-(?:0[1-9]|[12]\d|3[01])")

MAX_DUE_TAG_COUNT = 1
MAX_REPEAT_TAG_COUNT = 1


@dataclass(frozen=True)
class ExtractedTags:
    content: str
    due_date: Optional[str] = None
    repeat_frequency: Optional[str] = None


def _strip_spans(text: str, spans) -> str:
    """Remove the given (start, end) spans and tidy the surrounding spaces."""
    pieces = []
    last = 0
    for start, end in sorted(spans):
        pieces.append(text[last:start])
        last = end
    pieces.append(text[last:])
    return re.sub(r"[ \t]{2,}", " ", "".join(pieces)).strip()


def extract_tags(text: str) -> ExtractedTags:
    """
    Pull #due and #repeat tags out of a task's text.

    Args:
        text: Task content (everything after the checkbox)

    Returns:
        ExtractedTags with the cleaned content and at most one value per tag kind

    Raises:
        ParseValidationError: duplicate tag, or a #due value with a bad shape
    """
    due_matches = list(DUE_TAG_RE.finditer(text))
    repeat_matches = list(REPEAT_TAG_RE.finditer(text))

    if len(due_matches) > MAX_DUE_TAG_COUNT:
        raise ParseValidationError(
            f"#due tag appears {len(due_matches)} times (at most one allowed)"
        )
    if len(repeat_matches) > MAX_REPEAT_TAG_COUNT:
        raise ParseValidationError(
            f"#repeat tag appears {len(repeat_matches)} times (at most one allowed)"
        )

    due_date = None
    if due_matches:
        value = due_matches[0].group(1)
        if not DUE_VALUE_RE.fullmatch(value):
            raise ParseValidationError(f"malformed due date '{value}' (expected YYYY-MM-DD)")
        due_date = value

    repeat = repeat_matches[0].group(1) if repeat_matches else None

    spans = [m.span() for m in due_matches + repeat_matches]
    return ExtractedTags(
        content=_strip_spans(text, spans),
        due_date=due_date,
        repeat_frequency=repeat,
    )
