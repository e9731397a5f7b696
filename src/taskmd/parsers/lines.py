"""
Single-line classification for task documents.

    # Title                  → Title
    ## Todo|Doing|Done       → Section (any other H2 is a section mapped to todo)
    <indent>- [ ] content    → TaskLine (checkbox ' ' or 'x')
    anything else            → Other
"""

import re
from dataclasses import dataclass
from typing import Union

TITLE_RE = re.compile(r"^# (.+)$")
SECTION_RE = re.compile(r"^## (.+)$")
TASK_LINE_RE = re.compile(r"^(\s*)- \[( |x)\] (.*)$")

INDENT_WIDTH = 4

# Section heading → status
SECTION_STATUS = {
    "Todo": "todo",
    "Doing": "doing",
    "Done": "done",
}
DEFAULT_STATUS = "todo"


@dataclass(frozen=True)
class Title:
    text: str


@dataclass(frozen=True)
class Section:
    name: str
    status: str = DEFAULT_STATUS


@dataclass(frozen=True)
class TaskLine:
    indent: str
    checked: bool
    content: str

    @property
    def level(self) -> int:
        return indent_level(self.indent)


@dataclass(frozen=True)
class Other:
    text: str = ""


LineKind = Union[Title, Section, TaskLine, Other]


def indent_level(indent: str) -> int:
    """Convert leading whitespace to a 0-based nesting level (4 spaces per level, rounded down)."""
    spaces = len(indent.replace("\t", " " * INDENT_WIDTH))
    return spaces // INDENT_WIDTH


def classify_line(line: str) -> LineKind:
    """Classify one source line. Never fails."""
    line = line.rstrip("\r\n")

    m = TASK_LINE_RE.match(line)
    if m:
        return TaskLine(indent=m.group(1), checked=m.group(2) == "x", content=m.group(3))

    m = SECTION_RE.match(line)
    if m:
        name = m.group(1).strip()
        return Section(name=name, status=SECTION_STATUS.get(name, DEFAULT_STATUS))

    m = TITLE_RE.match(line)
    if m:
        return Title(text=m.group(1).strip())

    return Other(text=line)
