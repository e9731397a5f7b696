from .tags import ExtractedTags, extract_tags
from .lines import Other, Section, TaskLine, Title, classify_line, indent_level
from .document import (
    ParsedDocument,
    build_tree,
    classify_document,
    parse_document,
    parse_project,
    position_index,
)
from .renderer import canonical_order, render_document, render_project

__all__ = [
    "ExtractedTags",
    "extract_tags",
    "Title",
    "Section",
    "TaskLine",
    "Other",
    "classify_line",
    "indent_level",
    "ParsedDocument",
    "build_tree",
    "classify_document",
    "parse_document",
    "parse_project",
    "position_index",
    "canonical_order",
    "render_document",
    "render_project",
]
