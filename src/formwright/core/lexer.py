"""
Line scanner for the formwright template DSL.

The DSL is line oriented: the meaning of a line is decided by its prefix
once leading spaces are removed, and nesting inside conditional blocks is
expressed through indentation. The scanner classifies every line and keeps
its indentation and 1-indexed line number for the parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LineKind(Enum):
    """Line classes of the template DSL."""

    BLANK = "blank"
    TITLE = "title"  # "# Title"
    SECTION = "section"  # "## Heading"
    FIELD = "field"  # "### Label"
    CONDITION = "condition"  # "- if: <condition>"
    PROPERTY = "property"  # "- key: value"
    RULE = "rule"  # "---" (divider or frontmatter fence)
    PAGE_BREAK = "page_break"  # "---page-break---"
    TEXT = "text"


PAGE_BREAK_MARKER = "---page-break---"
RULE_MARKER = "---"
CONDITION_PREFIX = "- if:"


@dataclass(frozen=True)
class Line:
    """
    A classified template line.

    Attributes:
        number: 1-indexed line number
        indent: Number of leading spaces
        content: Line text without indentation and trailing whitespace
        kind: Classification of the line
    """

    number: int
    indent: int
    content: str
    kind: LineKind

    @property
    def is_blank(self) -> bool:
        return self.kind == LineKind.BLANK

    @property
    def at_margin(self) -> bool:
        """True for unindented lines."""
        return self.indent == 0

    def heading_text(self) -> str:
        """Text after the ``#``/``##``/``###`` marker."""
        return self.content.lstrip("#").strip()

    def property_text(self) -> str:
        """Text after the leading ``- `` of a property or condition line."""
        return self.content[1:].strip()


def classify(content: str) -> LineKind:
    """Classify an unindented line."""
    if not content:
        return LineKind.BLANK
    if content == PAGE_BREAK_MARKER:
        return LineKind.PAGE_BREAK
    if content == RULE_MARKER:
        return LineKind.RULE
    if content.startswith("### "):
        return LineKind.FIELD
    if content.startswith("## "):
        return LineKind.SECTION
    if content.startswith("# "):
        return LineKind.TITLE
    if content.startswith(CONDITION_PREFIX):
        return LineKind.CONDITION
    if content.startswith("- "):
        return LineKind.PROPERTY
    return LineKind.TEXT


def scan_lines(text: str) -> list[Line]:
    """
    Split template text into classified lines.

    Carriage returns are dropped so CRLF templates scan like LF ones.
    Whitespace-only lines are BLANK regardless of their indentation.
    """
    lines: list[Line] = []
    for number, raw in enumerate(text.replace("\r\n", "\n").replace("\r", "\n").split("\n"), 1):
        stripped = raw.rstrip()
        content = stripped.lstrip(" ")
        indent = len(stripped) - len(content) if content else 0
        lines.append(Line(number=number, indent=indent, content=content, kind=classify(content)))
    return lines
