"""
Base parser class for the formwright template DSL.

Provides line navigation and issue collection shared by all parser mixins.
The parser never raises on malformed input; problems are recorded as
``TemplateIssue`` entries and parsing continues with a best-effort tree.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .. import ir
from ..errors import IssueSeverity, TemplateIssue
from ..lexer import Line, LineKind


@runtime_checkable
class ParserProtocol(Protocol):
    """
    Protocol defining the interface available to parser mixins.

    Mixins rely on BaseParser methods once combined into the final Parser.
    """

    lines: list[Line]
    pos: int
    issues: list[TemplateIssue]

    def current(self) -> Line | None: ...
    def advance(self) -> Line: ...
    def at_end(self) -> bool: ...
    def skip_blank(self) -> None: ...
    def warn(self, line: int, message: str) -> None: ...
    def error(self, line: int, message: str) -> None: ...

    # Cross-mixin methods
    def parse_field(self, heading: Line) -> ir.FormField: ...
    def parse_conditional(self, opener: Line) -> ir.ConditionalBlock: ...
    def parse_condition(self, text: str) -> ir.Condition: ...


class BaseParser:
    """
    Cursor over scanned lines with issue collection.

    Attributes:
        lines: Classified template lines
        pos: Index of the current line
        issues: Problems found so far
        chip_references: Chip paths in first-seen order
    """

    def __init__(self, lines: list[Line]):
        self.lines = lines
        self.pos = 0
        self.issues: list[TemplateIssue] = []
        self.chip_references: list[str] = []

    def current(self) -> Line | None:
        """Get current line, or None at end of input."""
        if self.pos >= len(self.lines):
            return None
        return self.lines[self.pos]

    def peek(self, offset: int = 1) -> Line | None:
        pos = self.pos + offset
        if pos >= len(self.lines):
            return None
        return self.lines[pos]

    def advance(self) -> Line:
        """Consume and return the current line."""
        line = self.lines[self.pos]
        self.pos += 1
        return line

    def at_end(self) -> bool:
        return self.pos >= len(self.lines)

    def check(self, *kinds: LineKind, margin: bool = False) -> bool:
        """Whether the current line is one of ``kinds`` (and unindented when ``margin``)."""
        line = self.current()
        if line is None or line.kind not in kinds:
            return False
        return line.at_margin or not margin

    def skip_blank(self) -> None:
        while not self.at_end() and self.lines[self.pos].is_blank:
            self.pos += 1

    def find_next(self, kind: LineKind, start: int) -> int | None:
        """Index of the next unindented line of ``kind`` at or after ``start``."""
        for index in range(start, len(self.lines)):
            line = self.lines[index]
            if line.kind == kind and line.at_margin:
                return index
        return None

    def record_chip(self, chip: str) -> None:
        if chip and chip not in self.chip_references:
            self.chip_references.append(chip)

    def warn(self, line: int, message: str) -> None:
        self.issues.append(
            TemplateIssue(line=line, message=message, severity=IssueSeverity.WARNING)
        )

    def error(self, line: int, message: str) -> None:
        self.issues.append(TemplateIssue(line=line, message=message))
