"""
Condition parsing for the formwright template DSL.

Handles ``- if: <condition>`` lines and the indented blocks they open.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import Line, LineKind
from ..strings import unquote

# Word and symbol operators written with surrounding spaces, e.g. "status == Active".
# Longer symbols come first so ">" never matches inside ">=".
_SPACED_OPERATORS = (
    ir.ComparisonOperator.GREATER_EQUAL,
    ir.ComparisonOperator.LESS_EQUAL,
    ir.ComparisonOperator.EQUALS,
    ir.ComparisonOperator.NOT_EQUALS,
    ir.ComparisonOperator.CONTAINS,
    ir.ComparisonOperator.IN,
    ir.ComparisonOperator.GREATER_THAN,
    ir.ComparisonOperator.LESS_THAN,
)

# Symbol operators written without spaces, e.g. "price>=500000".
_COMPACT_PATTERN = re.compile(r"^\s*([^\s<>=!]+)\s*(>=|<=|==|!=|>|<)\s*(.*)$")


def parse_condition_text(text: str) -> ir.Condition:
    """
    Parse a condition such as ``interestLevel == "High"``.

    The leftmost operator wins; at the same position the longer operator
    wins. Values stay strings (one layer of quotes removed). Without any
    operator the first word is the field and the rest the expected value.
    """
    text = text.strip()
    best: tuple[int, int, ir.ComparisonOperator] | None = None
    for operator in _SPACED_OPERATORS:
        index = text.find(f" {operator.value} ")
        if index < 0:
            continue
        candidate = (index, -len(operator.value), operator)
        if best is None or candidate[:2] < best[:2]:
            best = candidate

    if best is not None:
        index, _, operator = best
        field = text[:index].strip()
        value = text[index + len(operator.value) + 2 :].strip()
        return ir.Condition(field=field, operator=operator, value=unquote(value))

    match = _COMPACT_PATTERN.match(text)
    if match:
        field, symbol, value = match.groups()
        return ir.Condition(
            field=field, operator=ir.ComparisonOperator(symbol), value=unquote(value.strip())
        )

    field, _, rest = text.partition(" ")
    return ir.Condition(field=field, operator=ir.ComparisonOperator.EQUALS, value=unquote(rest))


class ConditionParserMixin:
    """
    Mixin providing conditional block parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        current: Any
        advance: Any
        at_end: Any
        warn: Any
        parse_field: Any

    def parse_condition(self, text: str) -> ir.Condition:
        return parse_condition_text(text)

    def parse_conditional(self, opener: Line) -> ir.ConditionalBlock:
        """
        Parse a conditional block whose ``- if:`` line is ``opener`` (already current).

        Children are the following lines indented deeper than the opener:
        ``### Label`` headings (with their further-indented properties),
        nested ``- if:`` blocks and ``---`` dividers. The block ends at the
        first non-blank line indented no deeper than the opener.
        """
        self.advance()
        condition = self.parse_condition(opener.content[len("- if:") :])
        children: list[ir.FormField | ir.ConditionalBlock | ir.Divider] = []

        while not self.at_end():
            line: Line = self.current()
            if line.is_blank:
                self.advance()
                continue
            if line.indent <= opener.indent:
                break

            if line.kind == LineKind.FIELD:
                children.append(self.parse_field(line))
            elif line.kind == LineKind.CONDITION:
                children.append(self.parse_conditional(line))
            elif line.kind == LineKind.RULE:
                self.advance()
                children.append(ir.Divider(line=line.number))
            else:
                self.advance()
                self.warn(line.number, f"Ignored line inside conditional block: '{line.content}'")

        if not children:
            self.warn(opener.number, f"Conditional block '{condition.describe()}' has no fields")

        return ir.ConditionalBlock(condition=condition, children=children, line=opener.number)
