"""
Frontmatter parsing for the formwright template DSL.

An optional ``---`` ... ``---`` block before the title carries form-level
configuration:

    ---
    formConfig:
      autoSubmitOnSignature: true
      submitTrigger: signature
    ---
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import Line, LineKind
from ..strings import parse_bool, unquote


class FrontmatterParserMixin:
    """
    Mixin providing frontmatter parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        lines: list[Line]
        pos: int
        current: Any
        advance: Any
        find_next: Any
        warn: Any

    def parse_frontmatter(self) -> ir.FormConfig | None:
        """
        Parse a frontmatter block starting at the current ``---`` line.

        An unterminated block is not configuration: only the opening fence is
        consumed and a warning recorded.
        """
        opener = self.advance()
        closer = self.find_next(LineKind.RULE, self.pos)
        if closer is None:
            self.warn(opener.number, "Frontmatter block is not closed with '---' and was ignored")
            return None

        body = self.lines[self.pos : closer]
        self.pos = closer + 1
        return parse_form_config([line.content for line in body])


def parse_form_config(config_lines: list[str]) -> ir.FormConfig | None:
    """Read ``formConfig`` keys from frontmatter lines; None when nothing is set."""
    values: dict[str, Any] = {}
    in_form_config = False

    for raw in config_lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()

        if key == "formConfig":
            in_form_config = True
            continue

        if in_form_config and key == "autoSubmitOnSignature":
            values["auto_submit_on_signature"] = parse_bool(value)
        elif in_form_config and key == "submitTrigger":
            values["submit_trigger"] = unquote(value)

    return ir.FormConfig(**values) if values else None
