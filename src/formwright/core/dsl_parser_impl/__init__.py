"""
formwright template DSL parser package.

The parser is built from mixins, one per construct (frontmatter, sections,
fields, conditionals), combined over BaseParser's line cursor.

The main exports are:
- Parser: The complete parser class
- parse_template: Convenience function returning the AST and parse issues

Usage:
    from formwright.core.dsl_parser_impl import parse_template

    ast, issues = parse_template(text)
"""

from __future__ import annotations

from .. import ir
from ..errors import TemplateIssue
from ..lexer import LineKind, scan_lines
from .base import BaseParser
from .conditions import ConditionParserMixin, parse_condition_text
from .fields import FieldParserMixin, parse_options
from .frontmatter import FrontmatterParserMixin, parse_form_config
from .sections import DEFAULT_SECTION_ID, SectionParserMixin


class Parser(
    BaseParser,
    FrontmatterParserMixin,
    SectionParserMixin,
    FieldParserMixin,
    ConditionParserMixin,
):
    """
    Complete parser for the formwright template DSL.

    Combines all parsing mixins into a single parser class.
    """

    def parse(self) -> ir.FormAST:
        """
        Parse the whole template.

        Document order: optional frontmatter, ``# Title``, free-text
        description, then pages of sections.
        """
        self.pos = 0
        form_config = None

        self.skip_blank()
        if self.check(LineKind.RULE, margin=True):
            form_config = self.parse_frontmatter()

        title = ""
        self.skip_blank()
        if self.check(LineKind.TITLE, margin=True):
            title = self.advance().heading_text()

        self.skip_blank()
        description_lines: list[str] = []
        while not self.at_end():
            line = self.current()
            if line.content.startswith("##") or line.content.startswith("---"):
                break
            self.advance()
            if not line.is_blank:
                description_lines.append(line.content)
        description = "\n".join(description_lines).strip() or None

        pages = self.parse_pages()

        return ir.FormAST(
            title=title,
            description=description,
            pages=pages,
            metadata=ir.FormMetadata(
                chip_references=list(self.chip_references),
                form_config=form_config,
            ),
        )


def parse_template(text: str) -> tuple[ir.FormAST, list[TemplateIssue]]:
    """
    Parse template text into a FormAST.

    Never raises on malformed input: returns a best-effort AST together with
    the issues found while parsing.
    """
    parser = Parser(scan_lines(text))
    ast = parser.parse()
    return ast, parser.issues


__all__ = [
    "DEFAULT_SECTION_ID",
    "Parser",
    "parse_condition_text",
    "parse_form_config",
    "parse_options",
    "parse_template",
]
