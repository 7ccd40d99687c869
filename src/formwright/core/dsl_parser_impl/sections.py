"""
Page and section parsing for the formwright template DSL.

Pages are separated by ``---page-break---``. Each page holds ``##``
sections; a page without any section gets a synthesized default section so
that every page has at least one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import Line, LineKind
from ..strings import slugify

DEFAULT_SECTION_ID = "section-default"


class SectionParserMixin:
    """
    Mixin providing page and section parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        current: Any
        advance: Any
        at_end: Any
        check: Any
        skip_blank: Any
        warn: Any
        parse_field: Any
        parse_conditional: Any

    def parse_pages(self) -> list[ir.Page]:
        """Parse the remaining lines into pages."""
        pages: list[ir.Page] = []
        sections: list[ir.Section] = []
        section_ids: set[str] = set()

        while not self.at_end():
            line: Line = self.current()

            if line.kind == LineKind.PAGE_BREAK:
                self.advance()
                pages.append(self._finish_page(len(pages) + 1, sections))
                sections = []
                continue

            if line.kind == LineKind.SECTION and line.at_margin:
                sections.append(self.parse_section(section_ids))
                continue

            if line.kind == LineKind.FIELD and line.at_margin:
                field = self.parse_field(line)
                self.warn(
                    line.number,
                    f"Field '{field.label}' appears before any section and was ignored",
                )
                continue

            if line.kind in (LineKind.PROPERTY, LineKind.CONDITION):
                self.warn(
                    line.number, f"Property line outside any field was ignored: '{line.content}'"
                )
            self.advance()

        if sections or not pages:
            pages.append(self._finish_page(len(pages) + 1, sections))
        return pages

    def _finish_page(self, number: int, sections: list[ir.Section]) -> ir.Page:
        if not sections:
            sections = [ir.Section(id=DEFAULT_SECTION_ID)]
        return ir.Page(id=f"page-{number}", sections=sections)

    def parse_section(self, section_ids: set[str]) -> ir.Section:
        """
        Parse a ``##`` section: heading, optional description, then containers.

        The description is the run of plain lines directly after the heading
        (blank lines kept so paragraphs survive). The section ends at the next
        ``##`` heading or page break.
        """
        heading = self.advance()
        title = heading.heading_text()

        section_id = f"section-{slugify(title)}"
        if section_id in section_ids:
            suffix = 2
            while f"{section_id}-{suffix}" in section_ids:
                suffix += 1
            section_id = f"{section_id}-{suffix}"
        section_ids.add(section_id)

        if self.check(LineKind.BLANK):
            self.advance()

        description_lines: list[str] = []
        while not self.at_end() and not self._ends_description(self.current()):
            description_lines.append(self.advance().content)
        description = "\n".join(description_lines).strip() or None

        self.skip_blank()
        containers: list[ir.FormField | ir.ConditionalBlock | ir.Divider] = []

        while not self.at_end():
            line: Line = self.current()

            if line.kind == LineKind.PAGE_BREAK or (
                line.kind == LineKind.SECTION and line.at_margin
            ):
                break

            if line.kind == LineKind.RULE:
                self.advance()
                containers.append(ir.Divider(line=line.number))
            elif line.kind == LineKind.CONDITION and line.at_margin:
                containers.append(self.parse_conditional(line))
            elif line.kind == LineKind.FIELD and line.at_margin:
                containers.append(self.parse_field(line))
            elif line.is_blank:
                self.advance()
            else:
                self.advance()
                if line.kind == LineKind.PROPERTY:
                    self.warn(
                        line.number,
                        f"Property line outside any field was ignored: '{line.content}'",
                    )
                elif not line.at_margin:
                    self.warn(
                        line.number,
                        f"Indented line outside a conditional block was ignored: '{line.content}'",
                    )

        return ir.Section(
            id=section_id,
            title=title or None,
            description=description,
            fields=containers,
            line=heading.number,
        )

    @staticmethod
    def _ends_description(line: Line) -> bool:
        if not line.at_margin:
            return False
        if line.kind in (LineKind.FIELD, LineKind.SECTION):
            return True
        return line.content.startswith("-")
