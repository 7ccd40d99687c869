"""
Generic traversal over the FieldContainer tree.

Every consumer of the AST (validator, renderer, injector, submission schema,
readiness checks) walks the tree through these helpers instead of inspecting
container kinds at each call site.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass

from . import ir


@dataclass(frozen=True)
class Visit:
    """
    A container reached during a walk.

    Attributes:
        node: The container itself
        section: Section the container belongs to
        page_index: 0-based index of the page
        conditions: Conditions of every enclosing conditional block, outermost first
    """

    node: ir.FormField | ir.ConditionalBlock | ir.Divider
    section: ir.Section
    page_index: int
    conditions: tuple[ir.Condition, ...] = ()

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)


def walk_containers(
    containers: Iterable[ir.FormField | ir.ConditionalBlock | ir.Divider],
    section: ir.Section,
    page_index: int = 0,
    conditions: tuple[ir.Condition, ...] = (),
) -> Iterator[Visit]:
    """Yield every container depth-first, pre-order, tracking enclosing conditions."""
    for node in containers:
        yield Visit(node=node, section=section, page_index=page_index, conditions=conditions)
        if isinstance(node, ir.ConditionalBlock):
            yield from walk_containers(
                node.children, section, page_index, conditions + (node.condition,)
            )


def walk(ast: ir.FormAST) -> Iterator[Visit]:
    """Yield every container of the form in document order."""
    for page_index, page in enumerate(ast.pages):
        for section in page.sections:
            yield from walk_containers(section.fields, section, page_index)


def iter_fields(ast: ir.FormAST) -> Iterator[ir.FormField]:
    """Yield every leaf field, including those nested in conditionals."""
    for visit in walk(ast):
        if isinstance(visit.node, ir.FormField):
            yield visit.node


def iter_field_visits(ast: ir.FormAST) -> Iterator[Visit]:
    """Like ``iter_fields`` but keeps the enclosing conditions of each field."""
    for visit in walk(ast):
        if isinstance(visit.node, ir.FormField):
            yield visit


def iter_conditionals(ast: ir.FormAST) -> Iterator[ir.ConditionalBlock]:
    for visit in walk(ast):
        if isinstance(visit.node, ir.ConditionalBlock):
            yield visit.node


def find_field(ast: ir.FormAST, field_id: str) -> ir.FormField | None:
    for field in iter_fields(ast):
        if field.id == field_id:
            return field
    return None


def map_fields(
    ast: ir.FormAST,
    transform: Callable[[ir.FormField], ir.FormField],
) -> ir.FormAST:
    """
    Return a new AST with every leaf field replaced by ``transform(field)``.

    The input AST is never modified; conditionals and dividers are rebuilt
    around the transformed fields.
    """

    def _map(containers: Sequence[ir.FormField | ir.ConditionalBlock | ir.Divider]) -> list:
        mapped: list[ir.FormField | ir.ConditionalBlock | ir.Divider] = []
        for node in containers:
            if isinstance(node, ir.FormField):
                mapped.append(transform(node))
            elif isinstance(node, ir.ConditionalBlock):
                mapped.append(node.model_copy(update={"children": _map(node.children)}))
            else:
                mapped.append(node)
        return mapped

    pages = [
        page.model_copy(
            update={
                "sections": [
                    section.model_copy(update={"fields": _map(section.fields)})
                    for section in page.sections
                ]
            }
        )
        for page in ast.pages
    ]
    return ast.model_copy(update={"pages": pages})
