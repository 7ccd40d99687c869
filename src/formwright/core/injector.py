"""
Chip resolution and data injection.

A chip is a dotted reference such as ``listing.salePrice`` whose first
segment names a context namespace (``vendor``, ``campaign`` or ``listing``)
and whose remaining segments walk nested mappings or object attributes.
Anything missing along the way leaves the chip unresolved; resolution never
raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

from . import ir
from .traversal import iter_fields, map_fields

logger = logging.getLogger(__name__)

CHIP_NAMESPACES: Final = frozenset({"vendor", "campaign", "listing"})


class _Unresolved:
    """Sentinel type for chips with no value in the context."""

    _instance: _Unresolved | None = None

    def __new__(cls) -> _Unresolved:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED: Final = _Unresolved()

_MISSING = object()

# Values whose attributes are never chip data
_LEAF_TYPES = (str, bytes, int, float, complex, bool, list, tuple, set, frozenset)


def _lookup(container: Any, key: str) -> Any:
    if container is None:
        return _MISSING
    if isinstance(container, Mapping):
        return container.get(key, _MISSING)
    if isinstance(container, _LEAF_TYPES) or key.startswith("_"):
        return _MISSING
    value = getattr(container, key, _MISSING)
    if callable(value):
        return _MISSING
    return value


def resolve_chip(chip: str, context: Mapping[str, Any] | Any) -> Any:
    """
    Resolve a chip against a context.

    Args:
        chip: Dotted reference, e.g. ``vendor.companyName``
        context: Mapping (or object) exposing the ``vendor``, ``campaign`` and
            ``listing`` namespaces

    Returns:
        The resolved value, or ``UNRESOLVED``

    Example:
        >>> resolve_chip("listing.salePrice", {"listing": {"salePrice": 450000}})
        450000
        >>> resolve_chip("salePrice", {"listing": {"salePrice": 450000}})
        UNRESOLVED
    """
    parts = chip.strip().split(".")
    if len(parts) < 2 or parts[0] not in CHIP_NAMESPACES:
        return UNRESOLVED

    current = _lookup(context, parts[0])
    if current is _MISSING or current is None:
        return UNRESOLVED

    for part in parts[1:]:
        current = _lookup(current, part)
        if current is _MISSING:
            return UNRESOLVED

    return current


def inject_data(ast: ir.FormAST, context: Mapping[str, Any] | Any) -> ir.FormAST:
    """
    Return a copy of ``ast`` with resolved chip values attached to their fields.

    Fields whose chip resolves get ``chip_value`` set and ``chip_resolved``
    flagged; unresolved fields are left untouched. The input AST is not
    modified.
    """

    def _inject(field: ir.FormField) -> ir.FormField:
        if not field.chip:
            return field
        value = resolve_chip(field.chip, context)
        if value is UNRESOLVED:
            logger.debug("Chip %s for field %s is unresolved", field.chip, field.id)
            return field
        return field.model_copy(update={"chip_value": value, "chip_resolved": True})

    return map_fields(ast, _inject)


def build_prefill(ast: ir.FormAST, context: Mapping[str, Any] | Any) -> dict[str, Any]:
    """Initial instance data: field id to resolved chip value, resolved chips only."""
    prefill: dict[str, Any] = {}
    for field in iter_fields(ast):
        if not field.chip:
            continue
        value = resolve_chip(field.chip, context)
        if value is not UNRESOLVED:
            prefill[field.id] = value
    return prefill


def missing_chips(ast: ir.FormAST, context: Mapping[str, Any] | Any) -> list[str]:
    """Chip references of the form that the context cannot resolve, in order."""
    return [
        chip
        for chip in ast.metadata.chip_references
        if resolve_chip(chip, context) is UNRESOLVED
    ]
