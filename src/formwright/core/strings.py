"""
String utility functions for formwright.

Provides the id derivation and DSL value coercions shared by the parser
and the schema generator.
"""

from __future__ import annotations

import re
from typing import Any

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")

_TRUE_VALUES = frozenset({"true", "yes", "1"})


def slugify(text: str) -> str:
    """
    Derive a field/option id from a label.

    Lowercases, strips characters that are not word characters, whitespace
    or hyphens, turns whitespace runs into single hyphens and collapses
    repeated hyphens. Applying it twice gives the same result as once.

    Examples:
        >>> slugify("First Name")
        'first-name'
        >>> slugify("Price ($AUD)")
        'price-aud'
    """
    slug = _NON_WORD.sub("", text.lower())
    slug = _WHITESPACE.sub("-", slug)
    return _HYPHENS.sub("-", slug)


def unquote(value: str) -> str:
    """Strip one leading and one trailing quote character, then whitespace."""
    if value[:1] in ("'", '"'):
        value = value[1:]
    if value[-1:] in ("'", '"'):
        value = value[:-1]
    return value.strip()


def parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def parse_int(value: str) -> int | None:
    """Parse the leading integer of ``value`` (``"12px"`` -> 12), None if there is none."""
    match = re.match(r"\s*([+-]?\d+)", value)
    return int(match.group(1)) if match else None


def parse_number(value: str) -> float | None:
    """Parse the leading decimal number of ``value``, None if there is none."""
    match = re.match(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))", value)
    return float(match.group(1)) if match else None


def is_blank(value: Any) -> bool:
    """True for values that do not count as filled in: None, blank strings, empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | tuple | set | dict):
        return not value
    return False
