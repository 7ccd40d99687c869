"""
Condition evaluator for conditional block visibility.

Conditions are evaluated against *instance data* (the values entered so
far), never against chip context. Values in conditions are strings; the
evaluator coerces at comparison time:

- ``==`` / ``!=`` compare loosely (numbers numerically, booleans
  case-insensitively, lists by membership)
- ``>``, ``<``, ``>=``, ``<=`` compare numerically and are false when
  either side is not a number
- ``in`` tests membership in a comma-separated list
- ``contains`` tests substring (or list element) containment
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from . import ir
from .traversal import iter_field_visits

_ORDERING = {
    ir.ComparisonOperator.GREATER_THAN: lambda a, b: a > b,
    ir.ComparisonOperator.LESS_THAN: lambda a, b: a < b,
    ir.ComparisonOperator.GREATER_EQUAL: lambda a, b: a >= b,
    ir.ComparisonOperator.LESS_EQUAL: lambda a, b: a <= b,
}


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _loose_equals(actual: Any, expected: str) -> bool:
    if actual is None:
        return False
    if isinstance(actual, list | tuple | set):
        return any(_loose_equals(item, expected) for item in actual)
    if isinstance(actual, bool):
        return str(actual).lower() == expected.strip().lower()
    if isinstance(actual, int | float):
        number = _to_number(expected)
        return number is not None and float(actual) == number
    return str(actual) == expected


def evaluate_condition(condition: ir.Condition, data: dict[str, Any]) -> bool:
    """
    Evaluate a single condition against instance data.

    Args:
        condition: Condition from a conditional block
        data: Field values keyed by field id

    Returns:
        True if the condition holds
    """
    actual = data.get(condition.field)
    operator = condition.operator
    expected = condition.value

    if operator == ir.ComparisonOperator.EQUALS:
        return _loose_equals(actual, expected)
    if operator == ir.ComparisonOperator.NOT_EQUALS:
        return not _loose_equals(actual, expected)

    if operator in _ORDERING:
        left = _to_number(actual)
        right = _to_number(expected)
        if left is None or right is None:
            return False
        return _ORDERING[operator](left, right)

    if operator == ir.ComparisonOperator.IN:
        choices = [choice.strip() for choice in expected.split(",")]
        return any(_loose_equals(actual, choice) for choice in choices)

    if operator == ir.ComparisonOperator.CONTAINS:
        if actual is None:
            return False
        if isinstance(actual, list | tuple | set):
            return any(str(item) == expected for item in actual)
        return expected in str(actual)

    return True


def is_visible(conditions: Iterable[ir.Condition], data: dict[str, Any]) -> bool:
    """A container is visible only when every enclosing condition holds."""
    return all(evaluate_condition(condition, data) for condition in conditions)


def visible_field_ids(ast: ir.FormAST, data: dict[str, Any]) -> list[str]:
    """Ids of the fields currently visible for ``data``, in document order."""
    return [
        visit.node.id
        for visit in iter_field_visits(ast)
        if is_visible(visit.conditions, data)
    ]
