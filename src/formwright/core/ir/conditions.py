"""
Condition types for formwright IR.

Conditions gate the visibility of conditional blocks. Values stay untyped
strings in the IR; coercion happens at evaluation time.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ComparisonOperator(str, Enum):
    """Operators allowed in ``- if:`` conditions."""

    EQUALS = "=="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="
    IN = "in"
    CONTAINS = "contains"


class Condition(BaseModel):
    """
    A single comparison against a field of the instance data.

    Examples:
        - interestLevel == High
        - price >= 500000
        - status in Active, Pending
    """

    field: str
    operator: ComparisonOperator = ComparisonOperator.EQUALS
    value: str = ""

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        """Render the condition back to its source form."""
        return f"{self.field} {self.operator.value} {self.value}".strip()

    def to_descriptor(self) -> dict[str, str]:
        """Machine-readable form consumed by clients evaluating live data."""
        return {"field": self.field, "operator": self.operator.value, "value": self.value}
