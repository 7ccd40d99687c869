"""
Field definitions for formwright IR.

A field is the leaf of the form tree and the unit of submitted data: its
``id`` is the key under which the value is stored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    """Enumeration of supported field types."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SIGNATURE = "signature"


CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})
STRING_TYPES = frozenset({FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL})
NUMERIC_TYPES = frozenset({FieldType.NUMBER, FieldType.CURRENCY})
TEMPORAL_TYPES = frozenset({FieldType.DATE, FieldType.TIME, FieldType.DATETIME})


class FieldOption(BaseModel):
    """An option of a select, radio or checkbox field."""

    label: str
    value: str

    model_config = ConfigDict(frozen=True)


class FormField(BaseModel):
    """
    Specification for a single form field.

    Attributes:
        id: Submission data key, slug of the label unless overridden by ``field:``
        label: Display label
        type: Field type (unknown declared types fall back to text)
        declared_type: The raw ``type:`` value when it was not recognised
        chip: Dotted data-source reference such as ``vendor.name``
        chip_value: Resolved chip value, only set on injected copies
        line: Source line of the ``###`` heading (1-indexed, 0 if synthetic)
    """

    kind: Literal["field"] = "field"
    id: str
    label: str
    type: FieldType = FieldType.TEXT
    declared_type: str | None = None
    required: bool = False
    placeholder: str | None = None
    chip: str | None = None
    chip_value: Any = None
    chip_resolved: bool = False
    description: str | None = None
    help_text: str | None = None

    # text / number constraints
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    step: float | None = None
    pattern: str | None = None

    # choice fields
    options: list[FieldOption] = Field(default_factory=list)
    multiple: bool | None = None

    # signature fields
    signatory: str | None = None
    capture_timestamp: bool | None = None
    timestamp_format: str | None = None
    embed_timestamp: bool | None = None

    line: int = 0

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES

    @property
    def is_signature(self) -> bool:
        return self.type == FieldType.SIGNATURE

    @property
    def option_values(self) -> list[str]:
        return [option.value for option in self.options]
