"""
Field parsing for the formwright template DSL.

A field is a ``### Label`` heading followed by ``- key: value`` property
lines. Top-level fields take unindented properties; fields inside a
conditional block take properties indented deeper than their heading.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import Line, LineKind
from ..strings import parse_bool, parse_int, parse_number, slugify, unquote

_STRING_PROPERTIES = {
    "label": "label",
    "field": "id",
    "placeholder": "placeholder",
    "description": "description",
    "helpText": "help_text",
    "pattern": "pattern",
    "signatory": "signatory",
    "timestampFormat": "timestamp_format",
}

_BOOL_PROPERTIES = {
    "required": "required",
    "multiple": "multiple",
    "captureTimestamp": "capture_timestamp",
    "embedTimestamp": "embed_timestamp",
}

_INT_PROPERTIES = {
    "minLength": "min_length",
    "maxLength": "max_length",
}

_NUMBER_PROPERTIES = {
    "min": "min",
    "max": "max",
    "step": "step",
}

_FIELD_TYPES = {field_type.value: field_type for field_type in ir.FieldType}


def parse_options(value: str) -> list[ir.FieldOption]:
    """
    Parse a comma-separated option list, optionally wrapped in brackets.

    Each option's value is the slug of its label; empty entries are dropped.
    """
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    options = []
    for raw in value.split(","):
        label = unquote(raw.strip())
        if label:
            options.append(ir.FieldOption(label=label, value=slugify(label)))
    return options


class FieldParserMixin:
    """
    Mixin providing field and property parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        current: Any
        advance: Any
        at_end: Any
        warn: Any
        record_chip: Any

    def parse_field(self, heading: Line) -> ir.FormField:
        """
        Parse a field whose ``###`` heading is ``heading`` (already current).

        Properties must sit at the margin for top-level fields, or deeper than
        the heading for fields nested in a conditional block. Blank lines
        between properties are allowed; unknown keys are ignored.
        """
        self.advance()
        label = heading.heading_text()
        values: dict[str, Any] = {"id": slugify(label), "label": label, "line": heading.number}

        while not self.at_end():
            line: Line = self.current()
            if line.is_blank:
                self.advance()
                continue
            if line.kind != LineKind.PROPERTY or not self._owns_property(heading, line):
                break
            self.advance()
            self.apply_property(values, line)

        return ir.FormField(**values)

    @staticmethod
    def _owns_property(heading: Line, line: Line) -> bool:
        if heading.at_margin:
            return line.at_margin
        return line.indent > heading.indent

    def apply_property(self, values: dict[str, Any], line: Line) -> None:
        """Apply one ``- key: value`` line to the field being built."""
        key, sep, raw_value = line.property_text().partition(":")
        if not sep:
            return
        key = key.strip()
        raw_value = raw_value.strip()

        handler = self._property_handlers().get(key)
        if handler is not None:
            handler(values, key, raw_value, line)

    def _property_handlers(self) -> dict[str, Callable[[dict[str, Any], str, str, Line], None]]:
        handlers: dict[str, Callable[[dict[str, Any], str, str, Line], None]] = {}
        for key in _STRING_PROPERTIES:
            handlers[key] = self._set_string
        for key in _BOOL_PROPERTIES:
            handlers[key] = self._set_bool
        for key in _INT_PROPERTIES:
            handlers[key] = self._set_int
        for key in _NUMBER_PROPERTIES:
            handlers[key] = self._set_number
        handlers["type"] = self._set_type
        handlers["chip"] = self._set_chip
        handlers["options"] = self._set_options
        return handlers

    def _set_string(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        values[_STRING_PROPERTIES[key]] = unquote(raw)

    def _set_bool(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        values[_BOOL_PROPERTIES[key]] = parse_bool(raw)

    def _set_int(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        number = parse_int(raw)
        if number is None:
            self.warn(line.number, f"Invalid number for {key}: '{raw}'")
            return
        values[_INT_PROPERTIES[key]] = number

    def _set_number(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        number = parse_number(raw)
        if number is None:
            self.warn(line.number, f"Invalid number for {key}: '{raw}'")
            return
        values[_NUMBER_PROPERTIES[key]] = number

    def _set_type(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        name = unquote(raw)
        field_type = _FIELD_TYPES.get(name.lower())
        if field_type is None:
            values["type"] = ir.FieldType.TEXT
            values["declared_type"] = name
        else:
            values["type"] = field_type
            values.pop("declared_type", None)

    def _set_chip(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        chip = unquote(raw)
        values["chip"] = chip
        self.record_chip(chip)

    def _set_options(self, values: dict[str, Any], key: str, raw: str, line: Line) -> None:
        values["options"] = parse_options(raw)
