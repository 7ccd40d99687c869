"""
Submission schema generator.

Builds a pydantic model from a FormAST (one rule per leaf field, including
fields nested inside conditional blocks) and validates flat submission data
against it. Validation never raises: every violation is collected into
``SubmissionResult.errors`` keyed by field path.

Field ids are arbitrary author text (``company-name``), so the generated
model uses positional attribute names and validates by alias.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    WrapValidator,
    create_model,
)

from . import ir
from .traversal import iter_fields

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required"


# =============================================================================
# Value checks
# =============================================================================


def _string_check(
    min_length: int | None, max_length: int | None, pattern: str | None = None
) -> Callable[[str], str]:
    compiled: re.Pattern[str] | None = None
    broken_pattern = False
    if pattern:
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            logger.warning("Invalid pattern %r: %s", pattern, e)
            broken_pattern = True

    def check(value: str) -> str:
        if min_length is not None and len(value) < min_length:
            raise ValueError(f"Must be at least {min_length} characters")
        if max_length is not None and len(value) > max_length:
            raise ValueError(f"Must be at most {max_length} characters")
        if broken_pattern:
            raise ValueError(f"Field has an invalid pattern {pattern}")
        if compiled is not None and not compiled.search(value):
            raise ValueError(f"Must match pattern {pattern}")
        return value

    return check


_INTEGER_TEXT = re.compile(r"[+-]?\d+")


def _keep_integers(value: Any, handler: Callable[[Any], float]) -> int | float:
    """Validate as a float but return whole-number input as ``int``."""
    number = handler(value)
    if isinstance(value, bool):
        return number
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_TEXT.fullmatch(value.strip()):
        return int(value.strip())
    return number


def _iso_check(field_type: ir.FieldType) -> Callable[[str], str]:
    """Accept ISO-8601 strings appropriate for the temporal field type."""
    parsers: tuple[Callable[[str], Any], ...]
    if field_type == ir.FieldType.DATE:
        parsers = (date.fromisoformat, datetime.fromisoformat)
    elif field_type == ir.FieldType.TIME:
        parsers = (time.fromisoformat, datetime.fromisoformat)
    else:
        parsers = (datetime.fromisoformat,)

    def check(value: str) -> str:
        for parse in parsers:
            try:
                parse(value.strip())
            except ValueError:
                continue
            return value
        raise ValueError(f"Must be an ISO-8601 {field_type.value} string")

    return check


def _no_options(value: Any) -> Any:
    raise ValueError("Field has no options to choose from")


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class FieldRule:
    """
    Validation rule generated for one leaf field.

    Attributes:
        field_id: Key of the value in submission data
        field_type: Type of the source field
        required: Whether the value must be present and non-empty
        constraints: Rule parameters, for display (bounds, options, ...)
    """

    field_id: str
    field_type: ir.FieldType
    required: bool
    constraints: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        parts = [self.field_type.value, "required" if self.required else "optional"]
        parts.extend(f"{key}={value}" for key, value in self.constraints.items())
        return ", ".join(parts)


def _field_annotation(form_field: ir.FormField) -> tuple[Any, dict[str, Any]]:
    """
    Map a form field to a pydantic annotation.

    Returns:
        Tuple of (annotation, constraints for display)
    """
    constraints: dict[str, Any] = {}
    field_type = form_field.type

    if field_type in ir.STRING_TYPES:
        if form_field.min_length is not None:
            constraints["min_length"] = form_field.min_length
        if form_field.max_length is not None:
            constraints["max_length"] = form_field.max_length
        if field_type == ir.FieldType.EMAIL:
            constraints["format"] = "email"
            check = _string_check(form_field.min_length, form_field.max_length)
            return Annotated[EmailStr, AfterValidator(check)], constraints
        if form_field.pattern:
            constraints["pattern"] = form_field.pattern
        check = _string_check(form_field.min_length, form_field.max_length, form_field.pattern)
        return Annotated[str, AfterValidator(check)], constraints

    if field_type in ir.NUMERIC_TYPES:
        bounds: dict[str, float] = {}
        if form_field.min is not None:
            bounds["ge"] = constraints["min"] = form_field.min
        if form_field.max is not None:
            bounds["le"] = constraints["max"] = form_field.max
        return (
            Annotated[float, Field(allow_inf_nan=False, **bounds), WrapValidator(_keep_integers)],
            constraints,
        )

    if field_type in ir.TEMPORAL_TYPES:
        constraints["format"] = "iso-8601"
        return Annotated[str, AfterValidator(_iso_check(field_type))], constraints

    if field_type in ir.CHOICE_TYPES:
        values = form_field.option_values
        constraints["options"] = values
        if values:
            choice: Any = Literal[tuple(values)]  # type: ignore[valid-type]
        else:
            choice = Annotated[Any, AfterValidator(_no_options)]
        if field_type == ir.FieldType.CHECKBOX:
            return list[choice], constraints
        return choice, constraints

    if field_type == ir.FieldType.SIGNATURE:
        return ir.SignatureData, constraints

    return str, constraints


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


# =============================================================================
# Schema
# =============================================================================


@dataclass
class SubmissionResult:
    """
    Outcome of validating submission data.

    Attributes:
        is_valid: True when ``errors`` is empty
        errors: Field path (``email``, ``interests.1``) to messages
        normalized_data: Coerced values keyed by field id, unknown keys passed through
    """

    is_valid: bool
    errors: dict[str, list[str]] = field(default_factory=dict)
    normalized_data: dict[str, Any] = field(default_factory=dict)


class SubmissionSchema:
    """Validation schema generated from a FormAST."""

    def __init__(self, model: type[BaseModel], rules: list[FieldRule]):
        self.model = model
        self.rules = rules
        self._by_id = {rule.field_id: rule for rule in rules}

    @property
    def field_ids(self) -> list[str]:
        return [rule.field_id for rule in self.rules]

    def rule_for(self, field_id: str) -> FieldRule | None:
        return self._by_id.get(field_id)

    def json_schema(self) -> dict[str, Any]:
        return self.model.model_json_schema(by_alias=True)

    def validate(self, data: dict[str, Any]) -> SubmissionResult:
        """
        Validate flat submission data.

        Empty values (None, "" or whitespace-only strings) count as absent:
        required fields report them as missing, optional fields skip them.
        """
        payload = {
            key: value
            for key, value in data.items()
            if not (key in self._by_id and _is_empty(value))
        }
        for rule in self.rules:
            required_checkbox = rule.required and rule.field_type == ir.FieldType.CHECKBOX
            if required_checkbox and payload.get(rule.field_id) == []:
                del payload[rule.field_id]

        passthrough = {key: value for key, value in payload.items() if key not in self._by_id}

        try:
            validated = self.model.model_validate(payload)
        except ValidationError as exc:
            errors: dict[str, list[str]] = {}
            for error in exc.errors():
                path = ".".join(str(part) for part in error["loc"])
                message = REQUIRED_MESSAGE if error["type"] == "missing" else error["msg"]
                if message.startswith("Value error, "):
                    message = message[len("Value error, ") :]
                errors.setdefault(path, []).append(message)
            logger.debug("Submission rejected with %d invalid field(s)", len(errors))
            return SubmissionResult(is_valid=False, errors=errors)

        normalized = validated.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return SubmissionResult(is_valid=True, normalized_data={**passthrough, **normalized})


def schema_for(ast: ir.FormAST) -> SubmissionSchema:
    """
    Generate the submission schema of a form.

    The first definition wins when field ids are duplicated (the validator
    reports duplicates separately).

    Example:
        >>> from formwright.core.parser import compile_template
        >>> schema = schema_for(compile_template("# T\\n## S\\n### Name\\n- required: true").ast)
        >>> schema.validate({"name": ""}).errors
        {'name': ['This field is required']}
    """
    definitions: dict[str, Any] = {}
    rules: list[FieldRule] = []
    seen: set[str] = set()

    for form_field in iter_fields(ast):
        if not form_field.id or form_field.id in seen:
            continue
        seen.add(form_field.id)

        annotation, constraints = _field_annotation(form_field)
        if form_field.required:
            info = Field(..., alias=form_field.id)
        else:
            annotation = annotation | None
            info = Field(default=None, alias=form_field.id)

        definitions[f"f_{len(rules)}"] = (annotation, info)
        rules.append(
            FieldRule(
                field_id=form_field.id,
                field_type=form_field.type,
                required=form_field.required,
                constraints=constraints,
            )
        )

    model = create_model(  # type: ignore[call-overload]
        "SubmissionModel",
        __config__=ConfigDict(extra="ignore", populate_by_name=False),
        **definitions,
    )
    return SubmissionSchema(model, rules)


def validate_submission_data(ast: ir.FormAST, data: dict[str, Any]) -> SubmissionResult:
    """Shorthand for ``schema_for(ast).validate(data)``."""
    return schema_for(ast).validate(data)
