"""
Structural validation for compiled formwright templates.

Validation is a pure function of the AST and can be re-run on any tree,
whether it came from the parser or was built programmatically. Every
problem is collected; nothing is raised.
"""

from __future__ import annotations

import re
from collections import Counter

from . import ir
from .dsl_parser_impl import DEFAULT_SECTION_ID
from .errors import IssueSeverity, TemplateIssue
from .traversal import iter_conditionals, iter_fields

MISSING_TITLE_MESSAGE = "Form must have a title (# Title)"
MISSING_SECTION_MESSAGE = "Form must have at least one section"


def validate_document(ast: ir.FormAST) -> list[TemplateIssue]:
    """
    Validate document-level structure.

    Checks:
    - The form has a title
    - At least one real section exists (a synthesized default section
      without fields does not count)
    """
    issues: list[TemplateIssue] = []

    if not ast.title:
        issues.append(TemplateIssue(line=1, message=MISSING_TITLE_MESSAGE))

    has_section = any(
        section.id != DEFAULT_SECTION_ID or section.fields for section in ast.sections
    )
    if not has_section:
        issues.append(TemplateIssue(line=1, message=MISSING_SECTION_MESSAGE))

    return issues


def _is_valid_pattern(pattern: str) -> bool:
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


def validate_fields(ast: ir.FormAST) -> list[TemplateIssue]:
    """
    Validate every leaf field, including fields nested in conditionals.

    Checks:
    - Non-empty id and label
    - Choice fields (select/radio/checkbox) have options
    - Signature fields are required
    - ``pattern:`` values are valid regular expressions
    - Field ids are unique across the form (they key the submitted data)
    - Unrecognised ``type:`` values (warning; the field is treated as text)
    """
    issues: list[TemplateIssue] = []
    fields = list(iter_fields(ast))

    for field in fields:
        if not field.id:
            issues.append(TemplateIssue(line=field.line, message="Field must have an id"))

        if not field.label:
            issues.append(
                TemplateIssue(line=field.line, message=f"Field {field.id} must have a label")
            )

        if field.is_choice and not field.options:
            issues.append(
                TemplateIssue(
                    line=field.line,
                    message=f"Field {field.id} ({field.type.value}) must have options",
                )
            )

        if field.is_signature and not field.required:
            issues.append(
                TemplateIssue(
                    line=field.line, message=f"Signature field {field.id} must be required"
                )
            )

        if field.pattern and not _is_valid_pattern(field.pattern):
            issues.append(
                TemplateIssue(line=field.line, message=f"Field {field.id} has an invalid pattern")
            )

        if field.declared_type:
            issues.append(
                TemplateIssue(
                    line=field.line,
                    message=(
                        f"Field {field.id} has unknown type '{field.declared_type}', "
                        "treated as text"
                    ),
                    severity=IssueSeverity.WARNING,
                )
            )

    counts = Counter(field.id for field in fields if field.id)
    reported: set[str] = set()
    for field in fields:
        if counts[field.id] > 1 and field.id not in reported:
            reported.add(field.id)
            issues.append(
                TemplateIssue(
                    line=field.line,
                    message=f"Duplicate field id '{field.id}' ({counts[field.id]} fields share it)",
                )
            )

    return issues


def validate_conditionals(ast: ir.FormAST) -> list[TemplateIssue]:
    """
    Validate conditional blocks.

    Checks:
    - Every condition references a field name
    - The referenced field exists in the form (warning; the value may be
      supplied by instance data outside the template)
    """
    issues: list[TemplateIssue] = []
    field_ids = {field.id for field in iter_fields(ast)}

    for block in iter_conditionals(ast):
        if not block.condition.field:
            issues.append(
                TemplateIssue(line=block.line, message="Conditional must reference a field")
            )
        elif block.condition.field not in field_ids:
            issues.append(
                TemplateIssue(
                    line=block.line,
                    message=f"Conditional references unknown field '{block.condition.field}'",
                    severity=IssueSeverity.WARNING,
                )
            )

    return issues


def validate_form(ast: ir.FormAST) -> list[TemplateIssue]:
    """Run all structural checks and return every issue found."""
    return [
        *validate_document(ast),
        *validate_fields(ast),
        *validate_conditionals(ast),
    ]
