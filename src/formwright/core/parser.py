"""
Template compilation entry point.

Turns raw template text into a FormAST plus the structural issues found by
the parser and the validator. Compilation never raises on malformed input;
callers decide whether blocking errors prevent publishing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import ir
from .dsl_parser_impl import parse_template
from .errors import TemplateIssue
from .validator import validate_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    """
    Result of compiling a template.

    Attributes:
        ast: Best-effort form tree (always present)
        errors: Issues that block publishing the compiled artifact
        warnings: Non-blocking issues worth showing to the author
    """

    ast: ir.FormAST
    errors: list[TemplateIssue] = field(default_factory=list)
    warnings: list[TemplateIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def issues(self) -> list[TemplateIssue]:
        return sorted([*self.errors, *self.warnings], key=lambda issue: issue.line)


def compile_template(text: str) -> CompileResult:
    """
    Compile template text into an AST and a list of structural issues.

    Example:
        >>> result = compile_template("# T\\n## S\\n### Name\\n- required: true")
        >>> result.ast.title
        'T'
        >>> result.errors
        []
    """
    ast, parse_issues = parse_template(text)
    issues = [*parse_issues, *validate_form(ast)]

    errors = [issue for issue in issues if issue.is_error]
    warnings = [issue for issue in issues if not issue.is_error]

    logger.debug(
        "Compiled template %r: %d page(s), %d error(s), %d warning(s)",
        ast.title,
        len(ast.pages),
        len(errors),
        len(warnings),
    )
    return CompileResult(ast=ast, errors=errors, warnings=warnings)
