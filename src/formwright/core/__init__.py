"""Core formwright functionality: IR, parser, validator, renderer, injector, submission schema."""

from . import ir
from .compiler import (
    CompiledForm,
    TemplateCache,
    compile_form,
    normalize_submission,
    render_with_data,
    validate_ready_to_sign,
    validate_submission,
)
from .condition_evaluator import evaluate_condition, is_visible
from .errors import (
    FormwrightError,
    IssueSeverity,
    LinkError,
    LinkExpiredError,
    LinkNotFoundError,
    TemplateInvalidError,
    TemplateIssue,
)
from .injector import UNRESOLVED, build_prefill, inject_data, missing_chips, resolve_chip
from .parser import CompileResult, compile_template
from .renderer import render_form
from .submission import SubmissionResult, SubmissionSchema, schema_for
from .validator import validate_form

__all__ = [
    "ir",
    "FormwrightError",
    "IssueSeverity",
    "TemplateIssue",
    "TemplateInvalidError",
    "LinkError",
    "LinkNotFoundError",
    "LinkExpiredError",
    "CompileResult",
    "compile_template",
    "validate_form",
    "render_form",
    "evaluate_condition",
    "is_visible",
    "UNRESOLVED",
    "resolve_chip",
    "inject_data",
    "build_prefill",
    "missing_chips",
    "SubmissionResult",
    "SubmissionSchema",
    "schema_for",
    "CompiledForm",
    "TemplateCache",
    "compile_form",
    "render_with_data",
    "validate_submission",
    "normalize_submission",
    "validate_ready_to_sign",
]
