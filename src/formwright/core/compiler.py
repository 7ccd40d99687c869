"""
Compiled-template processing.

Wraps compilation, preview rendering and schema generation into a single
``CompiledForm`` record, keeps a TTL cache of compiled templates keyed by
form id, and provides the readiness checks used before a form can be
signed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from . import ir
from .condition_evaluator import is_visible
from .errors import TemplateInvalidError, TemplateIssue
from .injector import inject_data, missing_chips
from .parser import compile_template
from .renderer import render_form
from .strings import is_blank
from .submission import SubmissionResult, SubmissionSchema, schema_for
from .traversal import iter_field_visits, iter_fields

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 3600.0
INVALID_TEMPLATE_MESSAGE = "Template is invalid"


@dataclass
class CompiledForm:
    """
    A compiled template ready for persistence.

    ``html_preview`` and ``schema`` are only produced for valid templates.
    """

    template_text: str
    ast: ir.FormAST
    html_preview: str = ""
    schema: SubmissionSchema | None = None
    errors: list[TemplateIssue] = field(default_factory=list)
    warnings: list[TemplateIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def chip_references(self) -> list[str]:
        return list(self.ast.metadata.chip_references)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ast": self.ast.to_json_dict(),
            "htmlPreview": self.html_preview,
            "chipReferences": self.chip_references,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "isValid": self.is_valid,
        }


@dataclass(frozen=True)
class RenderedForm:
    html: str
    page_count: int
    missing_chips: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReadinessResult:
    """Whether an instance's data allows signing, and what is still missing."""

    ready: bool
    missing_fields: list[str] = field(default_factory=list)


def compile_form(text: str) -> CompiledForm:
    """Compile a template and, when it is valid, render its preview and schema."""
    result = compile_template(text)
    compiled = CompiledForm(
        template_text=text,
        ast=result.ast,
        errors=result.errors,
        warnings=result.warnings,
    )
    if compiled.is_valid:
        compiled.html_preview = render_form(result.ast)
        compiled.schema = schema_for(result.ast)
    return compiled


def render_with_data(compiled: CompiledForm, context: Mapping[str, Any] | Any) -> RenderedForm:
    """
    Render a compiled form with chip values injected.

    Raises:
        TemplateInvalidError: If the template did not compile cleanly
    """
    if not compiled.is_valid:
        raise TemplateInvalidError(compiled.errors, "Cannot render invalid template")

    injected = inject_data(compiled.ast, context)
    return RenderedForm(
        html=render_form(injected),
        page_count=len(injected.pages),
        missing_chips=missing_chips(compiled.ast, context),
    )


def validate_submission(compiled: CompiledForm, data: dict[str, Any]) -> SubmissionResult:
    """Validate submission data; an invalid template rejects every submission."""
    if not compiled.is_valid or compiled.schema is None:
        return SubmissionResult(is_valid=False, errors={"_form": [INVALID_TEMPLATE_MESSAGE]})
    return compiled.schema.validate(data)


def normalize_submission(
    data: dict[str, Any],
    template_version: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Stamp validated data with the template version and submission time."""
    submitted_at = (now or datetime.now(UTC)).isoformat()
    return {**data, "_templateVersion": template_version, "_submittedAt": submitted_at}


# =============================================================================
# Signing readiness
# =============================================================================


def has_signature_fields(ast: ir.FormAST) -> bool:
    return any(form_field.is_signature for form_field in iter_fields(ast))


def required_fields_before_signing(
    ast: ir.FormAST,
    data: dict[str, Any] | None = None,
) -> list[str]:
    """
    Ids of required non-signature fields.

    When ``data`` is given, fields hidden by a conditional block whose
    condition does not hold for that data are left out.
    """
    required: list[str] = []
    for visit in iter_field_visits(ast):
        form_field = visit.node
        if not form_field.required or form_field.is_signature:
            continue
        if data is not None and not is_visible(visit.conditions, data):
            continue
        if form_field.id not in required:
            required.append(form_field.id)
    return required


def validate_ready_to_sign(ast: ir.FormAST, data: dict[str, Any]) -> ReadinessResult:
    missing = [
        field_id
        for field_id in required_fields_before_signing(ast, data)
        if is_blank(data.get(field_id))
    ]
    return ReadinessResult(ready=not missing, missing_fields=missing)


# =============================================================================
# Cache
# =============================================================================


@dataclass
class _CacheEntry:
    compiled: CompiledForm
    compiled_at: float


class TemplateCache:
    """
    Thread-safe TTL cache of compiled templates keyed by form id.

    An entry is recompiled when it is older than ``ttl_seconds`` or when the
    template text differs from the text it was compiled from.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.RLock()

    def get_or_compile(self, form_id: str, text: str) -> CompiledForm:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(form_id)
            if (
                entry is not None
                and entry.compiled.template_text == text
                and now - entry.compiled_at < self.ttl_seconds
            ):
                return entry.compiled

            compiled = compile_form(text)
            self._entries[form_id] = _CacheEntry(compiled=compiled, compiled_at=now)
            logger.debug("Compiled template for form %s (valid=%s)", form_id, compiled.is_valid)
            return compiled

    def invalidate(self, form_id: str) -> None:
        with self._lock:
            self._entries.pop(form_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._entries

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        with self._lock:
            return {
                "size": len(self._entries),
                "items": [
                    {
                        "form_id": form_id,
                        "age": now - entry.compiled_at,
                        "valid": entry.compiled.is_valid,
                    }
                    for form_id, entry in self._entries.items()
                ],
            }
