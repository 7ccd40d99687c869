"""Tests for compiled forms, readiness checks and the template cache."""

from datetime import UTC, datetime

import pytest

from formwright.core import ir
from formwright.core.compiler import (
    INVALID_TEMPLATE_MESSAGE,
    TemplateCache,
    compile_form,
    has_signature_fields,
    normalize_submission,
    render_with_data,
    required_fields_before_signing,
    validate_ready_to_sign,
    validate_submission,
)
from formwright.core.errors import TemplateInvalidError
from formwright.core.parser import compile_template

INVALID_TEMPLATE = "## No title\n### A"

CONDITIONAL_TEMPLATE = """# T
## S
### Kind
- type: select
- options: A, B
- required: true
- if: kind == b
  ### Detail
    - required: true
### Sign
- type: signature
- required: true
"""


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestCompileForm:
    """Tests for compile_form."""

    def test_valid_template(self, listing_template: str) -> None:
        compiled = compile_form(listing_template)

        assert compiled.is_valid
        assert compiled.html_preview.startswith("<form")
        assert compiled.schema is not None
        assert compiled.chip_references == ["listing.address", "listing.salePrice", "vendor.email"]

    def test_invalid_template_has_no_preview(self) -> None:
        compiled = compile_form(INVALID_TEMPLATE)

        assert not compiled.is_valid
        assert compiled.html_preview == ""
        assert compiled.schema is None

    def test_invalid_pattern_is_reported(self) -> None:
        compiled = compile_form("# T\n## S\n### Code\n- pattern: [a-")

        assert not compiled.is_valid
        assert compiled.schema is None
        assert [issue.message for issue in compiled.errors] == [
            "Field code has an invalid pattern"
        ]

    def test_to_dict(self, listing_template: str) -> None:
        data = compile_form(listing_template).to_dict()

        assert set(data) == {
            "ast",
            "htmlPreview",
            "chipReferences",
            "errors",
            "warnings",
            "isValid",
        }
        assert data["isValid"] is True
        assert data["ast"]["metadata"]["chipReferences"][0] == "listing.address"

    def test_to_dict_issues(self) -> None:
        data = compile_form(INVALID_TEMPLATE).to_dict()
        assert data["errors"][0] == {
            "line": 1,
            "message": "Form must have a title (# Title)",
            "severity": "error",
        }


class TestRenderWithData:
    def test_injects_values(self, listing_template: str, chip_context: dict) -> None:
        rendered = render_with_data(compile_form(listing_template), chip_context)

        assert rendered.page_count == 2
        assert rendered.missing_chips == []
        assert 'value="12 Harbour St"' in rendered.html

    def test_reports_missing_chips(self, listing_template: str) -> None:
        rendered = render_with_data(compile_form(listing_template), {"vendor": {}})
        assert rendered.missing_chips == ["listing.address", "listing.salePrice", "vendor.email"]

    def test_invalid_template_raises(self) -> None:
        with pytest.raises(TemplateInvalidError) as exc_info:
            render_with_data(compile_form(INVALID_TEMPLATE), {})

        assert exc_info.value.message == "Cannot render invalid template"
        assert exc_info.value.issues


class TestSubmissions:
    def test_invalid_template_rejects_everything(self) -> None:
        result = validate_submission(compile_form(INVALID_TEMPLATE), {"a": "x"})

        assert not result.is_valid
        assert result.errors == {"_form": [INVALID_TEMPLATE_MESSAGE]}

    def test_valid_template_delegates_to_schema(self, listing_template: str) -> None:
        result = validate_submission(compile_form(listing_template), {})
        assert "address" in result.errors

    def test_normalize_submission(self) -> None:
        now = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)
        normalized = normalize_submission({"name": "Jane"}, 4, now=now)

        assert normalized == {
            "name": "Jane",
            "_templateVersion": 4,
            "_submittedAt": "2025-03-01T09:30:00+00:00",
        }

    def test_normalize_defaults_to_now(self) -> None:
        normalized = normalize_submission({}, 1)
        assert datetime.fromisoformat(normalized["_submittedAt"]).tzinfo is not None


class TestReadiness:
    """Tests for signing readiness."""

    @pytest.fixture
    def ast(self) -> ir.FormAST:
        return compile_template(CONDITIONAL_TEMPLATE).ast

    def test_has_signature_fields(self, ast: ir.FormAST) -> None:
        assert has_signature_fields(ast)
        assert not has_signature_fields(compile_template("# T\n## S\n### A").ast)

    def test_required_fields_exclude_signatures(self, ast: ir.FormAST) -> None:
        assert required_fields_before_signing(ast) == ["kind", "detail"]

    def test_hidden_fields_are_not_required(self, ast: ir.FormAST) -> None:
        assert required_fields_before_signing(ast, {"kind": "a"}) == ["kind"]
        assert required_fields_before_signing(ast, {"kind": "b"}) == ["kind", "detail"]

    def test_ready(self, ast: ir.FormAST) -> None:
        result = validate_ready_to_sign(ast, {"kind": "a"})

        assert result.ready
        assert result.missing_fields == []

    def test_blank_values_are_missing(self, ast: ir.FormAST) -> None:
        result = validate_ready_to_sign(ast, {"kind": "b", "detail": "  "})

        assert not result.ready
        assert result.missing_fields == ["detail"]

    def test_listing_readiness(self, listing_ast: ir.FormAST) -> None:
        result = validate_ready_to_sign(listing_ast, {})
        assert result.missing_fields == ["address", "interestLevel"]


class TestTemplateCache:
    """Tests for the TTL cache."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def cache(self, clock: FakeClock) -> TemplateCache:
        return TemplateCache(ttl_seconds=60, clock=clock)

    def test_hit(self, cache: TemplateCache, listing_template: str) -> None:
        first = cache.get_or_compile("form-1", listing_template)
        second = cache.get_or_compile("form-1", listing_template)

        assert first is second
        assert len(cache) == 1
        assert "form-1" in cache

    def test_text_change_recompiles(self, cache: TemplateCache, listing_template: str) -> None:
        first = cache.get_or_compile("form-1", listing_template)
        second = cache.get_or_compile("form-1", listing_template + "\n### Extra\n")

        assert first is not second
        assert second.template_text.endswith("### Extra\n")

    def test_expiry_recompiles(
        self, cache: TemplateCache, clock: FakeClock, listing_template: str
    ) -> None:
        first = cache.get_or_compile("form-1", listing_template)
        clock.now += 59
        assert cache.get_or_compile("form-1", listing_template) is first

        clock.now += 1
        assert cache.get_or_compile("form-1", listing_template) is not first

    def test_invalidate_and_clear(self, cache: TemplateCache, listing_template: str) -> None:
        cache.get_or_compile("form-1", listing_template)
        cache.get_or_compile("form-2", INVALID_TEMPLATE)

        cache.invalidate("form-1")
        cache.invalidate("unknown")
        assert "form-1" not in cache
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    def test_stats(self, cache: TemplateCache, clock: FakeClock, listing_template: str) -> None:
        cache.get_or_compile("form-1", listing_template)
        cache.get_or_compile("form-2", INVALID_TEMPLATE)
        clock.now += 5

        assert cache.stats() == {
            "size": 2,
            "items": [
                {"form_id": "form-1", "age": 5.0, "valid": True},
                {"form_id": "form-2", "age": 5.0, "valid": False},
            ],
        }
