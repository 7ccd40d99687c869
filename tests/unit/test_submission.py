"""Tests for submission schema generation and validation."""

import pytest

from formwright.core import ir
from formwright.core.parser import compile_template
from formwright.core.submission import (
    REQUIRED_MESSAGE,
    schema_for,
    validate_submission_data,
)

SIGNATURE = {"type": "typed", "data": "Jane Doe", "timestamp": "2025-03-01T09:00:00Z"}


def _schema(text: str):
    return schema_for(compile_template(text).ast)


@pytest.fixture
def valid_data() -> dict:
    return {
        "address": "12 Harbour St",
        "salePrice": "750000",
        "interestLevel": "high",
        "vendor-signature": SIGNATURE,
    }


class TestSchema:
    """Tests for the generated rules."""

    def test_one_rule_per_field(self, listing_ast: ir.FormAST) -> None:
        schema = schema_for(listing_ast)
        assert schema.field_ids == [
            "address",
            "salePrice",
            "interestLevel",
            "follow-up-notes",
            "premium-package",
            "contact-email",
            "vendor-signature",
        ]

    def test_rule_description(self, listing_ast: ir.FormAST) -> None:
        rule = schema_for(listing_ast).rule_for("interestLevel")

        assert rule is not None
        assert rule.required is True
        assert rule.describe() == "select, required, options=['high', 'medium', 'low']"

    def test_unknown_rule(self, listing_ast: ir.FormAST) -> None:
        assert schema_for(listing_ast).rule_for("nope") is None

    def test_json_schema_uses_field_ids(self, listing_ast: ir.FormAST) -> None:
        json_schema = schema_for(listing_ast).json_schema()

        assert "follow-up-notes" in json_schema["properties"]
        assert set(json_schema["required"]) == {"address", "interestLevel", "vendor-signature"}

    def test_first_duplicate_wins(self) -> None:
        schema = _schema("# T\n## S\n### A\n- type: number\n### A\n- type: email")

        assert schema.field_ids == ["a"]
        assert schema.rule_for("a").field_type == ir.FieldType.NUMBER


class TestValidate:
    """Tests for validating listing submissions."""

    def test_valid_submission(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        result = validate_submission_data(listing_ast, valid_data)

        assert result.is_valid
        assert result.errors == {}
        assert result.normalized_data["salePrice"] == 750000
        assert isinstance(result.normalized_data["salePrice"], int)
        assert result.normalized_data["vendor-signature"] == SIGNATURE

    def test_unknown_keys_pass_through(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        result = validate_submission_data(listing_ast, {**valid_data, "notes": [1, 2]})
        assert result.normalized_data["notes"] == [1, 2]

    def test_empty_optional_is_skipped(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        result = validate_submission_data(listing_ast, {**valid_data, "contact-email": "  "})

        assert result.is_valid
        assert "contact-email" not in result.normalized_data

    @pytest.mark.parametrize("empty", [None, "", "   "])
    def test_empty_required_is_missing(
        self, listing_ast: ir.FormAST, valid_data: dict, empty: object
    ) -> None:
        result = validate_submission_data(listing_ast, {**valid_data, "address": empty})

        assert not result.is_valid
        assert result.errors == {"address": [REQUIRED_MESSAGE]}

    def test_all_errors_collected(self, listing_ast: ir.FormAST) -> None:
        result = validate_submission_data(
            listing_ast,
            {"salePrice": -5, "interestLevel": "urgent", "contact-email": "not-an-email"},
        )

        assert not result.is_valid
        assert result.normalized_data == {}
        assert set(result.errors) == {
            "address",
            "salePrice",
            "interestLevel",
            "contact-email",
            "vendor-signature",
        }

    def test_max_length(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        data = {**valid_data, "follow-up-notes": "x" * 501}
        result = validate_submission_data(listing_ast, data)

        assert result.errors == {"follow-up-notes": ["Must be at most 500 characters"]}

    def test_checkbox_item_path(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        data = {**valid_data, "premium-package": ["staging", "fireworks"]}
        result = validate_submission_data(listing_ast, data)

        assert list(result.errors) == ["premium-package.1"]

    def test_empty_signature(self, listing_ast: ir.FormAST, valid_data: dict) -> None:
        data = {**valid_data, "vendor-signature": {**SIGNATURE, "data": " "}}
        result = validate_submission_data(listing_ast, data)

        assert result.errors == {"vendor-signature.data": ["Signature data must not be empty"]}


class TestFieldTypes:
    """Tests for per-type rules."""

    def test_required_checkbox_needs_a_choice(self) -> None:
        schema = _schema(
            "# T\n## S\n### Extras\n- type: checkbox\n- options: A, B\n- required: true"
        )

        assert schema.validate({"extras": []}).errors == {"extras": [REQUIRED_MESSAGE]}
        assert schema.validate({"extras": ["a", "b"]}).normalized_data == {"extras": ["a", "b"]}

    def test_pattern(self) -> None:
        schema = _schema("# T\n## S\n### Code\n- pattern: ^[A-Z]{3}$")

        assert schema.validate({"code": "ABC"}).is_valid
        assert schema.validate({"code": "abcd"}).errors == {
            "code": ["Must match pattern ^[A-Z]{3}$"]
        }

    def test_broken_pattern_rejects_values(self) -> None:
        """A tree built in code with a broken pattern still yields a schema."""
        field = ir.FormField(id="code", label="Code", pattern="[a-")
        ast = ir.FormAST(
            title="T",
            pages=[ir.Page(id="page-1", sections=[ir.Section(id="section-s", fields=[field])])],
        )
        schema = schema_for(ast)

        assert schema.validate({"code": "abc"}).errors == {
            "code": ["Field has an invalid pattern [a-"]
        }

    def test_min_length(self) -> None:
        schema = _schema("# T\n## S\n### Code\n- minLength: 3")
        assert schema.validate({"code": "ab"}).errors == {"code": ["Must be at least 3 characters"]}

    def test_numbers(self) -> None:
        schema = _schema("# T\n## S\n### Age\n- type: number\n- min: 18\n- max: 120")

        assert schema.validate({"age": 42}).normalized_data == {"age": 42.0}
        assert isinstance(schema.validate({"age": 42}).normalized_data["age"], int)
        assert isinstance(schema.validate({"age": "42"}).normalized_data["age"], int)
        assert schema.validate({"age": "42.5"}).normalized_data == {"age": 42.5}
        assert not schema.validate({"age": 17}).is_valid
        assert not schema.validate({"age": "abc"}).is_valid
        assert not schema.validate({"age": "inf"}).is_valid

    @pytest.mark.parametrize(
        ("field_type", "good", "bad"),
        [
            ("date", "2025-03-01", "03/01/2025"),
            ("time", "09:30", "half past nine"),
            ("datetime", "2025-03-01T09:30:00", "tomorrow"),
        ],
    )
    def test_temporal(self, field_type: str, good: str, bad: str) -> None:
        schema = _schema(f"# T\n## S\n### When\n- type: {field_type}")

        assert schema.validate({"when": good}).is_valid
        assert schema.validate({"when": bad}).errors == {
            "when": [f"Must be an ISO-8601 {field_type} string"]
        }

    def test_choice_without_options(self) -> None:
        schema = _schema("# T\n## S\n### Pick\n- type: radio")
        assert schema.validate({"pick": "x"}).errors == {
            "pick": ["Field has no options to choose from"]
        }
