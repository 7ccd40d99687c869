"""Tests for chip resolution and injection."""

from dataclasses import dataclass

from formwright.core import ir
from formwright.core.injector import (
    UNRESOLVED,
    build_prefill,
    inject_data,
    missing_chips,
    resolve_chip,
)
from formwright.core.traversal import find_field


@dataclass
class Vendor:
    name: str
    company: object = None


class TestResolveChip:
    """Tests for dotted chip lookups."""

    def test_resolves_nested_value(self, chip_context: dict) -> None:
        assert resolve_chip("vendor.name", chip_context) == "Jane Doe"
        assert resolve_chip("listing.salePrice", chip_context) == 750000

    def test_missing_key_is_unresolved(self, chip_context: dict) -> None:
        """A missing key is not an error."""
        assert resolve_chip("vendor.missing", chip_context) is UNRESOLVED

    def test_unknown_namespace(self, chip_context: dict) -> None:
        context = {**chip_context, "agent": {"name": "Sam"}}
        assert resolve_chip("agent.name", context) is UNRESOLVED

    def test_single_segment(self, chip_context: dict) -> None:
        assert resolve_chip("vendor", chip_context) is UNRESOLVED

    def test_absent_namespace(self) -> None:
        assert resolve_chip("listing.address", {}) is UNRESOLVED
        assert resolve_chip("listing.address", {"listing": None}) is UNRESOLVED

    def test_none_along_path(self) -> None:
        context = {"vendor": {"address": None}}
        assert resolve_chip("vendor.address.street", context) is UNRESOLVED

    def test_present_none_value(self) -> None:
        assert resolve_chip("vendor.phone", {"vendor": {"phone": None}}) is None

    def test_object_attributes(self) -> None:
        context = {"vendor": Vendor(name="Jane", company={"abn": "123"})}

        assert resolve_chip("vendor.name", context) == "Jane"
        assert resolve_chip("vendor.company.abn", context) == "123"
        assert resolve_chip("vendor.email", context) is UNRESOLVED

    def test_value_attributes_are_unresolved(self, chip_context: dict) -> None:
        """Attributes of plain values are not chip data."""
        context = {**chip_context, "listing": {"photos": ["a.jpg"], "beds": 3}}

        assert resolve_chip("vendor.name.upper", context) is UNRESOLVED
        assert resolve_chip("vendor.name.__class__", context) is UNRESOLVED
        assert resolve_chip("listing.photos.count", context) is UNRESOLVED
        assert resolve_chip("listing.beds.real", context) is UNRESOLVED

    def test_private_and_callable_attributes(self) -> None:
        context = {"vendor": Vendor(name="Jane")}

        assert resolve_chip("vendor.__dict__", context) is UNRESOLVED
        assert resolve_chip("vendor._private", context) is UNRESOLVED
        assert resolve_chip("vendor.__repr__", context) is UNRESOLVED

    def test_unresolved_sentinel(self) -> None:
        assert repr(UNRESOLVED) == "UNRESOLVED"
        assert not UNRESOLVED
        assert type(UNRESOLVED)() is UNRESOLVED


class TestInjectData:
    """Tests for copying chip values onto fields."""

    def test_resolved_fields(self, listing_ast: ir.FormAST, chip_context: dict) -> None:
        injected = inject_data(listing_ast, chip_context)
        address = find_field(injected, "address")

        assert address.chip_value == "12 Harbour St"
        assert address.chip_resolved is True

    def test_unresolved_fields_untouched(self, listing_ast: ir.FormAST) -> None:
        injected = inject_data(listing_ast, {"vendor": {}})
        email = find_field(injected, "contact-email")

        assert email.chip_value is None
        assert email.chip_resolved is False

    def test_input_not_modified(self, listing_ast: ir.FormAST, chip_context: dict) -> None:
        inject_data(listing_ast, chip_context)
        assert find_field(listing_ast, "address").chip_value is None


class TestPrefill:
    def test_build_prefill(self, listing_ast: ir.FormAST, chip_context: dict) -> None:
        assert build_prefill(listing_ast, chip_context) == {
            "address": "12 Harbour St",
            "salePrice": 750000,
            "contact-email": "jane@example.com",
        }

    def test_missing_chips(self, listing_ast: ir.FormAST) -> None:
        context = {"listing": {"address": "12 Harbour St"}}
        assert missing_chips(listing_ast, context) == ["listing.salePrice", "vendor.email"]

    def test_no_missing_chips(self, listing_ast: ir.FormAST, chip_context: dict) -> None:
        assert missing_chips(listing_ast, chip_context) == []
