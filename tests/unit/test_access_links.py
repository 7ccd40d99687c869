"""Tests for access links and signing views."""

from datetime import timedelta

import pytest

from formwright.core import ir
from formwright.core.errors import LinkExpiredError, LinkNotFoundError
from formwright.core.traversal import find_field
from formwright.runtime import AccessLinkService, resolve_for_signing, resolve_link
from formwright.runtime.access_links import (
    DEFAULT_LINK_EXPIRY_HOURS,
    generate_token,
    link_url,
)


@pytest.fixture
def links(store, clock) -> AccessLinkService:
    return AccessLinkService(store, clock=clock)


class TestTokens:
    def test_generate_token(self) -> None:
        token = generate_token()

        assert len(token) == 48
        int(token, 16)
        assert generate_token() != token

    def test_link_url(self) -> None:
        assert link_url("https://forms.example.com/", "abc") == "https://forms.example.com/form/abc"


class TestAccessLinkService:
    """Tests for issuing and resolving links."""

    def test_issue_link(self, links: AccessLinkService, clock) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1", signatory_role="vendor")

        assert link.created_at == clock.now
        assert link.expires_at == clock.now + timedelta(hours=DEFAULT_LINK_EXPIRY_HOURS)
        assert link.signatory_role == "vendor"
        assert link.used_at is None

    def test_custom_expiry(self, links: AccessLinkService, clock) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1", expires_in_hours=2)
        assert link.expires_at == clock.now + timedelta(hours=2)

    def test_link_for_instance(self, links: AccessLinkService, service) -> None:
        instance = service.create(form_id="form-1", campaign_id="camp-1")
        link = links.issue_link("vendor-1", "camp-1", "form-1", form_instance_id=instance.id)

        assert links.resolve_link(link.token).form_instance_id == instance.id

    def test_resolve(self, links: AccessLinkService) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1")
        assert links.resolve_link(link.token).id == link.id

    def test_unknown_token(self, links: AccessLinkService) -> None:
        with pytest.raises(LinkNotFoundError, match="Invalid or expired link"):
            links.resolve_link("nope")

    def test_expiry_is_checked_at_resolution(self, links: AccessLinkService, clock) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1", expires_in_hours=1)

        clock.advance(hours=1)
        assert links.resolve_link(link.token).id == link.id

        clock.advance(seconds=1)
        with pytest.raises(LinkExpiredError):
            links.resolve_link(link.token)

    def test_mark_used_keeps_first_use(self, links: AccessLinkService, clock) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1")
        first_use = clock.now

        links.mark_used(link.token)
        clock.advance(minutes=10)
        again = links.mark_used(link.token)

        assert again.used_at == first_use
        assert links.resolve_link(link.token).used_at == first_use

    def test_used_link_still_resolves(self, links: AccessLinkService) -> None:
        link = links.issue_link("vendor-1", "camp-1", "form-1")
        links.mark_used(link.token)
        assert links.resolve_link(link.token).id == link.id


class TestResolveLink:
    def test_pure_resolution(self, clock) -> None:
        link = ir.AccessLink(
            id="l1",
            token="t",
            vendor_id="v",
            campaign_id="c",
            form_id="f",
            expires_at=clock.now,
        )

        assert resolve_link(link, clock.now) is link
        with pytest.raises(LinkExpiredError, match="l1"):
            resolve_link(link, clock.now + timedelta(microseconds=1))


class TestSigningView:
    def test_resolve_for_signing(self, listing_ast: ir.FormAST) -> None:
        view = resolve_for_signing(listing_ast, {"listing": {"address": "12 Harbour St"}})

        assert view.prefill == {"address": "12 Harbour St"}
        assert view.missing_chips == ["listing.salePrice", "vendor.email"]
        assert find_field(view.annotated_ast, "address").chip_value == "12 Harbour St"
        assert find_field(listing_ast, "address").chip_value is None
