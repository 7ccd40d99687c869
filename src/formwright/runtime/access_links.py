"""
Access links: tokenized, expiring entry points for vendors.

A link is resolved by comparing its expiry to the wall clock at resolution
time. ``used_at`` records the first use but never blocks later ones.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from formwright.core import ir
from formwright.core.errors import LinkExpiredError, LinkNotFoundError
from formwright.core.injector import build_prefill, inject_data, missing_chips

from .logging import log_with_context
from .store import InstanceStore

logger = logging.getLogger(__name__)

DEFAULT_LINK_EXPIRY_HOURS = 168
TOKEN_BYTES = 24


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_token() -> str:
    """Random hex token (48 characters)."""
    return secrets.token_hex(TOKEN_BYTES)


def link_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/form/{token}"


def resolve_link(link: ir.AccessLink, now: datetime) -> ir.AccessLink:
    """
    Check a link against the clock.

    Raises:
        LinkExpiredError: If ``expires_at`` is before ``now``
    """
    if link.is_expired(now):
        raise LinkExpiredError(f"Access link {link.id} expired at {link.expires_at.isoformat()}")
    return link


@dataclass(frozen=True)
class SigningView:
    """
    What a vendor sees when opening a link.

    Attributes:
        annotated_ast: Form with resolved chip values attached to fields
        prefill: Initial field values from resolved chips
        missing_chips: Chip references the context could not resolve
    """

    annotated_ast: ir.FormAST
    prefill: dict[str, Any] = field(default_factory=dict)
    missing_chips: list[str] = field(default_factory=list)


def resolve_for_signing(ast: ir.FormAST, context: Mapping[str, Any] | Any) -> SigningView:
    return SigningView(
        annotated_ast=inject_data(ast, context),
        prefill=build_prefill(ast, context),
        missing_chips=missing_chips(ast, context),
    )


class AccessLinkService:
    """
    Issue and resolve access links against an instance store.

    Args:
        store: Store holding the links
        clock: Returns the current time; injectable for tests
        expires_in_hours: Default lifetime of new links
    """

    def __init__(
        self,
        store: InstanceStore,
        clock: Callable[[], datetime] = _utcnow,
        expires_in_hours: float = DEFAULT_LINK_EXPIRY_HOURS,
    ):
        self.store = store
        self.clock = clock
        self.expires_in_hours = expires_in_hours

    def issue_link(
        self,
        vendor_id: str,
        campaign_id: str,
        form_id: str,
        form_instance_id: str | None = None,
        signatory_role: str | None = None,
        expires_in_hours: float | None = None,
    ) -> ir.AccessLink:
        now = self.clock()
        hours = self.expires_in_hours if expires_in_hours is None else expires_in_hours
        link = ir.AccessLink(
            id=str(uuid.uuid4()),
            token=generate_token(),
            vendor_id=vendor_id,
            campaign_id=campaign_id,
            form_id=form_id,
            form_instance_id=form_instance_id,
            signatory_role=signatory_role,
            expires_at=now + timedelta(hours=hours),
            created_at=now,
        )
        self.store.insert_link(link)
        log_with_context(
            logger,
            logging.INFO,
            "Access link issued",
            link_id=link.id,
            form_id=form_id,
            expires_at=link.expires_at.isoformat(),
        )
        return link

    def resolve_link(self, token: str) -> ir.AccessLink:
        """
        Find the link for ``token`` and check that it has not expired.

        Raises:
            LinkNotFoundError: If no link has this token
            LinkExpiredError: If the link has expired
        """
        link = self.store.get_link_by_token(token)
        if link is None:
            raise LinkNotFoundError("Invalid or expired link")
        return resolve_link(link, self.clock())

    def mark_used(self, token: str) -> ir.AccessLink:
        """Stamp ``used_at`` on first use; later uses keep the first timestamp."""
        link = self.resolve_link(token)
        if link.used_at is not None:
            return link
        return self.store.save_link(link.model_copy(update={"used_at": self.clock()}))
