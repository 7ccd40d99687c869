"""
Form instance and signing types for formwright IR.

A FormInstance is the shared, lockable data-and-signature state of a form
sent to a campaign. Signatories are the parties expected to sign it, each
bound to one access link.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FormInstanceStatus(str, Enum):
    """Lifecycle states of a form instance."""

    DRAFT = "draft"
    READY_TO_SIGN = "ready_to_sign"
    LOCKED = "locked"
    COMPLETED = "completed"
    VOIDED = "voided"


EDITABLE_STATUSES = frozenset({FormInstanceStatus.DRAFT, FormInstanceStatus.READY_TO_SIGN})


class SigningMode(str, Enum):
    """Quorum rule deciding when an instance becomes completed."""

    ALL = "all"  # every signatory must sign
    ANY = "any"  # one signature is enough


class SignatureType(str, Enum):
    CANVAS = "canvas"
    TYPED = "typed"


class SignatureData(BaseModel):
    """
    Value of a signature field.

    ``data`` is either base64 canvas image data or the typed name.
    """

    type: SignatureType
    data: str
    timestamp: str
    signatory: str | None = None
    signing_date: str | None = Field(default=None, alias="signingDate")
    formatted_timestamp: str | None = Field(default=None, alias="formattedTimestamp")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Signature data must not be empty")
        return v


class FormInstance(BaseModel):
    """
    Shared state of a signature-bearing form sent to a campaign.

    Attributes:
        data: Field values keyed by field id (last write wins)
        version: Compare-and-swap token, incremented on every persisted write
    """

    id: str
    form_id: str
    campaign_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    status: FormInstanceStatus = FormInstanceStatus.DRAFT
    signing_mode: SigningMode = SigningMode.ALL
    locked_at: datetime | None = None
    completed_at: datetime | None = None
    voided_at: datetime | None = None
    voided_by: str | None = None
    voided_reason: str | None = None
    unlocked_at: datetime | None = None
    unlocked_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_voided(self) -> bool:
        return self.status == FormInstanceStatus.VOIDED

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES


class Signatory(BaseModel):
    """A party expected to sign a form instance."""

    id: str
    form_instance_id: str
    access_link_id: str
    name: str
    email: str | None = None
    signed_at: datetime | None = None
    signature_data: SignatureData | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def has_signed(self) -> bool:
        return self.signed_at is not None


class AccessLink(BaseModel):
    """
    Tokenized link giving a vendor access to a form.

    Expiry is checked at resolution time; ``used_at`` is informational and
    does not make the link single-use.
    """

    id: str
    token: str
    vendor_id: str
    campaign_id: str
    form_id: str
    form_instance_id: str | None = None
    signatory_role: str | None = None
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
