"""formwright runtime: form instance lifecycle, signatory ledger, stores, access links."""

from .access_links import AccessLinkService, SigningView, resolve_for_signing, resolve_link
from .sqlite_store import SQLiteStore
from .state_machine import (
    FORM_INSTANCE_MACHINE,
    AlreadySignedError,
    InstanceLockedError,
    InstanceNotFoundError,
    InstanceStateError,
    InstanceVoidedError,
    InvalidTransitionError,
    SignatoryNotFoundError,
    derive_status,
    quorum_met,
)
from .store import ConcurrentModificationError, InMemoryStore, InstanceStore
from .workflow import DataValidationError, FormInstanceService, InstanceStatus

__all__ = [
    "FORM_INSTANCE_MACHINE",
    "derive_status",
    "quorum_met",
    "InstanceStateError",
    "InstanceLockedError",
    "InstanceVoidedError",
    "InvalidTransitionError",
    "InstanceNotFoundError",
    "SignatoryNotFoundError",
    "AlreadySignedError",
    "ConcurrentModificationError",
    "DataValidationError",
    "InstanceStore",
    "InMemoryStore",
    "SQLiteStore",
    "FormInstanceService",
    "InstanceStatus",
    "AccessLinkService",
    "SigningView",
    "resolve_for_signing",
    "resolve_link",
]
