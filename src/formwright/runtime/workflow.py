"""
Form instance lifecycle service and signatory ledger.

``FormInstanceService`` drives the state machine against an instance store.
Every mutating operation runs inside ``store.transaction()`` and saves the
instance with a version compare-and-swap, so two signatories signing at the
same moment cannot both complete the instance, and a signature cannot
interleave with an unlock.

Usage:
    service = FormInstanceService(InMemoryStore())
    instance = service.create(form_id="f1", campaign_id="c1", signing_mode="any")
    signatory = service.add_signatory(instance.id, access_link_id="l1", name="Jane")
    service.record_signature(signatory.id, {"type": "typed", "data": "Jane", "timestamp": "..."})
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from formwright.core import ir
from formwright.core.compiler import required_fields_before_signing
from formwright.core.errors import FormwrightError
from formwright.core.strings import is_blank
from formwright.core.submission import schema_for

from .logging import log_with_context
from .state_machine import (
    Action,
    AlreadySignedError,
    InstanceNotFoundError,
    InvalidTransitionError,
    SignatoryNotFoundError,
    apply_transition,
    derive_status,
    ensure_editable,
    ensure_not_voided,
    missing_fields,
    quorum_met,
)
from .store import InstanceStore

logger = logging.getLogger(__name__)

Status = ir.FormInstanceStatus

_PAST_TENSE = {
    Action.LOCK: "locked",
    Action.COMPLETE: "completed",
    Action.UNLOCK: "unlocked",
    Action.VOID: "voided",
}


def _utcnow() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class DataValidationError(FormwrightError):
    """Raised when data written to an instance fails the form's submission schema."""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid form data for: {fields}")


@dataclass(frozen=True)
class InstanceStatus:
    """
    Read model of an instance's progress.

    ``status`` is the derived status (draft vs ready_to_sign recomputed from
    the data when a form AST is supplied).
    """

    status: Status
    required_fields_complete: bool
    missing_fields: list[str] = field(default_factory=list)
    signatories_signed: int = 0
    total_signatories: int = 0

    @property
    def ready_to_sign(self) -> bool:
        return self.status == Status.READY_TO_SIGN

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "requiredFieldsComplete": self.required_fields_complete,
            "missingFields": self.missing_fields,
            "signatoriesSigned": self.signatories_signed,
            "totalSignatories": self.total_signatories,
            "readyToSign": self.ready_to_sign,
        }


class FormInstanceService:
    """
    Lifecycle operations of form instances.

    Args:
        store: Instance store (in-memory or SQLite)
        clock: Returns the current time; injectable for tests
        default_signing_mode: Signing mode of instances created without one
    """

    def __init__(
        self,
        store: InstanceStore,
        clock: Callable[[], datetime] = _utcnow,
        default_signing_mode: ir.SigningMode = ir.SigningMode.ALL,
    ):
        self.store = store
        self.clock = clock
        self.default_signing_mode = default_signing_mode

    # -- loading ---------------------------------------------------------------

    def get(self, instance_id: str) -> ir.FormInstance:
        instance = self.store.get_instance(instance_id)
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    def _get_signatory(self, signatory_id: str) -> ir.Signatory:
        signatory = self.store.get_signatory(signatory_id)
        if signatory is None:
            raise SignatoryNotFoundError(signatory_id)
        return signatory

    def signatories(self, instance_id: str) -> list[ir.Signatory]:
        return self.store.list_signatories(instance_id)

    # -- lifecycle -------------------------------------------------------------

    def create(
        self,
        form_id: str,
        campaign_id: str,
        signing_mode: ir.SigningMode | str | None = None,
        data: dict[str, Any] | None = None,
        instance_id: str | None = None,
    ) -> ir.FormInstance:
        now = self.clock()
        instance = ir.FormInstance(
            id=instance_id or _new_id(),
            form_id=form_id,
            campaign_id=campaign_id,
            data=dict(data or {}),
            signing_mode=ir.SigningMode(signing_mode or self.default_signing_mode),
            created_at=now,
            updated_at=now,
        )
        self.store.insert_instance(instance)
        log_with_context(
            logger,
            logging.INFO,
            "Form instance created",
            instance_id=instance.id,
            form_id=form_id,
            signing_mode=instance.signing_mode.value,
        )
        return instance

    def update_data(
        self,
        instance_id: str,
        data: dict[str, Any],
        ast: ir.FormAST | None = None,
    ) -> ir.FormInstance:
        """
        Merge ``data`` into the instance (last write wins per key).

        When ``ast`` is given, the written keys are checked against the
        form's submission schema first and stored in normalized form. Blank
        values (None, empty strings or lists) clear a field and are always
        accepted, so a required field can be emptied while the form is a draft.

        Raises:
            InstanceVoidedError: If the instance is voided
            InstanceLockedError: If the instance is locked or completed
            DataValidationError: If a written value fails the schema
        """
        updates = dict(data)
        if ast is not None:
            result = schema_for(ast).validate(updates)
            if not result.is_valid:
                errors = {
                    path: messages
                    for path, messages in result.errors.items()
                    if not is_blank(updates.get(path.split(".")[0]))
                }
                if errors:
                    raise DataValidationError(errors)
            else:
                updates.update(
                    {key: value for key, value in result.normalized_data.items() if key in updates}
                )

        with self.store.transaction():
            instance = self.get(instance_id)
            ensure_editable(instance)
            updated = instance.model_copy(
                update={"data": {**instance.data, **updates}, "updated_at": self.clock()}
            )
            saved = self.store.save_instance(updated, expected_version=instance.version)

        logger.debug("Updated %d field(s) of form instance %s", len(updates), instance_id)
        return saved

    def lock(self, instance_id: str) -> ir.FormInstance:
        with self.store.transaction():
            instance = self.get(instance_id)
            return self._transition(instance, Action.LOCK)

    def complete(self, instance_id: str) -> ir.FormInstance:
        """
        Complete a locked instance.

        Raises:
            InvalidTransitionError: If the instance is not locked or the
                signing-mode quorum is not met
        """
        with self.store.transaction():
            instance = self.get(instance_id)
            if instance.status == Status.LOCKED and not quorum_met(
                instance.signing_mode, self.store.list_signatories(instance_id)
            ):
                raise InvalidTransitionError(
                    instance_id,
                    Action.COMPLETE.value,
                    instance.status,
                    message=f"Cannot complete form instance {instance_id}: signatures missing",
                )
            return self._transition(instance, Action.COMPLETE)

    def void(
        self,
        instance_id: str,
        voided_by: str | None = None,
        reason: str | None = None,
    ) -> ir.FormInstance:
        with self.store.transaction():
            instance = self.get(instance_id)
            return self._transition(instance, Action.VOID, actor=voided_by, reason=reason)

    def unlock(self, instance_id: str, unlocked_by: str | None = None) -> ir.FormInstance:
        """
        Return a locked or completed instance to draft.

        Every signatory's signature is cleared in the same transaction.
        """
        with self.store.transaction():
            instance = self.get(instance_id)
            unlocked = self._transition(instance, Action.UNLOCK, actor=unlocked_by)
            self.clear_all_signatures(instance_id)
            return unlocked

    def sign(
        self,
        instance_id: str,
        signatory_id: str,
        signature_data: ir.SignatureData | dict[str, Any],
    ) -> ir.Signatory:
        """Record a signature, checking that the signatory belongs to the instance."""
        signatory = self._get_signatory(signatory_id)
        if signatory.form_instance_id != instance_id:
            raise SignatoryNotFoundError(signatory_id)
        return self.record_signature(signatory_id, signature_data)

    def status(self, instance_id: str, ast: ir.FormAST | None = None) -> InstanceStatus:
        """
        Progress of an instance.

        Without ``ast`` the required fields are unknown and the stored status
        is reported as is.
        """
        instance = self.get(instance_id)
        signatories = self.store.list_signatories(instance_id)

        required = required_fields_before_signing(ast, instance.data) if ast is not None else []
        missing = missing_fields(instance.data, required)
        status = derive_status(instance, required) if ast is not None else instance.status

        return InstanceStatus(
            status=status,
            required_fields_complete=not missing,
            missing_fields=missing,
            signatories_signed=sum(1 for s in signatories if s.has_signed),
            total_signatories=len(signatories),
        )

    # -- signatory ledger ------------------------------------------------------

    def add_signatory(
        self,
        instance_id: str,
        access_link_id: str,
        name: str,
        email: str | None = None,
    ) -> ir.Signatory:
        with self.store.transaction():
            instance = self.get(instance_id)
            ensure_not_voided(instance)
            signatory = ir.Signatory(
                id=_new_id(),
                form_instance_id=instance_id,
                access_link_id=access_link_id,
                name=name,
                email=email,
                created_at=self.clock(),
            )
            self.store.insert_signatory(signatory)

        log_with_context(
            logger,
            logging.INFO,
            "Signatory added",
            instance_id=instance_id,
            signatory_id=signatory.id,
        )
        return signatory

    def record_signature(
        self,
        signatory_id: str,
        signature_data: ir.SignatureData | dict[str, Any],
    ) -> ir.Signatory:
        """
        Stamp a signature and advance the instance.

        Locks the instance on its first signature and completes it once the
        signing-mode quorum is met, all in one transaction. A locked (or
        completed) instance still accepts signatures from signatories that
        have not signed yet.

        Raises:
            SignatoryNotFoundError: If the signatory does not exist
            InstanceVoidedError: If the instance is voided
            AlreadySignedError: If the signatory has already signed
        """
        signature = (
            signature_data
            if isinstance(signature_data, ir.SignatureData)
            else ir.SignatureData.model_validate(signature_data)
        )

        with self.store.transaction():
            signatory = self._get_signatory(signatory_id)
            instance = self.get(signatory.form_instance_id)
            ensure_not_voided(instance)
            if signatory.has_signed:
                raise AlreadySignedError(signatory_id, instance.id)

            now = self.clock()
            signed = self.store.save_signatory(
                signatory.model_copy(update={"signed_at": now, "signature_data": signature})
            )
            log_with_context(
                logger,
                logging.INFO,
                "Signature recorded",
                instance_id=instance.id,
                signatory_id=signatory_id,
            )

            if instance.is_editable:
                instance = self._transition(instance, Action.LOCK)

            if instance.status == Status.LOCKED and quorum_met(
                instance.signing_mode, self.store.list_signatories(instance.id)
            ):
                self._transition(instance, Action.COMPLETE)

        return signed

    def clear_all_signatures(self, instance_id: str) -> list[ir.Signatory]:
        """Reset every signatory of the instance. Only unlock calls this."""
        cleared = []
        with self.store.transaction():
            for signatory in self.store.list_signatories(instance_id):
                cleared.append(
                    self.store.save_signatory(
                        signatory.model_copy(update={"signed_at": None, "signature_data": None})
                    )
                )
        return cleared

    # -- internals -------------------------------------------------------------

    def _transition(
        self,
        instance: ir.FormInstance,
        action: Action,
        actor: str | None = None,
        reason: str | None = None,
    ) -> ir.FormInstance:
        updated = apply_transition(instance, action, self.clock(), actor=actor, reason=reason)
        saved = self.store.save_instance(updated, expected_version=instance.version)
        log_with_context(
            logger,
            logging.INFO,
            f"Form instance {_PAST_TENSE[action]}",
            instance_id=instance.id,
            from_status=instance.status.value,
            to_status=saved.status.value,
        )
        return saved
