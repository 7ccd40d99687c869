"""
Form instance state machine.

States: draft, ready_to_sign, locked, completed, voided. The transition
table is declared as data (``FORM_INSTANCE_MACHINE``); ``draft`` and
``ready_to_sign`` are not connected by an edge but derived on read from the
instance data. ``voided`` is terminal.

This module is pure: it validates transitions and computes the next
instance record. Persistence and atomicity live in the workflow service.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from formwright.core import ir
from formwright.core.errors import FormwrightError
from formwright.core.strings import is_blank

logger = logging.getLogger(__name__)

Status = ir.FormInstanceStatus


# =============================================================================
# Exceptions
# =============================================================================


class InstanceStateError(FormwrightError):
    """Base exception for form instance lifecycle violations."""

    def __init__(
        self,
        message: str,
        instance_id: str | None = None,
        status: Status | None = None,
    ):
        self.instance_id = instance_id
        self.status = status
        super().__init__(message)


class InstanceLockedError(InstanceStateError):
    """Raised when data is edited while the instance is locked or completed."""

    def __init__(self, instance_id: str, status: Status):
        super().__init__(
            f"Form instance {instance_id} is {status.value} and can no longer be edited",
            instance_id=instance_id,
            status=status,
        )


class InstanceVoidedError(InstanceStateError):
    """Raised for any operation on a voided instance."""

    def __init__(self, instance_id: str):
        super().__init__(
            f"Form instance {instance_id} has been voided",
            instance_id=instance_id,
            status=Status.VOIDED,
        )


class InvalidTransitionError(InstanceStateError):
    """Raised when a transition is not allowed from the current state."""

    def __init__(
        self,
        instance_id: str,
        action: str,
        from_state: Status,
        message: str | None = None,
    ):
        self.action = action
        self.from_state = from_state
        super().__init__(
            message
            or f"Cannot {action} form instance {instance_id} from state '{from_state.value}'",
            instance_id=instance_id,
            status=from_state,
        )


class InstanceNotFoundError(InstanceStateError):
    """Raised when a form instance id does not exist."""

    def __init__(self, instance_id: str):
        super().__init__(f"Form instance {instance_id} not found", instance_id=instance_id)


class SignatoryNotFoundError(InstanceStateError):
    """Raised when a signatory id does not exist."""

    def __init__(self, signatory_id: str):
        self.signatory_id = signatory_id
        super().__init__(f"Signatory {signatory_id} not found")


class AlreadySignedError(InstanceStateError):
    """Raised when a signatory that already signed tries to sign again."""

    def __init__(self, signatory_id: str, instance_id: str | None = None):
        self.signatory_id = signatory_id
        super().__init__(
            f"Signatory {signatory_id} has already signed",
            instance_id=instance_id,
        )


# =============================================================================
# Transition table
# =============================================================================


class Action(str, Enum):
    """Stored transitions of a form instance."""

    LOCK = "lock"
    COMPLETE = "complete"
    UNLOCK = "unlock"
    VOID = "void"


@dataclass(frozen=True)
class Transition:
    action: Action
    from_states: frozenset[Status]
    to_state: Status


@dataclass(frozen=True)
class StateMachine:
    """Transition table keyed by action."""

    transitions: tuple[Transition, ...]
    terminal_states: frozenset[Status] = frozenset()

    def get(self, action: Action) -> Transition:
        for transition in self.transitions:
            if transition.action == action:
                return transition
        raise KeyError(action)

    def allowed_actions(self, status: Status) -> list[Action]:
        return [t.action for t in self.transitions if status in t.from_states]

    def can(self, action: Action, status: Status) -> bool:
        return status in self.get(action).from_states


FORM_INSTANCE_MACHINE = StateMachine(
    transitions=(
        Transition(
            Action.LOCK,
            frozenset({Status.DRAFT, Status.READY_TO_SIGN}),
            Status.LOCKED,
        ),
        Transition(Action.COMPLETE, frozenset({Status.LOCKED}), Status.COMPLETED),
        Transition(Action.UNLOCK, frozenset({Status.LOCKED, Status.COMPLETED}), Status.DRAFT),
        Transition(
            Action.VOID,
            frozenset({Status.DRAFT, Status.READY_TO_SIGN, Status.LOCKED, Status.COMPLETED}),
            Status.VOIDED,
        ),
    ),
    terminal_states=frozenset({Status.VOIDED}),
)


# =============================================================================
# Guards
# =============================================================================


def ensure_not_voided(instance: ir.FormInstance) -> None:
    if instance.is_voided:
        raise InstanceVoidedError(instance.id)


def ensure_editable(instance: ir.FormInstance) -> None:
    """
    Data may only change while the instance is draft or ready_to_sign.

    Raises:
        InstanceVoidedError: If the instance is voided
        InstanceLockedError: If the instance is locked or completed
    """
    ensure_not_voided(instance)
    if not instance.is_editable:
        raise InstanceLockedError(instance.id, instance.status)


def check_transition(instance: ir.FormInstance, action: Action) -> Transition:
    """
    Validate that ``action`` may fire for the instance's current state.

    Voided instances always raise ``InstanceVoidedError`` so callers can
    tell them apart from other invalid transitions.
    """
    ensure_not_voided(instance)
    transition = FORM_INSTANCE_MACHINE.get(action)
    if instance.status not in transition.from_states:
        raise InvalidTransitionError(instance.id, action.value, instance.status)
    return transition


def apply_transition(
    instance: ir.FormInstance,
    action: Action,
    now: datetime,
    *,
    actor: str | None = None,
    reason: str | None = None,
) -> ir.FormInstance:
    """Return the instance after ``action``, with its timestamps stamped."""
    transition = check_transition(instance, action)
    update: dict[str, Any] = {"status": transition.to_state, "updated_at": now}

    if action == Action.LOCK:
        update["locked_at"] = now
    elif action == Action.COMPLETE:
        update["completed_at"] = now
    elif action == Action.UNLOCK:
        update.update(locked_at=None, completed_at=None, unlocked_at=now, unlocked_by=actor)
    elif action == Action.VOID:
        update.update(voided_at=now, voided_by=actor, voided_reason=reason)

    return instance.model_copy(update=update)


# =============================================================================
# Derived state
# =============================================================================


def derive_status(
    instance: ir.FormInstance,
    required_field_ids: Iterable[str],
) -> Status:
    """
    Status as seen by readers.

    While the stored status is draft or ready_to_sign, it is recomputed from
    the data: ready_to_sign once every required non-signature field has a
    non-empty value. Other states are returned unchanged.
    """
    if not instance.is_editable:
        return instance.status
    if missing_fields(instance.data, required_field_ids):
        return Status.DRAFT
    return Status.READY_TO_SIGN


def missing_fields(data: Mapping[str, Any], required_field_ids: Iterable[str]) -> list[str]:
    return [field_id for field_id in required_field_ids if is_blank(data.get(field_id))]


def quorum_met(signing_mode: ir.SigningMode, signatories: Iterable[ir.Signatory]) -> bool:
    """
    Whether enough signatories have signed to complete the instance.

    ``all`` needs at least one signatory and every one of them signed;
    ``any`` needs at least one signature.
    """
    signed = [signatory.has_signed for signatory in signatories]
    if signing_mode == ir.SigningMode.ANY:
        return any(signed)
    return bool(signed) and all(signed)
