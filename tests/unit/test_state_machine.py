"""Tests for the form instance state machine."""

from datetime import UTC, datetime

import pytest

from formwright.core import ir
from formwright.runtime.state_machine import (
    FORM_INSTANCE_MACHINE,
    Action,
    InstanceLockedError,
    InstanceVoidedError,
    InvalidTransitionError,
    apply_transition,
    check_transition,
    derive_status,
    ensure_editable,
    missing_fields,
    quorum_met,
)

Status = ir.FormInstanceStatus
NOW = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _instance(status: Status = Status.DRAFT, **kwargs) -> ir.FormInstance:
    return ir.FormInstance(
        id="inst-1", form_id="form-1", campaign_id="camp-1", status=status, **kwargs
    )


def _signatory(signed: bool, index: int = 0) -> ir.Signatory:
    return ir.Signatory(
        id=f"sig-{index}",
        form_instance_id="inst-1",
        access_link_id=f"link-{index}",
        name=f"Signer {index}",
        signed_at=NOW if signed else None,
    )


class TestTransitionTable:
    """Tests for the declared transitions."""

    @pytest.mark.parametrize(
        ("status", "actions"),
        [
            (Status.DRAFT, [Action.LOCK, Action.VOID]),
            (Status.READY_TO_SIGN, [Action.LOCK, Action.VOID]),
            (Status.LOCKED, [Action.COMPLETE, Action.UNLOCK, Action.VOID]),
            (Status.COMPLETED, [Action.UNLOCK, Action.VOID]),
            (Status.VOIDED, []),
        ],
    )
    def test_allowed_actions(self, status: Status, actions: list[Action]) -> None:
        assert FORM_INSTANCE_MACHINE.allowed_actions(status) == actions

    def test_voided_is_terminal(self) -> None:
        assert Status.VOIDED in FORM_INSTANCE_MACHINE.terminal_states
        for action in Action:
            assert not FORM_INSTANCE_MACHINE.can(action, Status.VOIDED)


class TestGuards:
    def test_editable_states(self) -> None:
        ensure_editable(_instance(Status.DRAFT))
        ensure_editable(_instance(Status.READY_TO_SIGN))

    @pytest.mark.parametrize("status", [Status.LOCKED, Status.COMPLETED])
    def test_locked_states(self, status: Status) -> None:
        with pytest.raises(InstanceLockedError) as exc_info:
            ensure_editable(_instance(status))
        assert exc_info.value.status == status

    def test_voided_is_distinct_from_locked(self) -> None:
        with pytest.raises(InstanceVoidedError):
            ensure_editable(_instance(Status.VOIDED))

    def test_invalid_transition(self) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(_instance(Status.DRAFT), Action.COMPLETE)

        assert exc_info.value.action == "complete"
        assert exc_info.value.from_state == Status.DRAFT
        assert "from state 'draft'" in str(exc_info.value)

    def test_voided_transition(self) -> None:
        with pytest.raises(InstanceVoidedError):
            check_transition(_instance(Status.VOIDED), Action.UNLOCK)


class TestApplyTransition:
    """Tests for timestamps stamped by each action."""

    def test_lock(self) -> None:
        locked = apply_transition(_instance(), Action.LOCK, NOW)

        assert locked.status == Status.LOCKED
        assert locked.locked_at == NOW
        assert locked.updated_at == NOW

    def test_complete(self) -> None:
        completed = apply_transition(_instance(Status.LOCKED), Action.COMPLETE, NOW)

        assert completed.status == Status.COMPLETED
        assert completed.completed_at == NOW

    def test_unlock_clears_lock_times(self) -> None:
        instance = _instance(Status.COMPLETED, locked_at=NOW, completed_at=NOW)
        unlocked = apply_transition(instance, Action.UNLOCK, NOW, actor="agent-1")

        assert unlocked.status == Status.DRAFT
        assert unlocked.locked_at is None
        assert unlocked.completed_at is None
        assert unlocked.unlocked_at == NOW
        assert unlocked.unlocked_by == "agent-1"

    def test_void(self) -> None:
        voided = apply_transition(
            _instance(Status.LOCKED), Action.VOID, NOW, actor="agent-1", reason="Withdrawn"
        )

        assert voided.status == Status.VOIDED
        assert voided.voided_at == NOW
        assert voided.voided_by == "agent-1"
        assert voided.voided_reason == "Withdrawn"

    def test_input_unchanged(self) -> None:
        instance = _instance()
        apply_transition(instance, Action.LOCK, NOW)
        assert instance.status == Status.DRAFT


class TestDerivedStatus:
    """Tests for draft/ready_to_sign derivation."""

    def test_missing_required_is_draft(self) -> None:
        instance = _instance(Status.READY_TO_SIGN, data={"name": " "})
        assert derive_status(instance, ["name"]) == Status.DRAFT

    def test_complete_data_is_ready(self) -> None:
        instance = _instance(Status.DRAFT, data={"name": "Jane"})
        assert derive_status(instance, ["name"]) == Status.READY_TO_SIGN

    def test_no_required_fields_is_ready(self) -> None:
        assert derive_status(_instance(), []) == Status.READY_TO_SIGN

    @pytest.mark.parametrize("status", [Status.LOCKED, Status.COMPLETED, Status.VOIDED])
    def test_stored_states_are_kept(self, status: Status) -> None:
        assert derive_status(_instance(status), ["name"]) == status

    def test_missing_fields(self) -> None:
        data = {"a": "x", "b": [], "c": 0}
        assert missing_fields(data, ["a", "b", "c", "d"]) == ["b", "d"]


class TestQuorum:
    def test_all_mode(self) -> None:
        assert not quorum_met(ir.SigningMode.ALL, [])
        assert not quorum_met(ir.SigningMode.ALL, [_signatory(True, 0), _signatory(False, 1)])
        assert quorum_met(ir.SigningMode.ALL, [_signatory(True, 0), _signatory(True, 1)])

    def test_any_mode(self) -> None:
        assert not quorum_met(ir.SigningMode.ANY, [])
        assert not quorum_met(ir.SigningMode.ANY, [_signatory(False, 0)])
        assert quorum_met(ir.SigningMode.ANY, [_signatory(False, 0), _signatory(True, 1)])
