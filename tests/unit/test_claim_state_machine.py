"""
Unit Tests for the Claim State Machine.

Tests for:
- Transition table coverage
- Role and reason guards
- Status helpers
"""

from uuid import uuid4

import pytest

from careledger.core.enums import ClaimStatus, UserRole
from careledger.services.claim_state_machine import (
    VALID_TRANSITIONS,
    ClaimStateMachine,
    Transition,
    TransitionContext,
    TransitionEvent,
    get_claim_state_machine,
    get_status_display_name,
    is_decided_status,
    is_editable_status,
    is_pending_status,
    is_terminal_status,
)
from careledger.utils.errors import InvalidClaimState, PermissionDenied, ValidationError


def context(status, event, role=UserRole.SUPER_ADMIN, reason=None) -> TransitionContext:
    return TransitionContext(
        claim_id=uuid4(),
        current_status=status,
        event=event,
        actor_role=role,
        reason=reason,
    )


@pytest.fixture
def machine() -> ClaimStateMachine:
    return ClaimStateMachine()


@pytest.mark.unit
class TestTransitionTable:
    @pytest.mark.parametrize(
        "status,event,expected",
        [
            (ClaimStatus.SUBMITTED, TransitionEvent.ASSIGN, ClaimStatus.UNDER_REVIEW),
            (ClaimStatus.SUBMITTED, TransitionEvent.APPROVE, ClaimStatus.APPROVED),
            (ClaimStatus.UNDER_REVIEW, TransitionEvent.APPROVE, ClaimStatus.APPROVED),
            (ClaimStatus.APPEALED, TransitionEvent.APPROVE, ClaimStatus.APPROVED),
            (ClaimStatus.UNDER_REVIEW, TransitionEvent.PARTIALLY_APPROVE, ClaimStatus.PARTIALLY_APPROVED),
            (ClaimStatus.APPROVED, TransitionEvent.PAY, ClaimStatus.PAID),
            (ClaimStatus.APPEALED, TransitionEvent.APPEAL_APPROVED, ClaimStatus.APPROVED),
            (ClaimStatus.APPEALED, TransitionEvent.APPEAL_REJECTED, ClaimStatus.REJECTED),
        ],
    )
    def test_valid_transitions(self, machine, status, event, expected):
        result = machine.validate_transition(context(status, event))
        assert result.success
        assert result.to_status == expected

    @pytest.mark.parametrize(
        "status,event",
        [
            (ClaimStatus.APPROVED, TransitionEvent.APPROVE),
            (ClaimStatus.PAID, TransitionEvent.PAY),
            (ClaimStatus.PAID, TransitionEvent.APPEAL),
            (ClaimStatus.REJECTED, TransitionEvent.PARTIALLY_APPROVE),
            (ClaimStatus.PAID, TransitionEvent.PARTIALLY_APPROVE),
            (ClaimStatus.SUBMITTED, TransitionEvent.PAY),
            (ClaimStatus.UNDER_REVIEW, TransitionEvent.ASSIGN),
            (ClaimStatus.APPROVED, TransitionEvent.CANCEL),
            (ClaimStatus.CANCELLED, TransitionEvent.APPROVE),
        ],
    )
    def test_pairs_outside_table_raise_invalid_state(self, machine, status, event):
        with pytest.raises(InvalidClaimState):
            machine.require_transition(context(status, event, reason="x"))

    def test_table_has_no_duplicate_pairs(self):
        pairs = [(t.from_status, t.event) for t in VALID_TRANSITIONS]
        assert len(pairs) == len(set(pairs))

    def test_submit_is_not_a_table_transition(self, machine):
        for status in ClaimStatus:
            assert machine.get_transition(status, TransitionEvent.SUBMIT) is None


@pytest.mark.unit
class TestGuards:
    def test_reject_requires_reason(self, machine):
        with pytest.raises(ValidationError):
            machine.require_transition(context(ClaimStatus.SUBMITTED, TransitionEvent.REJECT))

    def test_blank_reason_is_missing(self, machine):
        with pytest.raises(ValidationError):
            machine.require_transition(
                context(ClaimStatus.SUBMITTED, TransitionEvent.REJECT, reason="   ")
            )

    def test_reviewer_role_required_for_decisions(self, machine):
        with pytest.raises(PermissionDenied):
            machine.require_transition(
                context(ClaimStatus.SUBMITTED, TransitionEvent.APPROVE, role=UserRole.PROVIDER)
            )

    def test_appeal_is_for_claimants(self, machine):
        with pytest.raises(PermissionDenied):
            machine.require_transition(
                context(ClaimStatus.REJECTED, TransitionEvent.APPEAL, reason="bad call")
            )
        transition = machine.require_transition(
            context(ClaimStatus.REJECTED, TransitionEvent.APPEAL, UserRole.PATIENT, "bad call")
        )
        assert transition.to_status == ClaimStatus.APPEALED

    def test_system_actor_skips_role_check(self, machine):
        transition = machine.require_transition(
            context(ClaimStatus.APPROVED, TransitionEvent.PAY, role=None)
        )
        assert transition.to_status == ClaimStatus.PAID

    def test_returns_matching_table_entry(self, machine):
        transition = machine.require_transition(
            context(ClaimStatus.UNDER_REVIEW, TransitionEvent.APPROVE)
        )
        assert isinstance(transition, Transition)
        assert transition.from_status == ClaimStatus.UNDER_REVIEW
        assert transition.event == TransitionEvent.APPROVE

    def test_state_checked_before_role(self, machine):
        with pytest.raises(InvalidClaimState):
            machine.require_transition(
                context(ClaimStatus.PAID, TransitionEvent.APPROVE, role=UserRole.PATIENT)
            )


@pytest.mark.unit
class TestHelpers:
    def test_terminal_statuses(self):
        assert is_terminal_status(ClaimStatus.PAID)
        assert is_terminal_status(ClaimStatus.CANCELLED)
        assert not is_terminal_status(ClaimStatus.SUBMITTED)
        assert not is_terminal_status(ClaimStatus.APPROVED)

    def test_pending_and_decided(self):
        assert is_pending_status(ClaimStatus.UNDER_REVIEW)
        assert not is_pending_status(ClaimStatus.APPROVED)
        assert is_decided_status(ClaimStatus.PARTIALLY_APPROVED)
        assert not is_decided_status(ClaimStatus.APPEALED)

    def test_editable_statuses(self):
        assert is_editable_status(ClaimStatus.SUBMITTED)
        assert is_editable_status(ClaimStatus.UNDER_REVIEW)
        assert not is_editable_status(ClaimStatus.APPEALED)
        assert not is_editable_status(ClaimStatus.APPROVED)

    def test_display_name(self):
        assert get_status_display_name(ClaimStatus.UNDER_REVIEW) == "Under Review"

    def test_singleton(self):
        assert get_claim_state_machine() is get_claim_state_machine()

    def test_next_statuses_from_approved(self, machine):
        assert set(machine.get_next_statuses(ClaimStatus.APPROVED)) == {
            ClaimStatus.PAID,
            ClaimStatus.APPEALED,
        }
