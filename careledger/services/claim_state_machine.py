"""
Claim Status State Machine.

Provides:
- Valid status transitions
- Transition validation (status, role and reason guards)
- Status workflow helpers

Source: HMO claim adjudication workflow
Verified: 2026-10-18

State Diagram:
    SUBMITTED -> UNDER_REVIEW | APPROVED | REJECTED | PARTIALLY_APPROVED | CANCELLED
    UNDER_REVIEW -> APPROVED | REJECTED | PARTIALLY_APPROVED | CANCELLED
    APPROVED -> PAID | APPEALED
    REJECTED -> APPEALED
    PARTIALLY_APPROVED -> APPEALED
    APPEALED -> APPROVED | REJECTED | PARTIALLY_APPROVED
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from careledger.core.enums import ClaimStatus, UserRole
from careledger.models.base import utc_now
from careledger.utils.errors import InvalidClaimState, PermissionDenied, ValidationError
from careledger.utils.logging import get_logger

logger = get_logger(__name__)


class TransitionEvent(str, Enum):
    """Events that trigger state transitions."""

    SUBMIT = "submit"  # creation, no source status
    ASSIGN = "assign"
    APPROVE = "approve"
    REJECT = "reject"
    PARTIALLY_APPROVE = "partially_approve"
    PAY = "pay"
    APPEAL = "appeal"
    APPEAL_APPROVED = "appeal_approved"
    APPEAL_REJECTED = "appeal_rejected"
    CANCEL = "cancel"


REVIEWER_ROLES = frozenset({UserRole.SUPER_ADMIN})
CLAIMANT_ROLES = frozenset({UserRole.PROVIDER, UserRole.VENDOR, UserRole.PATIENT})


@dataclass
class Transition:
    """Represents a valid state transition."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    event: TransitionEvent
    allowed_roles: frozenset[UserRole] = REVIEWER_ROLES
    requires_reason: bool = False


@dataclass
class TransitionContext:
    """Context for a transition attempt."""

    claim_id: UUID
    current_status: ClaimStatus
    event: TransitionEvent
    actor_role: Optional[UserRole] = None  # None when the system acts
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class TransitionResult:
    """Result of a transition attempt."""

    success: bool
    from_status: ClaimStatus
    to_status: Optional[ClaimStatus] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    transition: Optional[Transition] = None


# =============================================================================
# Valid Transitions Definition
# =============================================================================


_DECIDABLE = (ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW, ClaimStatus.APPEALED)
_APPEALABLE = (ClaimStatus.APPROVED, ClaimStatus.REJECTED, ClaimStatus.PARTIALLY_APPROVED)
_CANCELLABLE = (ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW)


VALID_TRANSITIONS: list[Transition] = [
    # From SUBMITTED
    Transition(
        from_status=ClaimStatus.SUBMITTED,
        to_status=ClaimStatus.UNDER_REVIEW,
        event=TransitionEvent.ASSIGN,
    ),
    # Decisions from SUBMITTED / UNDER_REVIEW / APPEALED
    *[
        Transition(
            from_status=status,
            to_status=ClaimStatus.APPROVED,
            event=TransitionEvent.APPROVE,
        )
        for status in _DECIDABLE
    ],
    *[
        Transition(
            from_status=status,
            to_status=ClaimStatus.REJECTED,
            event=TransitionEvent.REJECT,
            requires_reason=True,
        )
        for status in _DECIDABLE
    ],
    *[
        Transition(
            from_status=status,
            to_status=ClaimStatus.PARTIALLY_APPROVED,
            event=TransitionEvent.PARTIALLY_APPROVE,
        )
        for status in _DECIDABLE
    ],
    # From APPROVED
    Transition(
        from_status=ClaimStatus.APPROVED,
        to_status=ClaimStatus.PAID,
        event=TransitionEvent.PAY,
    ),
    # Appeals
    *[
        Transition(
            from_status=status,
            to_status=ClaimStatus.APPEALED,
            event=TransitionEvent.APPEAL,
            allowed_roles=CLAIMANT_ROLES,
            requires_reason=True,
        )
        for status in _APPEALABLE
    ],
    Transition(
        from_status=ClaimStatus.APPEALED,
        to_status=ClaimStatus.APPROVED,
        event=TransitionEvent.APPEAL_APPROVED,
    ),
    Transition(
        from_status=ClaimStatus.APPEALED,
        to_status=ClaimStatus.REJECTED,
        event=TransitionEvent.APPEAL_REJECTED,
    ),
    # Withdrawal before a decision
    *[
        Transition(
            from_status=status,
            to_status=ClaimStatus.CANCELLED,
            event=TransitionEvent.CANCEL,
            allowed_roles=CLAIMANT_ROLES | REVIEWER_ROLES,
        )
        for status in _CANCELLABLE
    ],
]


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """
    State machine for claim status transitions.

    Any (status, event) pair missing from VALID_TRANSITIONS is rejected.
    """

    def __init__(self, transitions: Optional[list[Transition]] = None):
        self._transitions: dict[tuple[ClaimStatus, TransitionEvent], Transition] = {}
        self._from_status_map: dict[ClaimStatus, list[Transition]] = {}

        self._build_transition_maps(transitions or VALID_TRANSITIONS)

    def _build_transition_maps(self, transitions: list[Transition]) -> None:
        """Build lookup maps for transitions."""
        for transition in transitions:
            key = (transition.from_status, transition.event)
            self._transitions[key] = transition
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    def get_valid_transitions(self, status: ClaimStatus) -> list[Transition]:
        """Get all valid transitions from a given status."""
        return self._from_status_map.get(status, [])

    def get_valid_events(self, status: ClaimStatus) -> list[TransitionEvent]:
        """Get all valid events for a given status."""
        return [t.event for t in self.get_valid_transitions(status)]

    def get_next_statuses(self, status: ClaimStatus) -> list[ClaimStatus]:
        """Get all possible next statuses from current status."""
        return [t.to_status for t in self.get_valid_transitions(status)]

    def can_transition(self, from_status: ClaimStatus, to_status: ClaimStatus) -> bool:
        """Check if transition from one status to another is valid."""
        return to_status in self.get_next_statuses(from_status)

    def get_transition(
        self,
        from_status: ClaimStatus,
        event: TransitionEvent,
    ) -> Optional[Transition]:
        """Get transition for a status and event combination."""
        return self._transitions.get((from_status, event))

    def validate_transition(self, context: TransitionContext) -> TransitionResult:
        """
        Validate a transition attempt.

        Args:
            context: Transition context with all details

        Returns:
            TransitionResult indicating success/failure
        """
        transition = self.get_transition(context.current_status, context.event)

        if not transition:
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error=f"Cannot {context.event.value} a claim in {context.current_status.value} status",
                error_kind=InvalidClaimState.error_kind,
            )

        if context.actor_role is not None and context.actor_role not in transition.allowed_roles:
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error=f"Role {context.actor_role.value} may not {context.event.value} claims",
                error_kind=PermissionDenied.error_kind,
            )

        if transition.requires_reason and not (context.reason and context.reason.strip()):
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error="Reason is required for this transition",
                error_kind=ValidationError.error_kind,
            )

        return TransitionResult(
            success=True,
            from_status=context.current_status,
            to_status=transition.to_status,
            transition=transition,
        )

    def require_transition(self, context: TransitionContext) -> Transition:
        """
        Validate a transition and raise the matching domain error on failure.

        Raises:
            InvalidClaimState: Pair not in the transition table
            PermissionDenied: Actor role not allowed
            ValidationError: Required reason missing
        """
        result = self.validate_transition(context)
        if result.success and result.transition is not None:
            return result.transition

        logger.warning(f"Transition rejected for claim {context.claim_id}: {result.error}")
        if result.error_kind == PermissionDenied.error_kind:
            raise PermissionDenied(result.error)
        if result.error_kind == ValidationError.error_kind:
            raise ValidationError(result.error)
        raise InvalidClaimState(result.error)


# =============================================================================
# Status Helpers
# =============================================================================


def is_terminal_status(status: ClaimStatus) -> bool:
    """Check if status has no outgoing transitions."""
    return not get_claim_state_machine().get_valid_transitions(status)


def is_pending_status(status: ClaimStatus) -> bool:
    """Check if claim still awaits a decision."""
    return status in _DECIDABLE


def is_editable_status(status: ClaimStatus) -> bool:
    """Check if the claimant may still amend billing, documents or notes."""
    return status in _CANCELLABLE


def is_decided_status(status: ClaimStatus) -> bool:
    """Check if claim carries an adjudication decision."""
    return status in (
        ClaimStatus.APPROVED,
        ClaimStatus.REJECTED,
        ClaimStatus.PARTIALLY_APPROVED,
        ClaimStatus.PAID,
    )


def get_status_display_name(status: ClaimStatus) -> str:
    """Get human-readable status name."""
    return status.value.replace("_", " ").title()


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
