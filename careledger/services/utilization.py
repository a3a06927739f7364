"""
Enrollment Utilization Tracker.

Provides:
- Limits snapshot from the plan at enrollment time
- The single writer of enrollment utilization counters
- Cancellation / renewal / coverage predicates

Source: HMO enrollment limits and utilization methods
Verified: 2026-10-18
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from careledger.api.config import settings
from careledger.core.enums import EnrollmentStatus, ServiceType
from careledger.models.claim import Claim
from careledger.models.enrollment import Enrollment
from careledger.models.plan import Plan
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, add, clamp_non_negative, subtract, to_amount

logger = get_logger(__name__)


APPOINTMENT_SERVICES = frozenset({ServiceType.OUTPATIENT, ServiceType.SPECIALIST_CONSULTATION})
PRESCRIPTION_SERVICES = frozenset({ServiceType.PRESCRIPTION})

CANCELLABLE_STATUSES = frozenset(
    {EnrollmentStatus.ACTIVE, EnrollmentStatus.PENDING, EnrollmentStatus.SUSPENDED}
)


class ClaimOutcome(str, Enum):
    """Claim events that change enrollment utilization."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REVERSED = "reversed"
    AMENDED = "amended"


@dataclass
class UtilizationContribution:
    """Amounts an approved claim adds to the enrollment."""

    deductible: Decimal = ZERO
    out_of_pocket: Decimal = ZERO
    benefit: Decimal = ZERO


# =============================================================================
# Limits
# =============================================================================


def initialize_limits(enrollment: Enrollment, plan: Plan) -> None:
    """
    Snapshot plan limits into the enrollment.

    Later plan edits do not change the terms of an existing enrollment.
    """
    pricing = plan.pricing or {}
    type_key = enrollment.enrollment_type.value

    enrollment.deductible = to_amount((pricing.get("deductible") or {}).get(type_key))
    enrollment.max_out_of_pocket = to_amount((pricing.get("max_out_of_pocket") or {}).get(type_key))
    enrollment.annual_maximum = plan.annual_maximum
    enrollment.remaining_annual = plan.annual_maximum
    enrollment.lifetime_maximum = plan.lifetime_maximum
    enrollment.remaining_lifetime = plan.lifetime_maximum

    enrollment.claims_submitted = 0
    enrollment.claims_pending = 0
    enrollment.claims_approved = 0
    enrollment.claims_rejected = 0
    enrollment.deductible_met = ZERO
    enrollment.out_of_pocket_spent = ZERO
    enrollment.total_claims_amount = ZERO
    enrollment.total_approved_amount = ZERO
    enrollment.appointments_used = 0
    enrollment.prescriptions_used = 0


def remaining_deductible(enrollment: Enrollment) -> Decimal:
    return clamp_non_negative(subtract(enrollment.deductible, enrollment.deductible_met))


def remaining_out_of_pocket(enrollment: Enrollment) -> Optional[Decimal]:
    """Room left under the out-of-pocket maximum, None when no maximum is set."""
    if to_amount(enrollment.max_out_of_pocket) <= ZERO:
        return None
    return clamp_non_negative(subtract(enrollment.max_out_of_pocket, enrollment.out_of_pocket_spent))


def remaining_benefit(enrollment: Enrollment) -> Optional[Decimal]:
    """Smallest of the remaining annual and lifetime maxima, None when unlimited."""
    caps = [
        to_amount(cap)
        for cap in (enrollment.remaining_annual, enrollment.remaining_lifetime)
        if cap is not None
    ]
    if not caps:
        return None
    return clamp_non_negative(min(caps))


# =============================================================================
# Outcome Recording
# =============================================================================


def _decrement_pending(enrollment: Enrollment) -> None:
    enrollment.claims_pending = max(0, (enrollment.claims_pending or 0) - 1)


def _reduce_cap(value: Optional[Decimal], amount: Decimal) -> Optional[Decimal]:
    if value is None:
        return None
    return clamp_non_negative(subtract(value, amount))


def _restore_cap(value: Optional[Decimal], amount: Decimal, ceiling: Optional[Decimal]) -> Optional[Decimal]:
    if value is None:
        return None
    restored = add(value, amount)
    if ceiling is not None and restored > to_amount(ceiling):
        return to_amount(ceiling)
    return restored


def record_claim_outcome(
    enrollment: Enrollment,
    outcome: ClaimOutcome,
    claim: Claim,
    contribution: Optional[UtilizationContribution] = None,
    decided_before: bool = False,
    previous_billed: Optional[Decimal] = None,
) -> None:
    """
    Apply a claim event to enrollment utilization.

    This is the only function that writes utilization columns.
    ``claims_pending`` is clamped at zero whatever order outcomes arrive in.
    Approved contributions are mirrored onto the claim so a later reversal
    subtracts exactly what was added. ``decided_before`` marks a decision on
    an appealed claim, which left the pending count at its first decision.
    ``previous_billed`` is the billed amount an amendment replaced.
    """
    if outcome == ClaimOutcome.SUBMITTED:
        enrollment.claims_submitted = (enrollment.claims_submitted or 0) + 1
        enrollment.claims_pending = (enrollment.claims_pending or 0) + 1
        enrollment.total_claims_amount = add(enrollment.total_claims_amount, claim.total_billed)
        if claim.service_type in APPOINTMENT_SERVICES:
            enrollment.appointments_used = (enrollment.appointments_used or 0) + 1
        elif claim.service_type in PRESCRIPTION_SERVICES:
            enrollment.prescriptions_used = (enrollment.prescriptions_used or 0) + 1

    elif outcome in (ClaimOutcome.APPROVED, ClaimOutcome.PARTIALLY_APPROVED):
        contribution = contribution or UtilizationContribution()
        enrollment.claims_approved = (enrollment.claims_approved or 0) + 1
        if not decided_before:
            _decrement_pending(enrollment)

        enrollment.deductible_met = add(enrollment.deductible_met, contribution.deductible)
        enrollment.out_of_pocket_spent = add(
            enrollment.out_of_pocket_spent, contribution.out_of_pocket
        )
        enrollment.total_approved_amount = add(enrollment.total_approved_amount, contribution.benefit)
        enrollment.remaining_annual = _reduce_cap(enrollment.remaining_annual, contribution.benefit)
        enrollment.remaining_lifetime = _reduce_cap(
            enrollment.remaining_lifetime, contribution.benefit
        )

        claim.utilization_applied = True
        claim.applied_deductible = contribution.deductible
        claim.applied_out_of_pocket = contribution.out_of_pocket
        claim.applied_benefit = contribution.benefit

    elif outcome == ClaimOutcome.REJECTED:
        enrollment.claims_rejected = (enrollment.claims_rejected or 0) + 1
        if not decided_before:
            _decrement_pending(enrollment)

    elif outcome == ClaimOutcome.CANCELLED:
        _decrement_pending(enrollment)

    elif outcome == ClaimOutcome.AMENDED:
        enrollment.total_claims_amount = clamp_non_negative(
            add(subtract(enrollment.total_claims_amount, previous_billed), claim.total_billed)
        )

    elif outcome == ClaimOutcome.REVERSED:
        if not claim.utilization_applied:
            return
        enrollment.claims_approved = max(0, (enrollment.claims_approved or 0) - 1)
        enrollment.deductible_met = clamp_non_negative(
            subtract(enrollment.deductible_met, claim.applied_deductible)
        )
        enrollment.out_of_pocket_spent = clamp_non_negative(
            subtract(enrollment.out_of_pocket_spent, claim.applied_out_of_pocket)
        )
        enrollment.total_approved_amount = clamp_non_negative(
            subtract(enrollment.total_approved_amount, claim.applied_benefit)
        )
        enrollment.remaining_annual = _restore_cap(
            enrollment.remaining_annual, claim.applied_benefit, enrollment.annual_maximum
        )
        enrollment.remaining_lifetime = _restore_cap(
            enrollment.remaining_lifetime, claim.applied_benefit, enrollment.lifetime_maximum
        )

        claim.utilization_applied = False
        claim.applied_deductible = ZERO
        claim.applied_out_of_pocket = ZERO
        claim.applied_benefit = ZERO

    logger.debug(
        f"Enrollment {enrollment.enrollment_number} utilization updated for "
        f"claim {claim.claim_number}: {outcome.value}"
    )


# =============================================================================
# Predicates
# =============================================================================


def days_until_expiry(enrollment: Enrollment, today: date) -> int:
    return (enrollment.coverage_end_date - today).days


def can_be_cancelled(enrollment: Enrollment) -> bool:
    """Cancellable while active, pending or suspended."""
    return enrollment.status in CANCELLABLE_STATUSES


def can_be_renewed(enrollment: Enrollment, plan: Plan, today: date) -> bool:
    """
    Renewable while active, within the renewal window before coverage end,
    and while the plan is still open for enrollment.
    """
    if enrollment.status != EnrollmentStatus.ACTIVE:
        return False
    remaining = days_until_expiry(enrollment, today)
    if remaining < 0 or remaining > settings.CARELEDGER_RENEWAL_WINDOW_DAYS:
        return False
    return plan.is_open_for_enrollment(today)


def is_covered_on(enrollment: Enrollment, service_date: date) -> bool:
    """Active and the date falls inside the coverage window."""
    return (
        enrollment.status == EnrollmentStatus.ACTIVE
        and enrollment.coverage_start_date <= service_date <= enrollment.coverage_end_date
    )
