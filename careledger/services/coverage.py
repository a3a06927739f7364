"""
Coverage Calculator.

Provides:
- Eligible amount after the plan's per-service limit
- Covered amount (percentage of eligible minus copayment)
- Patient responsibility split into copayment, deductible and coinsurance
- Out-of-pocket soft cap applied at approval time

Source: HMO claim coverage computation and plan coverage rules
Verified: 2026-10-18

Invariant: covered_amount + patient_total == total_billed.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from careledger.core.enums import PER_EVENT_PERIODS, ServiceType
from careledger.schemas.plan import CoverageRule
from careledger.utils.errors import ServiceNotCovered
from careledger.utils.money import (
    ZERO,
    add,
    clamp_non_negative,
    minimum,
    percentage_of,
    subtract,
    to_amount,
)


@dataclass
class CoverageBreakdown:
    """Result of a coverage computation."""

    total_billed: Decimal
    eligible_amount: Decimal
    coverage_percentage: Decimal
    covered_amount: Decimal
    copayment: Decimal
    deductible: Decimal
    coinsurance: Decimal

    @property
    def patient_total(self) -> Decimal:
        return add(self.copayment, self.deductible, self.coinsurance)


def get_coverage_rule(
    coverage: Mapping[str, Any],
    service_type: ServiceType,
) -> CoverageRule:
    """
    Resolve the plan rule for a service type.

    A missing entry is treated the same as ``covered: false``.

    Raises:
        ServiceNotCovered: If the plan does not cover the service
    """
    raw = coverage.get(service_type.value) if coverage else None
    if raw is None:
        raise ServiceNotCovered(f"Plan has no coverage for {service_type.value}")

    rule = raw if isinstance(raw, CoverageRule) else CoverageRule.model_validate(raw)
    if not rule.covered:
        raise ServiceNotCovered(f"{service_type.value} is not covered by this plan")
    return rule


def eligible_amount(
    total_billed: Decimal,
    rule: CoverageRule,
    period_used: Decimal = ZERO,
) -> Decimal:
    """
    Cap the billed amount by the rule's limit.

    Per-event limits (visit, procedure, ...) cap each claim at the limit
    amount. Month, year and lifetime limits cap at what is left of the limit
    after ``period_used``.
    """
    billed = to_amount(total_billed)
    if rule.limit is None or rule.limit.amount <= 0:
        return billed

    limit_amount = to_amount(rule.limit.amount)
    if rule.limit.period in PER_EVENT_PERIODS:
        return minimum(billed, limit_amount)
    return minimum(billed, clamp_non_negative(subtract(limit_amount, period_used)))


def calculate_coverage(
    total_billed: Decimal,
    rule: CoverageRule,
    *,
    remaining_deductible: Decimal = ZERO,
    remaining_annual: Optional[Decimal] = None,
    period_used: Decimal = ZERO,
    out_of_pocket_room: Optional[Decimal] = None,
) -> CoverageBreakdown:
    """
    Compute the plan and patient shares of a claim.

    Args:
        total_billed: Amount billed by the claimant
        rule: Plan coverage rule for the service type
        remaining_deductible: Deductible the member has not met yet
        remaining_annual: Annual benefit still available, None for unlimited
        period_used: Amount already consumed under a month/year/lifetime limit
        out_of_pocket_room: Out-of-pocket spend left before the soft cap,
            None to skip the cap (submission estimates)

    Returns:
        CoverageBreakdown with covered + patient shares summing to total_billed
    """
    billed = to_amount(total_billed)
    percentage = Decimal(rule.coverage_percentage)
    copay_rate = to_amount(rule.copayment)

    eligible = eligible_amount(billed, rule, period_used)
    covered = clamp_non_negative(subtract(percentage_of(eligible, percentage), copay_rate))
    if remaining_annual is not None:
        covered = minimum(covered, clamp_non_negative(remaining_annual))

    patient_total = subtract(billed, covered)
    copayment = minimum(copay_rate, patient_total)
    remainder = subtract(patient_total, copayment)
    deductible = minimum(clamp_non_negative(remaining_deductible), remainder)
    coinsurance = subtract(remainder, deductible)

    if out_of_pocket_room is not None:
        room = clamp_non_negative(out_of_pocket_room)
        excess = subtract(patient_total, room)
        if excess > ZERO:
            covered = add(covered, excess)
            # Waive coinsurance first, then deductible, then copayment
            for_coinsurance = minimum(coinsurance, excess)
            coinsurance = subtract(coinsurance, for_coinsurance)
            excess = subtract(excess, for_coinsurance)
            for_deductible = minimum(deductible, excess)
            deductible = subtract(deductible, for_deductible)
            excess = subtract(excess, for_deductible)
            copayment = subtract(copayment, minimum(copayment, excess))

    return CoverageBreakdown(
        total_billed=billed,
        eligible_amount=eligible,
        coverage_percentage=percentage,
        covered_amount=covered,
        copayment=copayment,
        deductible=deductible,
        coinsurance=coinsurance,
    )
