"""
Claims Service for HMO Claim Adjudication.

Provides:
- Claim submission against an active enrollment
- Claimant amendments before review
- Review workflow (assign, approve, reject, partial approval)
- Appeals and appeal review
- Withdrawal of unreviewed claims
- Payment through the settlement orchestrator
- Patient coverage summary for providers

Source: HMO claim and claim-admin controllers
Verified: 2026-10-18

Every command loads the aggregates it mutates with a row lock, validates
all guards before the first write, appends exactly one status-history row
per transition, and flushes. Committing is left to the caller's session
scope, so claim, enrollment, wallet and plan changes commit together.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import extract, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.actor import Actor
from careledger.core.enums import (
    AppealStatus,
    ClaimantType,
    ClaimPaymentMethod,
    ClaimStatus,
    EnrollmentStatus,
    LimitPeriod,
    ServiceType,
    UserRole,
)
from careledger.db.connection import flush_changes
from careledger.models.base import utc_now
from careledger.models.claim import Claim, ClaimStatusHistory
from careledger.models.enrollment import Enrollment
from careledger.models.plan import Plan
from careledger.schemas.plan import CoverageRule
from careledger.services.claim_state_machine import (
    CLAIMANT_ROLES,
    TransitionContext,
    TransitionEvent,
    get_claim_state_machine,
    is_editable_status,
)
from careledger.services.coverage import CoverageBreakdown, calculate_coverage, get_coverage_rule
from careledger.services.numbering import CLAIM_PREFIX, generate_number
from careledger.services.settlement import SettlementResult, SettlementService
from careledger.services.utilization import (
    ClaimOutcome,
    UtilizationContribution,
    is_covered_on,
    record_claim_outcome,
    remaining_benefit,
    remaining_deductible,
    remaining_out_of_pocket,
)
from careledger.services.wallet_ledger import WalletLedger
from careledger.utils.errors import (
    CurrencyMismatch,
    InvalidAmount,
    InvalidClaimState,
    NotFound,
    PermissionDenied,
    ServiceError,
    ValidationError,
)
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, add, minimum, subtract, to_amount

logger = get_logger(__name__)

# Statuses whose approved amount counts against period limits
_CONSUMING_STATUSES = (
    ClaimStatus.APPROVED,
    ClaimStatus.PARTIALLY_APPROVED,
    ClaimStatus.PAID,
)


@dataclass
class ClaimUpdateDTO:
    """Claimant amendments to an unreviewed claim."""

    total_billed: Optional[Decimal] = None
    billing_breakdown: Optional[list[dict[str, Any]]] = None
    documents: Optional[list[str]] = None
    notes: Optional[str] = None


@dataclass
class PatientCoverage:
    """Active enrollment of a patient with its plan and latest claims."""

    enrollment: Enrollment
    plan: Plan
    recent_claims: list[Claim]


class ClaimsService:
    """
    Service for the claim lifecycle.

    Handles:
    - Submission and coverage estimate
    - Adjudication transitions and their utilization side effects
    - Best-effort auto-payment on approval
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.state_machine = get_claim_state_machine()
        self.ledger = WalletLedger(session)
        self.settlement = SettlementService(session, self.ledger)

    # =========================================================================
    # Loading
    # =========================================================================

    async def _load_claim(self, claim_id: UUID, populate_existing: bool = False) -> Claim:
        query = select(Claim).where(Claim.id == claim_id).with_for_update()
        if populate_existing:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        claim = result.scalar_one_or_none()
        if claim is None:
            raise NotFound(f"Claim not found: {claim_id}")
        return claim

    async def _load_enrollment(self, enrollment_id: UUID) -> Enrollment:
        result = await self.session.execute(
            select(Enrollment).where(Enrollment.id == enrollment_id).with_for_update()
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFound(f"Enrollment not found: {enrollment_id}")
        return enrollment

    async def _load_plan(self, plan_id: UUID) -> Plan:
        result = await self.session.execute(select(Plan).where(Plan.id == plan_id))
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFound(f"Plan not found: {plan_id}")
        return plan

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(
        self,
        claim: Claim,
        event: TransitionEvent,
        actor: Optional[Actor],
        reason: Optional[str] = None,
    ) -> None:
        self.state_machine.require_transition(
            TransitionContext(
                claim_id=claim.id,
                current_status=claim.status,
                event=event,
                actor_role=actor.role if actor else None,
                reason=reason,
            )
        )

    def _record_transition(
        self,
        claim: Claim,
        new_status: ClaimStatus,
        event: TransitionEvent,
        actor: Optional[Actor],
        notes: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Set the new status and append its single audit row."""
        previous = claim.status
        claim.status = new_status
        claim.status_history.append(
            ClaimStatusHistory(
                sequence=len(claim.status_history) + 1,
                previous_status=previous,
                new_status=new_status,
                event=event.value,
                changed_by=actor.id if actor else None,
                actor_type=actor.role.value if actor else "system",
                notes=notes,
                reason=reason,
            )
        )
        logger.info(
            f"Claim {claim.claim_number} transitioned: "
            f"{previous.value if previous else 'new'} -> {new_status.value} (event: {event.value})"
        )

    async def _period_used(
        self,
        rule: CoverageRule,
        enrollment: Enrollment,
        service_type: ServiceType,
        service_date: date,
        patient_id: UUID,
        exclude_claim_id: Optional[UUID] = None,
    ) -> Decimal:
        """Approved amount already consumed under a month/year/lifetime limit."""
        if rule.limit is None:
            return ZERO
        period = rule.limit.period
        if period not in (LimitPeriod.MONTH, LimitPeriod.YEAR, LimitPeriod.LIFETIME):
            return ZERO

        query = select(func.coalesce(func.sum(Claim.approved_amount), 0)).where(
            Claim.service_type == service_type,
            Claim.status.in_(_CONSUMING_STATUSES),
        )
        if period == LimitPeriod.LIFETIME:
            query = query.where(Claim.patient_id == patient_id, Claim.plan_id == enrollment.plan_id)
        else:
            query = query.where(Claim.enrollment_id == enrollment.id)
        if period == LimitPeriod.MONTH:
            query = query.where(
                extract("year", Claim.service_date) == service_date.year,
                extract("month", Claim.service_date) == service_date.month,
            )
        if exclude_claim_id is not None:
            query = query.where(Claim.id != exclude_claim_id)

        result = await self.session.execute(query)
        return to_amount(result.scalar_one())

    @staticmethod
    def _apply_breakdown(claim: Claim, breakdown: CoverageBreakdown) -> None:
        claim.coverage_percentage = breakdown.coverage_percentage
        claim.covered_amount = breakdown.covered_amount
        claim.copayment = breakdown.copayment
        claim.deductible_amount = breakdown.deductible
        claim.coinsurance = breakdown.coinsurance
        claim.patient_responsibility = breakdown.patient_total

    @staticmethod
    def _check_visibility(claim: Claim, actor: Actor) -> None:
        if actor.is_admin or actor.id in (claim.claimant_id, claim.patient_id):
            return
        raise PermissionDenied("Not authorized to access this claim")

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit_claim(
        self,
        actor: Actor,
        enrollment_id: UUID,
        patient_id: UUID,
        service_type: ServiceType,
        service_date: date,
        diagnosis: dict[str, Any],
        total_billed: Decimal,
        currency: Optional[str] = None,
        procedure: Optional[dict[str, Any]] = None,
        description: Optional[str] = None,
        discharge_date: Optional[date] = None,
        billing_breakdown: Optional[list[dict[str, Any]]] = None,
        documents: Optional[list[str]] = None,
    ) -> Claim:
        """
        Submit a claim and compute its coverage estimate.

        Raises:
            PermissionDenied: Caller is not a provider, vendor or the patient
            NotFound: Enrollment or plan missing
            ValidationError: Enrollment not active for the patient on the service date
            ServiceNotCovered: Plan does not cover the service type
            InvalidAmount: Billed amount not positive
        """
        if actor.role not in CLAIMANT_ROLES:
            raise PermissionDenied("Only providers, vendors and patients can submit claims")
        if actor.role == UserRole.PATIENT and actor.id != patient_id:
            raise PermissionDenied("Patients can only submit claims for themselves")
        if not diagnosis or not diagnosis.get("code"):
            raise ValidationError("Diagnosis code is required")

        billed = to_amount(total_billed)
        if billed <= ZERO:
            raise InvalidAmount("Total billed must be greater than zero")
        if discharge_date is not None and discharge_date < service_date:
            raise ValidationError("Discharge date cannot be before the service date")

        enrollment = await self._load_enrollment(enrollment_id)
        if enrollment.user_id != patient_id:
            raise ValidationError("Enrollment does not belong to this patient")
        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise ValidationError(
                f"Patient does not have an active enrollment (status: {enrollment.status.value})"
            )
        if not is_covered_on(enrollment, service_date):
            raise ValidationError(
                f"Service date {service_date} is outside the coverage period "
                f"{enrollment.coverage_start_date} - {enrollment.coverage_end_date}"
            )

        plan = await self._load_plan(enrollment.plan_id)
        if currency is not None and currency.upper() != plan.currency:
            raise CurrencyMismatch(f"Plan pays in {plan.currency}, claim billed in {currency.upper()}")

        rule = get_coverage_rule(plan.coverage, service_type)
        breakdown = calculate_coverage(
            billed,
            rule,
            remaining_deductible=remaining_deductible(enrollment),
            remaining_annual=remaining_benefit(enrollment),
            period_used=await self._period_used(
                rule, enrollment, service_type, service_date, patient_id
            ),
        )

        claim = Claim(
            claim_number=await generate_number(self.session, Claim.claim_number, CLAIM_PREFIX),
            enrollment_id=enrollment.id,
            plan_id=plan.id,
            patient_id=patient_id,
            claimant_id=actor.id,
            claimant_type=ClaimantType(actor.role.value),
            service_type=service_type,
            service_date=service_date,
            discharge_date=discharge_date,
            diagnosis=diagnosis,
            procedure=procedure,
            description=description,
            documents=list(documents) if documents else None,
            currency=plan.currency,
            total_billed=billed,
            billing_breakdown=billing_breakdown,
            approved_amount=ZERO,
            rejected_amount=ZERO,
            amount_paid=ZERO,
            utilization_applied=False,
            applied_deductible=ZERO,
            applied_out_of_pocket=ZERO,
            applied_benefit=ZERO,
            appeal_submitted=False,
            status=ClaimStatus.SUBMITTED,
            submitted_at=utc_now(),
            status_history=[],
        )
        self._apply_breakdown(claim, breakdown)
        claim.status_history.append(
            ClaimStatusHistory(
                sequence=1,
                previous_status=None,
                new_status=ClaimStatus.SUBMITTED,
                event=TransitionEvent.SUBMIT.value,
                changed_by=actor.id,
                actor_type=actor.role.value,
                notes="Claim submitted",
            )
        )
        self.session.add(claim)

        record_claim_outcome(enrollment, ClaimOutcome.SUBMITTED, claim)
        await flush_changes(self.session)

        logger.info(
            f"Submitted claim {claim.claim_number} for {billed} {claim.currency} "
            f"({service_type.value}), covered estimate {claim.covered_amount}"
        )
        return claim

    async def update_claim(self, claim_id: UUID, actor: Actor, update_data: ClaimUpdateDTO) -> Claim:
        """
        Amend a claim that has not been decided yet.

        A new billed amount recomputes the coverage estimate and moves the
        enrollment's billed total by the difference. Documents are appended.

        Raises:
            PermissionDenied: Caller is not the claimant
            InvalidClaimState: Claim already decided or withdrawn
            InvalidAmount: Billed amount not positive
        """
        claim = await self._load_claim(claim_id)
        if actor.id != claim.claimant_id:
            raise PermissionDenied("Only the claimant can update this claim")
        if not is_editable_status(claim.status):
            raise InvalidClaimState(
                f"Claim {claim.claim_number} cannot be updated while {claim.status.value}"
            )

        billed = None
        if update_data.total_billed is not None:
            billed = to_amount(update_data.total_billed)
            if billed <= ZERO:
                raise InvalidAmount("Total billed must be greater than zero")

        if billed is not None and billed != to_amount(claim.total_billed):
            enrollment = await self._load_enrollment(claim.enrollment_id)
            plan = await self._load_plan(claim.plan_id)
            rule = get_coverage_rule(plan.coverage, claim.service_type)
            breakdown = calculate_coverage(
                billed,
                rule,
                remaining_deductible=remaining_deductible(enrollment),
                remaining_annual=remaining_benefit(enrollment),
                period_used=await self._period_used(
                    rule,
                    enrollment,
                    claim.service_type,
                    claim.service_date,
                    claim.patient_id,
                    exclude_claim_id=claim.id,
                ),
            )
            previous_billed = claim.total_billed
            claim.total_billed = billed
            self._apply_breakdown(claim, breakdown)
            record_claim_outcome(
                enrollment, ClaimOutcome.AMENDED, claim, previous_billed=previous_billed
            )
            logger.info(
                f"Claim {claim.claim_number} billed amount changed {previous_billed} -> {billed}, "
                f"covered estimate {claim.covered_amount}"
            )

        if update_data.billing_breakdown is not None:
            claim.billing_breakdown = update_data.billing_breakdown
        if update_data.documents:
            # Reassign so the JSON column registers the change
            claim.documents = [*(claim.documents or []), *update_data.documents]
        if update_data.notes:
            claim.notes = update_data.notes

        await flush_changes(self.session)
        return claim

    # =========================================================================
    # Review
    # =========================================================================

    async def assign(self, claim_id: UUID, actor: Actor, reviewer_id: Optional[UUID] = None) -> Claim:
        """Assign a submitted claim to a reviewer."""
        claim = await self._load_claim(claim_id)
        self._require(claim, TransitionEvent.ASSIGN, actor)

        now = utc_now()
        claim.reviewer_id = reviewer_id or actor.id
        claim.assigned_at = now
        claim.review_started_at = now
        self._record_transition(
            claim,
            ClaimStatus.UNDER_REVIEW,
            TransitionEvent.ASSIGN,
            actor,
            notes=f"Assigned to reviewer {claim.reviewer_id}",
        )
        await flush_changes(self.session)
        return claim

    async def _apply_approval(
        self,
        claim: Claim,
        actor: Actor,
        event: TransitionEvent,
        amount: Optional[Decimal],
        notes: Optional[str],
    ) -> None:
        """Recompute coverage, set the approved amount and update utilization."""
        decided_before = claim.status == ClaimStatus.APPEALED
        enrollment = await self._load_enrollment(claim.enrollment_id)
        plan = await self._load_plan(claim.plan_id)
        rule = get_coverage_rule(plan.coverage, claim.service_type)

        if amount is not None:
            approved = to_amount(amount)
            if approved < ZERO or approved > to_amount(claim.total_billed):
                raise ValidationError(
                    f"Approved amount must be between 0 and the billed amount {claim.total_billed}"
                )

        # Take back what an earlier approval of this claim contributed
        record_claim_outcome(enrollment, ClaimOutcome.REVERSED, claim)

        breakdown = calculate_coverage(
            claim.total_billed,
            rule,
            remaining_deductible=remaining_deductible(enrollment),
            remaining_annual=remaining_benefit(enrollment),
            period_used=await self._period_used(
                rule,
                enrollment,
                claim.service_type,
                claim.service_date,
                claim.patient_id,
                exclude_claim_id=claim.id,
            ),
            out_of_pocket_room=remaining_out_of_pocket(enrollment),
        )
        self._apply_breakdown(claim, breakdown)
        claim.approved_amount = to_amount(amount) if amount is not None else breakdown.covered_amount
        claim.rejected_amount = ZERO
        claim.rejection_reason = None

        now = utc_now()
        claim.reviewer_id = claim.reviewer_id or actor.id
        claim.review_completed_at = now
        if notes:
            claim.review_notes = notes
        if decided_before:
            claim.appeal_status = AppealStatus.APPROVED
            claim.appeal_reviewed_at = now
            claim.appeal_review_notes = notes

        self._record_transition(claim, ClaimStatus.APPROVED, event, actor, notes=notes)
        record_claim_outcome(
            enrollment,
            ClaimOutcome.APPROVED,
            claim,
            UtilizationContribution(
                deductible=breakdown.deductible,
                out_of_pocket=breakdown.patient_total,
                benefit=claim.approved_amount,
            ),
            decided_before=decided_before,
        )

    async def approve(
        self,
        claim_id: UUID,
        actor: Actor,
        amount: Optional[Decimal] = None,
        notes: Optional[str] = None,
        auto_pay: Optional[bool] = None,
        payment_method: Optional[ClaimPaymentMethod] = None,
    ) -> Claim:
        """
        Approve a claim. The approved amount defaults to the covered amount.

        With auto-pay the settlement runs in a savepoint; if it fails the
        approval still stands and the claim stays approved and unpaid.
        """
        claim = await self._load_claim(claim_id)
        self._require(claim, TransitionEvent.APPROVE, actor)

        await self._apply_approval(claim, actor, TransitionEvent.APPROVE, amount, notes)
        await flush_changes(self.session)

        if auto_pay is None:
            auto_pay = settings.CARELEDGER_AUTO_PAY_ON_APPROVAL
        if auto_pay:
            claim = await self._auto_pay(claim, actor, payment_method)
        return claim

    async def _auto_pay(
        self,
        claim: Claim,
        actor: Actor,
        payment_method: Optional[ClaimPaymentMethod],
    ) -> Claim:
        # Attributes of the claim are expired once the savepoint rolls back
        claim_id = claim.id
        claim_number = claim.claim_number
        try:
            async with self.session.begin_nested():
                await self.settlement.pay(
                    claim,
                    method=payment_method,
                    actor_id=actor.id,
                    actor_role=actor.role,
                    notes="Automatic payment on approval",
                )
        except (ServiceError, SQLAlchemyError) as e:
            logger.error(
                f"Automatic payment failed for claim {claim_number}, "
                f"claim remains approved: {e}"
            )
            claim = await self._load_claim(claim_id, populate_existing=True)
        return claim

    async def reject(
        self,
        claim_id: UUID,
        actor: Actor,
        reason: Optional[str],
        notes: Optional[str] = None,
    ) -> Claim:
        """
        Reject a claim.

        Raises:
            ValidationError: Reason missing; nothing changes
        """
        claim = await self._load_claim(claim_id)
        self._require(claim, TransitionEvent.REJECT, actor, reason=reason)
        await self._apply_rejection(claim, actor, TransitionEvent.REJECT, reason, notes)
        await flush_changes(self.session)
        return claim

    async def _apply_rejection(
        self,
        claim: Claim,
        actor: Actor,
        event: TransitionEvent,
        reason: Optional[str],
        notes: Optional[str],
    ) -> None:
        decided_before = claim.status == ClaimStatus.APPEALED
        now = utc_now()

        claim.rejection_reason = reason or claim.rejection_reason
        claim.review_completed_at = now
        claim.reviewer_id = claim.reviewer_id or actor.id
        if notes:
            claim.review_notes = notes

        if decided_before:
            # Appeal denied: enrollment utilization stays as it was
            claim.appeal_status = AppealStatus.REJECTED
            claim.appeal_reviewed_at = now
            claim.appeal_review_notes = notes or reason
        else:
            claim.approved_amount = ZERO
            claim.rejected_amount = to_amount(claim.total_billed)
            enrollment = await self._load_enrollment(claim.enrollment_id)
            record_claim_outcome(enrollment, ClaimOutcome.REJECTED, claim)

        self._record_transition(claim, ClaimStatus.REJECTED, event, actor, notes=notes, reason=reason)

    async def partially_approve(
        self,
        claim_id: UUID,
        actor: Actor,
        approved_amount: Optional[Decimal],
        rejected_amount: Optional[Decimal],
        notes: Optional[str] = None,
    ) -> Claim:
        """
        Approve part of a claim and reject the rest.

        Raises:
            ValidationError: An amount is missing, negative, or they exceed the billed amount
            InvalidClaimState: Claim already decided
        """
        if approved_amount is None or rejected_amount is None:
            raise ValidationError("Both approved and rejected amounts are required")
        approved = to_amount(approved_amount)
        rejected = to_amount(rejected_amount)
        if approved < ZERO or rejected < ZERO:
            raise ValidationError("Amounts cannot be negative")

        claim = await self._load_claim(claim_id)
        self._require(claim, TransitionEvent.PARTIALLY_APPROVE, actor)

        billed = to_amount(claim.total_billed)
        if add(approved, rejected) > billed:
            raise ValidationError(
                f"Approved plus rejected amounts exceed the billed amount {billed}"
            )

        decided_before = claim.status == ClaimStatus.APPEALED
        enrollment = await self._load_enrollment(claim.enrollment_id)
        record_claim_outcome(enrollment, ClaimOutcome.REVERSED, claim)

        patient_total = subtract(billed, approved)
        copayment = minimum(claim.copayment, patient_total)
        deductible = minimum(claim.deductible_amount, subtract(patient_total, copayment))

        claim.approved_amount = approved
        claim.rejected_amount = rejected
        claim.covered_amount = approved
        claim.copayment = copayment
        claim.deductible_amount = deductible
        claim.coinsurance = subtract(subtract(patient_total, copayment), deductible)
        claim.patient_responsibility = patient_total

        now = utc_now()
        claim.review_completed_at = now
        claim.reviewer_id = claim.reviewer_id or actor.id
        if notes:
            claim.review_notes = notes
        if decided_before:
            claim.appeal_status = AppealStatus.APPROVED
            claim.appeal_reviewed_at = now
            claim.appeal_review_notes = notes

        self._record_transition(
            claim, ClaimStatus.PARTIALLY_APPROVED, TransitionEvent.PARTIALLY_APPROVE, actor, notes=notes
        )
        record_claim_outcome(
            enrollment, ClaimOutcome.PARTIALLY_APPROVED, claim, decided_before=decided_before
        )
        await flush_changes(self.session)
        return claim

    # =========================================================================
    # Payment
    # =========================================================================

    async def pay(
        self,
        claim_id: UUID,
        actor: Actor,
        amount: Optional[Decimal] = None,
        method: Optional[ClaimPaymentMethod] = None,
        notes: Optional[str] = None,
    ) -> SettlementResult:
        """Settle an approved claim; a second call fails with AlreadyPaid."""
        claim = await self._load_claim(claim_id)
        return await self.settlement.pay(
            claim,
            amount=amount,
            method=method,
            actor_id=actor.id,
            actor_role=actor.role,
            notes=notes,
        )

    # =========================================================================
    # Appeals
    # =========================================================================

    async def appeal(
        self,
        claim_id: UUID,
        actor: Actor,
        reason: Optional[str],
        documents: Optional[list[str]] = None,
    ) -> Claim:
        """
        Appeal a decision. Only the patient or the claimant may appeal, once.

        Raises:
            PermissionDenied: Caller is neither patient nor claimant
            InvalidClaimState: Already appealed or not appealable
            ValidationError: Reason missing
        """
        claim = await self._load_claim(claim_id)
        if actor.id not in (claim.patient_id, claim.claimant_id):
            raise PermissionDenied("Only the patient or the claimant can appeal this claim")
        if claim.appeal_submitted:
            raise InvalidClaimState(f"Claim {claim.claim_number} has already been appealed")
        self._require(claim, TransitionEvent.APPEAL, actor, reason=reason)

        claim.appeal_submitted = True
        claim.appeal_submitted_at = utc_now()
        claim.appeal_reason = reason
        claim.appeal_documents = documents or []
        claim.appeal_status = AppealStatus.PENDING
        self._record_transition(claim, ClaimStatus.APPEALED, TransitionEvent.APPEAL, actor, reason=reason)
        await flush_changes(self.session)
        return claim

    async def review_appeal(
        self,
        claim_id: UUID,
        actor: Actor,
        decision: str,
        notes: Optional[str] = None,
        amount: Optional[Decimal] = None,
    ) -> Claim:
        """
        Decide an appeal. Approval mirrors ``approve``; rejection leaves the
        enrollment untouched.
        """
        try:
            verdict = AppealStatus(decision)
        except ValueError as err:
            raise ValidationError("Decision must be 'approved' or 'rejected'") from err
        if verdict == AppealStatus.PENDING:
            raise ValidationError("Decision must be 'approved' or 'rejected'")

        claim = await self._load_claim(claim_id)
        if verdict == AppealStatus.APPROVED:
            self._require(claim, TransitionEvent.APPEAL_APPROVED, actor)
            await self._apply_approval(claim, actor, TransitionEvent.APPEAL_APPROVED, amount, notes)
        else:
            self._require(claim, TransitionEvent.APPEAL_REJECTED, actor)
            await self._apply_rejection(
                claim, actor, TransitionEvent.APPEAL_REJECTED, reason=None, notes=notes
            )
        await flush_changes(self.session)
        return claim

    # =========================================================================
    # Withdrawal
    # =========================================================================

    async def cancel(self, claim_id: UUID, actor: Actor, reason: Optional[str] = None) -> Claim:
        """Withdraw a claim before it is decided."""
        claim = await self._load_claim(claim_id)
        if not actor.is_admin and actor.id not in (claim.claimant_id, claim.patient_id):
            raise PermissionDenied("Only the claimant or the patient can cancel this claim")
        self._require(claim, TransitionEvent.CANCEL, actor)

        enrollment = await self._load_enrollment(claim.enrollment_id)
        claim.cancellation_reason = reason
        claim.completed_at = utc_now()
        self._record_transition(claim, ClaimStatus.CANCELLED, TransitionEvent.CANCEL, actor, reason=reason)
        record_claim_outcome(enrollment, ClaimOutcome.CANCELLED, claim)
        await flush_changes(self.session)
        return claim

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def get_claim(self, claim_id: UUID, actor: Actor) -> Claim:
        result = await self.session.execute(select(Claim).where(Claim.id == claim_id))
        claim = result.scalar_one_or_none()
        if claim is None:
            raise NotFound(f"Claim not found: {claim_id}")
        self._check_visibility(claim, actor)
        return claim

    async def list_claims(
        self,
        actor: Actor,
        status: Optional[ClaimStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Claim]:
        """Claims the caller submitted or received care under; all claims for admins."""
        query = select(Claim)
        if not actor.is_admin:
            query = query.where(or_(Claim.claimant_id == actor.id, Claim.patient_id == actor.id))
        if status is not None:
            query = query.where(Claim.status == status)
        query = query.order_by(Claim.submitted_at.desc(), Claim.claim_number.desc())
        result = await self.session.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def get_patient_coverage(
        self, actor: Actor, patient_id: UUID, recent_limit: int = 10
    ) -> PatientCoverage:
        """
        Coverage summary a provider checks before treating a patient.

        Returns the patient's active enrollment, its plan and the most recent
        claims filed under it.

        Raises:
            PermissionDenied: Caller is neither a claimant role nor an admin,
                or is a patient asking about someone else
            NotFound: Patient has no active enrollment
        """
        if not actor.is_admin:
            if actor.role not in CLAIMANT_ROLES:
                raise PermissionDenied("Not authorized to view patient coverage")
            if actor.role == UserRole.PATIENT and actor.id != patient_id:
                raise PermissionDenied("Patients can only view their own coverage")

        result = await self.session.execute(
            select(Enrollment)
            .where(Enrollment.user_id == patient_id, Enrollment.status == EnrollmentStatus.ACTIVE)
            .order_by(Enrollment.coverage_start_date.desc())
            .limit(1)
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFound(f"No active enrollment found for patient {patient_id}")

        plan = await self._load_plan(enrollment.plan_id)
        claims = await self.session.execute(
            select(Claim)
            .where(Claim.patient_id == patient_id, Claim.enrollment_id == enrollment.id)
            .order_by(Claim.submitted_at.desc(), Claim.claim_number.desc())
            .limit(recent_limit)
        )
        return PatientCoverage(
            enrollment=enrollment, plan=plan, recent_claims=list(claims.scalars().all())
        )
