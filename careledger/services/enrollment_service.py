"""
Enrollment Service for HMO Plan Subscriptions.

Provides:
- Enrollment against an open plan with a limits snapshot
- Activation with membership card issue and optional wallet premium
- Cancellation with pro-rata refund for annual plans
- Renewal into a new coverage window

Source: HMO enrollment controller and enrollment lifecycle methods
Verified: 2026-10-18
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.actor import Actor
from careledger.core.enums import (
    EnrollmentStatus,
    EnrollmentType,
    PaymentPlan,
    PremiumPaymentMethod,
    RefundStatus,
    TransactionCategory,
    WalletType,
)
from careledger.db.connection import flush_changes
from careledger.models.base import utc_now
from careledger.models.enrollment import Enrollment, EnrollmentStatusHistory
from careledger.models.plan import Plan
from careledger.services.numbering import (
    ENROLLMENT_PREFIX,
    MEMBERSHIP_CARD_PREFIX,
    generate_number,
)
from careledger.services.utilization import (
    can_be_cancelled,
    can_be_renewed,
    initialize_limits,
)
from careledger.services.wallet_ledger import LedgerEntry, WalletLedger
from careledger.utils.errors import InvalidState, NotFound, PermissionDenied, ValidationError
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, prorate, to_amount

logger = get_logger(__name__)

ENROLLMENT_REFERENCE = "enrollment"

_OPEN_STATUSES = (EnrollmentStatus.ACTIVE, EnrollmentStatus.PENDING)


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the last day of the target month."""
    return start + relativedelta(months=months)


def premium_for(plan: Plan, enrollment_type: EnrollmentType, payment_plan: PaymentPlan) -> Decimal:
    """
    Premium charged per payment period.

    Raises:
        ValidationError: Plan has no monthly premium for the enrollment type
    """
    pricing = plan.pricing or {}
    monthly = (pricing.get("monthly_premium") or {}).get(enrollment_type.value)
    if monthly is None:
        raise ValidationError(
            f"Plan {plan.plan_code} has no premium for {enrollment_type.value} enrollment"
        )

    if payment_plan == PaymentPlan.ANNUAL:
        annual = (pricing.get("annual_premium") or {}).get(enrollment_type.value)
        return to_amount(annual if annual is not None else to_amount(monthly) * 12)
    if payment_plan == PaymentPlan.QUARTERLY:
        return to_amount(to_amount(monthly) * 3)
    return to_amount(monthly)


class EnrollmentService:
    """Service for enrollment lifecycle operations."""

    def __init__(self, session: AsyncSession, ledger: Optional[WalletLedger] = None):
        self.session = session
        self.ledger = ledger or WalletLedger(session)

    # =========================================================================
    # Loading
    # =========================================================================

    async def _load_plan(self, plan_id: UUID, for_update: bool = False) -> Plan:
        query = select(Plan).where(Plan.id == plan_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFound(f"Plan not found: {plan_id}")
        return plan

    async def _load_enrollment(self, enrollment_id: UUID) -> Enrollment:
        result = await self.session.execute(
            select(Enrollment).where(Enrollment.id == enrollment_id).with_for_update()
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFound(f"Enrollment not found: {enrollment_id}")
        return enrollment

    @staticmethod
    def _check_owner(enrollment: Enrollment, actor: Actor) -> None:
        if not actor.is_admin and actor.id != enrollment.user_id:
            raise PermissionDenied("Not authorized to manage this enrollment")

    @staticmethod
    def _set_status(
        enrollment: Enrollment,
        new_status: EnrollmentStatus,
        actor: Optional[Actor],
        reason: Optional[str] = None,
    ) -> None:
        previous = enrollment.status
        enrollment.status = new_status
        enrollment.status_history.append(
            EnrollmentStatusHistory(
                sequence=len(enrollment.status_history) + 1,
                previous_status=previous,
                new_status=new_status,
                changed_by=actor.id if actor else None,
                reason=reason,
            )
        )
        logger.info(
            f"Enrollment {enrollment.enrollment_number} status: "
            f"{previous.value if previous else 'new'} -> {new_status.value}"
        )

    async def _new_enrollment(
        self,
        plan: Plan,
        user_id: UUID,
        enrollment_type: EnrollmentType,
        payment_plan: PaymentPlan,
        payment_method: PremiumPaymentMethod,
        coverage_start_date: date,
        dependents: list[dict[str, Any]],
        primary_care_provider_id: Optional[UUID],
        beneficiary: Optional[dict[str, Any]],
        auto_renewal: bool,
        actor: Actor,
        renewed_from_id: Optional[UUID] = None,
    ) -> Enrollment:
        coverage_end = add_months(coverage_start_date, settings.CARELEDGER_COVERAGE_TERM_MONTHS)
        enrollment = Enrollment(
            enrollment_number=await generate_number(
                self.session, Enrollment.enrollment_number, ENROLLMENT_PREFIX
            ),
            user_id=user_id,
            plan_id=plan.id,
            enrollment_type=enrollment_type,
            dependents=dependents,
            primary_care_provider_id=primary_care_provider_id,
            beneficiary=beneficiary,
            status=None,
            payment_plan=payment_plan,
            payment_amount=premium_for(plan, enrollment_type, payment_plan),
            payment_method=payment_method,
            currency=plan.currency,
            auto_renewal=auto_renewal,
            coverage_start_date=coverage_start_date,
            coverage_end_date=coverage_end,
            renewal_date=date.fromordinal(
                coverage_end.toordinal() - settings.CARELEDGER_RENEWAL_REMINDER_DAYS
            ),
            renewed_from_id=renewed_from_id,
            status_history=[],
        )
        initialize_limits(enrollment, plan)
        self._set_status(enrollment, EnrollmentStatus.PENDING, actor, reason="Enrollment created")

        plan.total_enrollments = (plan.total_enrollments or 0) + 1
        self.session.add(enrollment)
        await flush_changes(self.session)
        return enrollment

    # =========================================================================
    # Enrollment
    # =========================================================================

    async def enroll(
        self,
        actor: Actor,
        plan_id: UUID,
        enrollment_type: EnrollmentType,
        payment_plan: PaymentPlan,
        payment_method: PremiumPaymentMethod,
        user_id: Optional[UUID] = None,
        coverage_start_date: Optional[date] = None,
        dependents: Optional[list[dict[str, Any]]] = None,
        primary_care_provider_id: Optional[UUID] = None,
        beneficiary: Optional[dict[str, Any]] = None,
        auto_renewal: bool = False,
    ) -> Enrollment:
        """
        Enroll a member in a plan.

        Args:
            actor: Caller; members enroll themselves, admins may enroll anyone
            plan_id: Plan to subscribe to
            enrollment_type: individual / family / corporate / group
            payment_plan: Premium payment frequency
            payment_method: How premiums are paid
            user_id: Member to enroll, defaults to the caller
            coverage_start_date: Defaults to today

        Returns:
            Pending enrollment with limits snapshotted from the plan

        Raises:
            NotFound: Plan missing or not open for enrollment
            ValidationError: Open enrollment exists, dependents invalid or no premium
        """
        user_id = user_id or actor.id
        if not actor.is_admin and user_id != actor.id:
            raise PermissionDenied("Members can only enroll themselves")

        start = coverage_start_date or date.today()
        dependents = dependents or []

        plan = await self._load_plan(plan_id, for_update=True)
        if not plan.is_open_for_enrollment(date.today()):
            raise NotFound(f"Plan {plan.plan_code} is not available for enrollment")

        existing = await self.session.execute(
            select(Enrollment.id).where(
                Enrollment.user_id == user_id,
                Enrollment.status.in_(_OPEN_STATUSES),
            )
        )
        if existing.first() is not None:
            raise ValidationError("Member already has an active or pending enrollment")

        if enrollment_type == EnrollmentType.FAMILY and not dependents:
            raise ValidationError("Family enrollment requires at least one dependent")
        if len(dependents) > (plan.dependents_allowed or 0):
            raise ValidationError(
                f"Plan {plan.plan_code} allows at most {plan.dependents_allowed} dependents"
            )

        enrollment = await self._new_enrollment(
            plan,
            user_id,
            enrollment_type,
            payment_plan,
            payment_method,
            start,
            dependents,
            primary_care_provider_id,
            beneficiary,
            auto_renewal,
            actor,
        )
        plan.active_members = (plan.active_members or 0) + 1
        await flush_changes(self.session)

        logger.info(
            f"Enrolled member {user_id} in plan {plan.plan_code} as {enrollment.enrollment_number} "
            f"({payment_plan.value} premium {enrollment.payment_amount})"
        )
        return enrollment

    async def activate_enrollment(self, enrollment_id: UUID, actor: Actor) -> Enrollment:
        """
        Activate a pending enrollment and issue the membership card.

        Wallet-paid premiums are debited from the member's personal wallet.

        Raises:
            InvalidState: Enrollment not pending
            InsufficientFunds: Wallet cannot cover the premium
        """
        enrollment = await self._load_enrollment(enrollment_id)
        self._check_owner(enrollment, actor)
        if enrollment.status != EnrollmentStatus.PENDING:
            raise InvalidState(
                f"Only pending enrollments can be activated "
                f"({enrollment.enrollment_number} is {enrollment.status.value})"
            )

        if enrollment.payment_method == PremiumPaymentMethod.WALLET:
            wallet = await self.ledger.get_or_create_wallet(
                enrollment.user_id, WalletType.PERSONAL, enrollment.currency
            )
            await self.ledger.debit(
                wallet,
                enrollment.payment_amount,
                enrollment.currency,
                LedgerEntry(
                    category=TransactionCategory.PREMIUM_PAYMENT,
                    reference_type=ENROLLMENT_REFERENCE,
                    reference_id=enrollment.id,
                    description=f"Premium for enrollment {enrollment.enrollment_number}",
                    from_party=str(enrollment.user_id),
                    to_party=f"plan:{enrollment.plan_id}",
                    payment_method=PremiumPaymentMethod.WALLET.value,
                ),
            )
            enrollment.last_payment_date = utc_now()

        enrollment.membership_card_number = await generate_number(
            self.session, Enrollment.membership_card_number, MEMBERSHIP_CARD_PREFIX
        )
        self._set_status(enrollment, EnrollmentStatus.ACTIVE, actor, reason="Enrollment activated")
        await flush_changes(self.session)
        return enrollment

    async def cancel_enrollment(
        self,
        enrollment_id: UUID,
        actor: Actor,
        reason: Optional[str],
        effective_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Enrollment:
        """
        Cancel an enrollment.

        Annual plans get a pro-rata refund of the unused coverage days.
        Monthly and quarterly refunds are left for manual review.

        Raises:
            ValidationError: Reason missing
            InvalidState: Enrollment already cancelled or expired
        """
        if not reason or not reason.strip():
            raise ValidationError("Cancellation reason is required")

        enrollment = await self._load_enrollment(enrollment_id)
        self._check_owner(enrollment, actor)
        if not can_be_cancelled(enrollment):
            raise InvalidState(
                f"Enrollment {enrollment.enrollment_number} cannot be cancelled "
                f"(status: {enrollment.status.value})"
            )

        today = today or date.today()
        effective = effective_date or today
        if effective < today:
            raise ValidationError("Effective date cannot be in the past")

        total_days = (enrollment.coverage_end_date - enrollment.coverage_start_date).days
        counted_from = max(effective, enrollment.coverage_start_date)
        days_remaining = max(0, (enrollment.coverage_end_date - counted_from).days)

        if days_remaining <= 0:
            enrollment.refund_amount = ZERO
            enrollment.refund_status = None
        elif enrollment.payment_plan == PaymentPlan.ANNUAL:
            enrollment.refund_amount = prorate(enrollment.payment_amount, days_remaining, total_days)
            enrollment.refund_status = RefundStatus.PENDING
        else:
            enrollment.refund_amount = None
            enrollment.refund_status = RefundStatus.MANUAL_REVIEW

        enrollment.cancellation_requested_at = utc_now()
        enrollment.cancellation_effective_date = effective
        enrollment.cancellation_reason = reason
        self._set_status(enrollment, EnrollmentStatus.CANCELLED, actor, reason=reason)

        plan = await self._load_plan(enrollment.plan_id, for_update=True)
        plan.active_members = max(0, (plan.active_members or 0) - 1)
        await flush_changes(self.session)

        logger.info(
            f"Cancelled enrollment {enrollment.enrollment_number}, effective {effective}, "
            f"refund {enrollment.refund_amount} ({enrollment.refund_status})"
        )
        return enrollment

    async def renew_enrollment(
        self,
        enrollment_id: UUID,
        actor: Actor,
        payment_method: Optional[PremiumPaymentMethod] = None,
        today: Optional[date] = None,
    ) -> Enrollment:
        """
        Open the next coverage window as a new pending enrollment.

        Raises:
            InvalidState: Not active, outside the renewal window, plan closed or
                already renewed
        """
        current = await self._load_enrollment(enrollment_id)
        self._check_owner(current, actor)
        plan = await self._load_plan(current.plan_id, for_update=True)

        today = today or date.today()
        if not can_be_renewed(current, plan, today):
            raise InvalidState(
                f"Enrollment {current.enrollment_number} is not eligible for renewal "
                f"(renewal opens {settings.CARELEDGER_RENEWAL_WINDOW_DAYS} days before "
                f"{current.coverage_end_date})"
            )

        existing = await self.session.execute(
            select(Enrollment.enrollment_number).where(
                Enrollment.renewed_from_id == current.id,
                Enrollment.status != EnrollmentStatus.CANCELLED,
            )
        )
        renewal_number = existing.scalars().first()
        if renewal_number is not None:
            raise InvalidState(
                f"Enrollment {current.enrollment_number} was already renewed as {renewal_number}"
            )

        renewed = await self._new_enrollment(
            plan,
            current.user_id,
            current.enrollment_type,
            current.payment_plan,
            payment_method or current.payment_method,
            current.coverage_end_date,
            list(current.dependents or []),
            current.primary_care_provider_id,
            current.beneficiary,
            current.auto_renewal,
            actor,
            renewed_from_id=current.id,
        )

        logger.info(
            f"Renewed enrollment {current.enrollment_number} as {renewed.enrollment_number} "
            f"from {renewed.coverage_start_date}"
        )
        return renewed

    async def get_enrollment(self, enrollment_id: UUID, actor: Actor) -> Enrollment:
        result = await self.session.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFound(f"Enrollment not found: {enrollment_id}")
        self._check_owner(enrollment, actor)
        return enrollment
