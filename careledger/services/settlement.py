"""
Settlement Orchestrator.

Pays an approved claim into the claimant's personal wallet: one ledger
credit, the claim marked paid, and the plan statistics updated, all inside
the caller's database transaction.

Source: claim payment processing (wallet credit + markAsPaid + plan statistics)
Verified: 2026-10-18
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.enums import (
    ClaimPaymentMethod,
    ClaimStatus,
    TransactionCategory,
    UserRole,
    WalletType,
)
from careledger.db.connection import flush_changes
from careledger.models.base import utc_now
from careledger.models.claim import Claim, ClaimStatusHistory
from careledger.models.plan import Plan
from careledger.models.wallet import Transaction, Wallet
from careledger.services.claim_state_machine import (
    TransitionContext,
    TransitionEvent,
    get_claim_state_machine,
)
from careledger.services.wallet_ledger import LedgerEntry, WalletLedger
from careledger.utils.errors import AlreadyPaid, InvalidAmount, ValidationError
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, add, to_amount

logger = get_logger(__name__)

CLAIM_REFERENCE = "claim"


@dataclass
class SettlementResult:
    """Outcome of a successful payment."""

    claim: Claim
    transaction: Transaction
    wallet: Wallet


class SettlementService:
    """At-most-once payment of approved claims."""

    def __init__(self, session: AsyncSession, ledger: Optional[WalletLedger] = None):
        self.session = session
        self.ledger = ledger or WalletLedger(session)
        self.state_machine = get_claim_state_machine()

    async def pay(
        self,
        claim: Claim,
        amount: Optional[Decimal] = None,
        method: Optional[ClaimPaymentMethod] = None,
        actor_id: Optional[UUID] = None,
        actor_role: Optional[UserRole] = None,
        notes: Optional[str] = None,
    ) -> SettlementResult:
        """
        Settle an approved claim.

        Args:
            claim: Claim loaded for update
            amount: Amount to pay, defaults to the approved amount
            method: Payment method recorded on the claim
            actor_id: User triggering the payment
            actor_role: Role of that user, None for system-initiated payment
            notes: Free-text notes for the status history

        Raises:
            AlreadyPaid: Claim already settled (checked before anything else)
            InvalidClaimState: Claim not approved
            InvalidAmount: Amount not positive
            ValidationError: Amount above the approved amount
            CurrencyMismatch: Claimant wallet holds another currency
        """
        if claim.is_paid:
            logger.warning(f"Refusing second payment for claim {claim.claim_number}")
            raise AlreadyPaid(
                f"Claim {claim.claim_number} was already paid "
                f"({to_amount(claim.amount_paid)}, ref {claim.payment_reference})"
            )

        self.state_machine.require_transition(
            TransitionContext(
                claim_id=claim.id,
                current_status=claim.status,
                event=TransitionEvent.PAY,
                actor_role=actor_role,
            )
        )

        value = to_amount(amount if amount is not None else claim.approved_amount)
        if value <= ZERO:
            raise InvalidAmount(f"Payment amount must be greater than zero, got {value}")
        if value > to_amount(claim.approved_amount):
            raise ValidationError(
                f"Payment {value} exceeds the approved amount {to_amount(claim.approved_amount)}"
            )

        method = method or ClaimPaymentMethod(settings.CARELEDGER_CLAIM_PAYMENT_METHOD)
        now = utc_now()
        claim.payment_initiated_at = now

        wallet = await self.ledger.get_or_create_wallet(
            claim.claimant_id, WalletType.PERSONAL, claim.currency
        )
        transaction = await self.ledger.credit(
            wallet,
            value,
            claim.currency,
            LedgerEntry(
                category=TransactionCategory.CLAIM_PAYMENT,
                reference_type=CLAIM_REFERENCE,
                reference_id=claim.id,
                description=f"Payment for claim {claim.claim_number}",
                from_party=f"plan:{claim.plan_id}",
                to_party=str(claim.claimant_id),
                payment_method=method.value,
            ),
        )

        self._mark_paid(claim, value, method, transaction, actor_id, actor_role, notes, now)
        await self._update_plan_statistics(claim, value)
        await flush_changes(self.session)

        logger.info(
            f"Claim {claim.claim_number} paid {value} {claim.currency} "
            f"to wallet {wallet.wallet_number} ({transaction.transaction_number})"
        )
        return SettlementResult(claim=claim, transaction=transaction, wallet=wallet)

    def _mark_paid(
        self,
        claim: Claim,
        amount: Decimal,
        method: ClaimPaymentMethod,
        transaction: Transaction,
        actor_id: Optional[UUID],
        actor_role: Optional[UserRole],
        notes: Optional[str],
        now: datetime,
    ) -> None:
        previous = claim.status
        claim.amount_paid = amount
        claim.payment_date = now
        claim.payment_method = method
        claim.payment_reference = transaction.transaction_number
        claim.status = ClaimStatus.PAID
        claim.completed_at = now
        claim.status_history.append(
            ClaimStatusHistory(
                sequence=len(claim.status_history) + 1,
                previous_status=previous,
                new_status=ClaimStatus.PAID,
                event=TransitionEvent.PAY.value,
                changed_by=actor_id,
                actor_type=actor_role.value if actor_role else "system",
                notes=notes or f"Paid {amount} via {method.value}",
            )
        )

    async def _update_plan_statistics(self, claim: Claim, amount: Decimal) -> None:
        """Paid count, paid total and running average of processing days."""
        result = await self.session.execute(
            select(Plan).where(Plan.id == claim.plan_id).with_for_update()
        )
        plan = result.scalar_one()

        processing_days = Decimal(
            max(0, (claim.payment_date.date() - claim.submitted_at.date()).days)
        )
        paid_before = plan.total_claims_paid or 0

        plan.total_claims_paid = paid_before + 1
        plan.total_claims_amount = add(plan.total_claims_amount, amount)
        if plan.average_claim_processing_days is None or paid_before == 0:
            plan.average_claim_processing_days = to_amount(processing_days)
        else:
            plan.average_claim_processing_days = to_amount(
                (Decimal(plan.average_claim_processing_days) * paid_before + processing_days)
                / plan.total_claims_paid
            )
