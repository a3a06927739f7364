"""
Sponsorship Service.

A sponsor funds a beneficiary's sponsored wallet; the beneficiary spends
from it until the sponsorship is exhausted. All balance changes go through
the wallet ledger.

Source: sponsorship controller (create / use / pause / resume)
Verified: 2026-10-18
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.actor import Actor
from careledger.core.enums import SponsorshipStatus, TransactionCategory, UserRole, WalletType
from careledger.db.connection import flush_changes
from careledger.models.sponsorship import Sponsorship
from careledger.models.wallet import Transaction
from careledger.services.numbering import SPONSORSHIP_PREFIX, generate_number
from careledger.services.wallet_ledger import LedgerEntry, WalletLedger
from careledger.utils.errors import (
    InsufficientFunds,
    InvalidAmount,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, add, subtract, to_amount

logger = get_logger(__name__)

SPONSORSHIP_REFERENCE = "sponsorship"


class SponsorshipService:
    """Service for sponsor-funded wallets."""

    def __init__(self, session: AsyncSession, ledger: Optional[WalletLedger] = None):
        self.session = session
        self.ledger = ledger or WalletLedger(session)

    async def _load(self, sponsorship_id: UUID) -> Sponsorship:
        result = await self.session.execute(
            select(Sponsorship).where(Sponsorship.id == sponsorship_id).with_for_update()
        )
        sponsorship = result.scalar_one_or_none()
        if sponsorship is None:
            raise NotFound(f"Sponsorship not found: {sponsorship_id}")
        return sponsorship

    async def create_sponsorship(
        self,
        actor: Actor,
        beneficiary_id: UUID,
        amount: Decimal,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> Sponsorship:
        """
        Fund a beneficiary's sponsored wallet.

        Raises:
            PermissionDenied: Caller is not a sponsor
            InvalidAmount: Amount not positive
            ValidationError: End date before start date
        """
        if actor.role != UserRole.SPONSOR:
            raise PermissionDenied("Only sponsors can create sponsorships")

        value = to_amount(amount)
        if value <= ZERO:
            raise InvalidAmount("Sponsorship amount must be greater than zero")

        start = start_date or date.today()
        end = end_date or start + timedelta(days=settings.CARELEDGER_SPONSORSHIP_DEFAULT_DAYS)
        if end < start:
            raise ValidationError("End date cannot be before the start date")

        sponsorship = Sponsorship(
            sponsorship_number=await generate_number(
                self.session, Sponsorship.sponsorship_number, SPONSORSHIP_PREFIX
            ),
            sponsor_id=actor.id,
            beneficiary_id=beneficiary_id,
            amount_total=value,
            amount_used=ZERO,
            amount_remaining=value,
            currency=settings.CARELEDGER_DEFAULT_CURRENCY,
            start_date=start,
            end_date=end,
            status=SponsorshipStatus.ACTIVE,
            description=description,
        )
        self.session.add(sponsorship)
        await flush_changes(self.session)

        wallet = await self.ledger.get_or_create_wallet(
            beneficiary_id, WalletType.SPONSORED, sponsorship.currency
        )
        await self.ledger.credit(
            wallet,
            value,
            sponsorship.currency,
            LedgerEntry(
                category=TransactionCategory.SPONSORSHIP_FUNDING,
                reference_type=SPONSORSHIP_REFERENCE,
                reference_id=sponsorship.id,
                description=f"Sponsorship {sponsorship.sponsorship_number}",
                from_party=str(actor.id),
                to_party=str(beneficiary_id),
            ),
        )

        logger.info(
            f"Sponsor {actor.id} funded {value} {sponsorship.currency} for beneficiary "
            f"{beneficiary_id} ({sponsorship.sponsorship_number})"
        )
        return sponsorship

    async def use_sponsorship(
        self,
        sponsorship_id: UUID,
        actor: Actor,
        amount: Decimal,
        description: Optional[str] = None,
    ) -> Transaction:
        """
        Spend from a sponsorship through the beneficiary's sponsored wallet.

        Raises:
            PermissionDenied: Caller is not the beneficiary
            InvalidState: Sponsorship not active
            InsufficientFunds: Amount beyond what remains
        """
        sponsorship = await self._load(sponsorship_id)
        if not actor.is_admin and actor.id != sponsorship.beneficiary_id:
            raise PermissionDenied("Only the beneficiary can use this sponsorship")
        if sponsorship.status != SponsorshipStatus.ACTIVE:
            raise InvalidState(
                f"Sponsorship {sponsorship.sponsorship_number} is {sponsorship.status.value}"
            )

        value = to_amount(amount)
        if value <= ZERO:
            raise InvalidAmount("Amount must be greater than zero")
        if value > to_amount(sponsorship.amount_remaining):
            raise InsufficientFunds(
                f"Sponsorship {sponsorship.sponsorship_number} has "
                f"{to_amount(sponsorship.amount_remaining)} remaining, requested {value}"
            )

        wallet = await self.ledger.get_or_create_wallet(
            sponsorship.beneficiary_id, WalletType.SPONSORED, sponsorship.currency
        )
        transaction = await self.ledger.debit(
            wallet,
            value,
            sponsorship.currency,
            LedgerEntry(
                category=TransactionCategory.SPONSORSHIP_USAGE,
                reference_type=SPONSORSHIP_REFERENCE,
                reference_id=sponsorship.id,
                description=description or f"Usage of sponsorship {sponsorship.sponsorship_number}",
                from_party=str(sponsorship.beneficiary_id),
            ),
        )

        sponsorship.amount_used = add(sponsorship.amount_used, value)
        sponsorship.amount_remaining = subtract(sponsorship.amount_remaining, value)
        if sponsorship.amount_remaining <= ZERO:
            sponsorship.status = SponsorshipStatus.COMPLETED
            logger.info(f"Sponsorship {sponsorship.sponsorship_number} exhausted")
        await flush_changes(self.session)
        return transaction

    async def _set_status(
        self,
        sponsorship_id: UUID,
        actor: Actor,
        expected: SponsorshipStatus,
        new_status: SponsorshipStatus,
    ) -> Sponsorship:
        sponsorship = await self._load(sponsorship_id)
        if actor.id != sponsorship.sponsor_id:
            raise PermissionDenied("Only the sponsor can change this sponsorship")
        if sponsorship.status != expected:
            raise InvalidState(
                f"Sponsorship {sponsorship.sponsorship_number} is {sponsorship.status.value}, "
                f"expected {expected.value}"
            )
        sponsorship.status = new_status
        await flush_changes(self.session)

        logger.info(f"Sponsorship {sponsorship.sponsorship_number} {new_status.value}")
        return sponsorship

    async def pause(self, sponsorship_id: UUID, actor: Actor) -> Sponsorship:
        return await self._set_status(
            sponsorship_id, actor, SponsorshipStatus.ACTIVE, SponsorshipStatus.PAUSED
        )

    async def resume(self, sponsorship_id: UUID, actor: Actor) -> Sponsorship:
        return await self._set_status(
            sponsorship_id, actor, SponsorshipStatus.PAUSED, SponsorshipStatus.ACTIVE
        )
