"""
Wallet Ledger Service.

Provides:
- Lazy wallet creation per (owner, wallet type)
- Credit / debit with exactly one completed transaction per balance change
- Reversal through a new linked transaction
- Balance and transaction queries

Source: wallet credit/debit methods and transaction reversal flow
Verified: 2026-10-18

The ledger is the only writer of wallet balances. Guards run before any
mutation, so a failed call leaves the wallet and the ledger untouched.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.enums import (
    TransactionCategory,
    TransactionStatus,
    TransactionType,
    WalletStatus,
    WalletType,
)
from careledger.db.connection import flush_changes
from careledger.models.base import utc_now
from careledger.models.wallet import Transaction, Wallet
from careledger.services.numbering import (
    PERSONAL_WALLET_PREFIX,
    SPONSORED_WALLET_PREFIX,
    TRANSACTION_PREFIX,
    generate_number,
)
from careledger.utils.errors import (
    CurrencyMismatch,
    InsufficientFunds,
    InvalidAmount,
    InvalidState,
    NotFound,
)
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO, add, subtract, to_amount

logger = get_logger(__name__)


@dataclass
class LedgerEntry:
    """Optional ledger metadata attached to a balance change."""

    category: TransactionCategory
    reference_type: Optional[str] = None
    reference_id: Optional[UUID] = None
    description: Optional[str] = None
    from_party: Optional[str] = None
    to_party: Optional[str] = None
    payment_method: Optional[str] = None


@dataclass
class WalletBalances:
    """Both balance buckets of an owner."""

    personal: Wallet
    sponsored: Wallet


class WalletLedger:
    """Service for wallet balances and the transaction ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Wallets
    # =========================================================================

    async def get_wallet(self, owner_id: UUID, wallet_type: WalletType) -> Optional[Wallet]:
        result = await self.session.execute(
            select(Wallet)
            .where(Wallet.owner_id == owner_id, Wallet.wallet_type == wallet_type)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_or_create_wallet(
        self,
        owner_id: UUID,
        wallet_type: WalletType = WalletType.PERSONAL,
        currency: Optional[str] = None,
    ) -> Wallet:
        """
        Return the owner's wallet of the given type, creating it if absent.

        New wallets start at zero in ``currency`` (the default currency when
        not given). An existing wallet keeps the currency it was created with.
        """
        wallet = await self.get_wallet(owner_id, wallet_type)
        if wallet is not None:
            return wallet

        prefix = (
            PERSONAL_WALLET_PREFIX if wallet_type == WalletType.PERSONAL else SPONSORED_WALLET_PREFIX
        )
        wallet = Wallet(
            wallet_number=await generate_number(self.session, Wallet.wallet_number, prefix),
            owner_id=owner_id,
            wallet_type=wallet_type,
            status=WalletStatus.ACTIVE,
            currency=(currency or settings.CARELEDGER_DEFAULT_CURRENCY).upper(),
            available=ZERO,
            pending=ZERO,
            reserved=ZERO,
            total_received=ZERO,
            total_spent=ZERO,
            transaction_count=0,
        )
        self.session.add(wallet)
        await flush_changes(self.session)

        logger.info(f"Created {wallet_type.value} wallet {wallet.wallet_number} for owner {owner_id}")
        return wallet

    async def get_balance(self, owner_id: UUID) -> WalletBalances:
        """Personal and sponsored wallets of an owner (created lazily)."""
        personal = await self.get_or_create_wallet(owner_id, WalletType.PERSONAL)
        sponsored = await self.get_or_create_wallet(owner_id, WalletType.SPONSORED)
        return WalletBalances(personal=personal, sponsored=sponsored)

    # =========================================================================
    # Balance Changes
    # =========================================================================

    def _check_request(self, wallet: Wallet, amount: Decimal, currency: Optional[str]) -> Decimal:
        value = to_amount(amount)
        if value <= ZERO:
            raise InvalidAmount(f"Amount must be greater than zero, got {value}")
        if currency is not None and currency.upper() != wallet.currency:
            raise CurrencyMismatch(
                f"Wallet {wallet.wallet_number} holds {wallet.currency}, got {currency.upper()}"
            )
        if wallet.status != WalletStatus.ACTIVE:
            raise InvalidState(f"Wallet {wallet.wallet_number} is {wallet.status.value}")
        return value

    async def _record(
        self,
        wallet: Wallet,
        transaction_type: TransactionType,
        amount: Decimal,
        entry: LedgerEntry,
        reversal_of_id: Optional[UUID] = None,
    ) -> Transaction:
        now = utc_now()
        transaction = Transaction(
            transaction_number=await generate_number(
                self.session, Transaction.transaction_number, TRANSACTION_PREFIX
            ),
            wallet_id=wallet.id,
            transaction_type=transaction_type,
            category=entry.category,
            amount=amount,
            currency=wallet.currency,
            status=TransactionStatus.COMPLETED,
            balance_after=wallet.available,
            from_party=entry.from_party,
            to_party=entry.to_party,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            reversal_of_id=reversal_of_id,
            description=entry.description,
            payment_method=entry.payment_method,
            status_history=[
                {
                    "status": TransactionStatus.COMPLETED.value,
                    "timestamp": now.isoformat(),
                    "note": entry.description,
                }
            ],
            completed_at=now,
        )
        wallet.transaction_count = (wallet.transaction_count or 0) + 1
        wallet.last_transaction_at = now

        self.session.add(transaction)
        await flush_changes(self.session)
        return transaction

    async def credit(
        self,
        wallet: Wallet,
        amount: Decimal,
        currency: Optional[str],
        entry: LedgerEntry,
    ) -> Transaction:
        """
        Increase the available balance and record one completed credit.

        Raises:
            InvalidAmount: If amount <= 0
            CurrencyMismatch: If currency differs from the wallet currency
        """
        value = self._check_request(wallet, amount, currency)

        wallet.available = add(wallet.available, value)
        wallet.total_received = add(wallet.total_received, value)
        transaction = await self._record(wallet, TransactionType.CREDIT, value, entry)

        logger.info(
            f"Credited {value} {wallet.currency} to {wallet.wallet_number} "
            f"({entry.category.value}, {transaction.transaction_number})"
        )
        return transaction

    async def debit(
        self,
        wallet: Wallet,
        amount: Decimal,
        currency: Optional[str],
        entry: LedgerEntry,
    ) -> Transaction:
        """
        Decrease the available balance and record one completed debit.

        Raises:
            InvalidAmount: If amount <= 0
            CurrencyMismatch: If currency differs from the wallet currency
            InsufficientFunds: If available < amount; balance untouched
        """
        value = self._check_request(wallet, amount, currency)
        if to_amount(wallet.available) < value:
            logger.warning(
                f"Debit of {value} refused on {wallet.wallet_number}: available {wallet.available}"
            )
            raise InsufficientFunds(
                f"Insufficient balance in {wallet.wallet_number}: "
                f"available {to_amount(wallet.available)}, requested {value}"
            )

        wallet.available = subtract(wallet.available, value)
        wallet.total_spent = add(wallet.total_spent, value)
        transaction = await self._record(wallet, TransactionType.DEBIT, value, entry)

        logger.info(
            f"Debited {value} {wallet.currency} from {wallet.wallet_number} "
            f"({entry.category.value}, {transaction.transaction_number})"
        )
        return transaction

    # =========================================================================
    # Reversal
    # =========================================================================

    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        result = await self.session.execute(
            select(Transaction).where(Transaction.id == transaction_id).with_for_update()
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise NotFound(f"Transaction not found: {transaction_id}")
        return transaction

    async def reverse(self, transaction: Transaction, reason: str) -> Transaction:
        """
        Undo a completed transaction with a new linked entry.

        The original row changes only its status; the inverse balance change
        is a new ``reversal`` transaction pointing at it.

        Raises:
            InvalidState: Unless the transaction is completed
            InsufficientFunds: When reversing a credit the wallet no longer covers
        """
        if transaction.status != TransactionStatus.COMPLETED:
            raise InvalidState(
                f"Only completed transactions can be reversed; "
                f"{transaction.transaction_number} is {transaction.status.value}"
            )

        result = await self.session.execute(
            select(Wallet).where(Wallet.id == transaction.wallet_id).with_for_update()
        )
        wallet = result.scalar_one()

        entry = LedgerEntry(
            category=TransactionCategory.REVERSAL,
            reference_type=transaction.reference_type,
            reference_id=transaction.reference_id,
            description=f"Reversal of {transaction.transaction_number}: {reason}",
        )

        if transaction.transaction_type == TransactionType.CREDIT:
            if to_amount(wallet.available) < to_amount(transaction.amount):
                raise InsufficientFunds(
                    f"Cannot reverse {transaction.transaction_number}: "
                    f"available {to_amount(wallet.available)} < {to_amount(transaction.amount)}"
                )
            wallet.available = subtract(wallet.available, transaction.amount)
            wallet.total_received = subtract(wallet.total_received, transaction.amount)
            reversal_type = TransactionType.DEBIT
        else:
            wallet.available = add(wallet.available, transaction.amount)
            wallet.total_spent = subtract(wallet.total_spent, transaction.amount)
            reversal_type = TransactionType.CREDIT

        reversal = await self._record(
            wallet,
            reversal_type,
            to_amount(transaction.amount),
            entry,
            reversal_of_id=transaction.id,
        )

        now = utc_now()
        transaction.status = TransactionStatus.REVERSED
        transaction.reversed_at = now
        transaction.status_history = [
            *transaction.status_history,
            {
                "status": TransactionStatus.REVERSED.value,
                "timestamp": now.isoformat(),
                "note": reason,
                "reversal_transaction": reversal.transaction_number,
            },
        ]
        await flush_changes(self.session)

        logger.info(
            f"Reversed {transaction.transaction_number} with {reversal.transaction_number}: {reason}"
        )
        return reversal

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def add_funds(
        self,
        owner_id: UUID,
        amount: Decimal,
        wallet_type: WalletType = WalletType.PERSONAL,
        payment_method: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Transaction:
        """Deposit into one of the owner's wallets."""
        if to_amount(amount) <= ZERO:
            raise InvalidAmount("Amount must be greater than zero")
        wallet = await self.get_or_create_wallet(owner_id, wallet_type, currency)
        return await self.credit(
            wallet,
            amount,
            currency,
            LedgerEntry(
                category=TransactionCategory.DEPOSIT,
                description=f"Funds added via {payment_method or 'unspecified method'}",
                to_party=str(owner_id),
                payment_method=payment_method,
            ),
        )

    async def list_transactions(self, owner_id: UUID, limit: int = 50) -> list[Transaction]:
        """Owner's transactions across both wallets, most recent first."""
        result = await self.session.execute(
            select(Transaction)
            .join(Wallet, Wallet.id == Transaction.wallet_id)
            .where(Wallet.owner_id == owner_id)
            .order_by(Transaction.created_at.desc(), Transaction.transaction_number.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def transactions_for_reference(
        self,
        reference_type: str,
        reference_id: UUID,
    ) -> list[Transaction]:
        result = await self.session.execute(
            select(Transaction)
            .where(
                Transaction.reference_type == reference_type,
                Transaction.reference_id == reference_id,
            )
            .order_by(Transaction.transaction_number)
        )
        return list(result.scalars().all())
