"""
Integration Tests for the Wallet Ledger.
"""

import re
from decimal import Decimal
from uuid import uuid4

import pytest

from careledger.core.enums import (
    TransactionCategory,
    TransactionStatus,
    TransactionType,
    WalletStatus,
    WalletType,
)
from careledger.services.wallet_ledger import LedgerEntry, WalletLedger
from careledger.utils.errors import (
    CurrencyMismatch,
    InsufficientFunds,
    InvalidAmount,
    InvalidState,
)

DEPOSIT = LedgerEntry(category=TransactionCategory.DEPOSIT, description="Top-up")
PREMIUM = LedgerEntry(category=TransactionCategory.PREMIUM_PAYMENT, description="Premium")


@pytest.fixture
def ledger(session) -> WalletLedger:
    return WalletLedger(session)


@pytest.fixture
async def wallet(ledger):
    return await ledger.get_or_create_wallet(uuid4(), WalletType.PERSONAL)


@pytest.mark.integration
class TestWallets:
    async def test_lazy_creation_is_idempotent(self, ledger):
        owner = uuid4()
        first = await ledger.get_or_create_wallet(owner, WalletType.PERSONAL)
        second = await ledger.get_or_create_wallet(owner, WalletType.PERSONAL)

        assert first.id == second.id
        assert first.available == Decimal("0.00")
        assert first.currency == "USD"
        assert re.fullmatch(r"PW-\d{4}-\d{6}", first.wallet_number)

    async def test_balance_has_both_buckets(self, ledger):
        owner = uuid4()
        balances = await ledger.get_balance(owner)

        assert balances.personal.wallet_type == WalletType.PERSONAL
        assert balances.sponsored.wallet_type == WalletType.SPONSORED
        assert balances.sponsored.wallet_number.startswith("SW-")


@pytest.mark.integration
class TestCreditDebit:
    async def test_credit_then_debit(self, ledger, wallet):
        credit = await ledger.credit(wallet, Decimal("100"), "USD", DEPOSIT)
        debit = await ledger.debit(wallet, Decimal("30.50"), None, PREMIUM)

        assert wallet.available == Decimal("69.50")
        assert wallet.total_received == Decimal("100.00")
        assert wallet.total_spent == Decimal("30.50")
        assert wallet.transaction_count == 2
        assert credit.status == TransactionStatus.COMPLETED
        assert credit.balance_after == Decimal("100.00")
        assert debit.transaction_type == TransactionType.DEBIT
        assert debit.balance_after == Decimal("69.50")

    async def test_insufficient_funds_changes_nothing(self, ledger, wallet):
        await ledger.credit(wallet, Decimal("10"), None, DEPOSIT)
        with pytest.raises(InsufficientFunds):
            await ledger.debit(wallet, Decimal("10.01"), None, PREMIUM)

        assert wallet.available == Decimal("10.00")
        assert wallet.transaction_count == 1
        assert len(await ledger.list_transactions(wallet.owner_id)) == 1

    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_non_positive_amount(self, ledger, wallet, amount):
        with pytest.raises(InvalidAmount):
            await ledger.credit(wallet, Decimal(amount), None, DEPOSIT)

    async def test_currency_mismatch(self, ledger, wallet):
        with pytest.raises(CurrencyMismatch):
            await ledger.credit(wallet, Decimal("5"), "EUR", DEPOSIT)
        assert wallet.available == Decimal("0.00")

    async def test_inactive_wallet(self, ledger, wallet):
        wallet.status = WalletStatus.SUSPENDED
        with pytest.raises(InvalidState):
            await ledger.credit(wallet, Decimal("5"), None, DEPOSIT)


@pytest.mark.integration
class TestReversal:
    async def test_reverse_credit(self, ledger, wallet):
        original = await ledger.credit(wallet, Decimal("40"), None, DEPOSIT)
        reversal = await ledger.reverse(original, "Deposit bounced")

        assert original.status == TransactionStatus.REVERSED
        assert original.reversed_at is not None
        assert original.status_history[-1]["status"] == "reversed"
        assert reversal.transaction_type == TransactionType.DEBIT
        assert reversal.category == TransactionCategory.REVERSAL
        assert reversal.reversal_of_id == original.id
        assert wallet.available == Decimal("0.00")

    async def test_reverse_debit(self, ledger, wallet):
        await ledger.credit(wallet, Decimal("40"), None, DEPOSIT)
        debit = await ledger.debit(wallet, Decimal("15"), None, PREMIUM)
        reversal = await ledger.reverse(debit, "Charged twice")

        assert reversal.transaction_type == TransactionType.CREDIT
        assert wallet.available == Decimal("40.00")
        assert wallet.total_spent == Decimal("0.00")

    async def test_reverse_only_once(self, ledger, wallet):
        original = await ledger.credit(wallet, Decimal("40"), None, DEPOSIT)
        await ledger.reverse(original, "Deposit bounced")
        with pytest.raises(InvalidState):
            await ledger.reverse(original, "Again")

    async def test_reverse_credit_already_spent(self, ledger, wallet):
        original = await ledger.credit(wallet, Decimal("40"), None, DEPOSIT)
        await ledger.debit(wallet, Decimal("25"), None, PREMIUM)
        with pytest.raises(InsufficientFunds):
            await ledger.reverse(original, "Deposit bounced")
        assert original.status == TransactionStatus.COMPLETED
        assert wallet.available == Decimal("15.00")


@pytest.mark.integration
class TestEntryPoints:
    async def test_add_funds(self, ledger):
        owner = uuid4()
        transaction = await ledger.add_funds(owner, Decimal("250"), payment_method="card")

        assert transaction.category == TransactionCategory.DEPOSIT
        assert transaction.payment_method == "card"
        balances = await ledger.get_balance(owner)
        assert balances.personal.available == Decimal("250.00")
        assert balances.sponsored.available == Decimal("0.00")

    async def test_add_funds_rejects_zero(self, ledger):
        with pytest.raises(InvalidAmount):
            await ledger.add_funds(uuid4(), Decimal("0"))

    async def test_list_transactions_covers_both_wallets(self, ledger):
        owner = uuid4()
        await ledger.add_funds(owner, Decimal("10"))
        await ledger.add_funds(owner, Decimal("20"), wallet_type=WalletType.SPONSORED)

        transactions = await ledger.list_transactions(owner)
        assert len(transactions) == 2
        assert await ledger.list_transactions(uuid4()) == []
