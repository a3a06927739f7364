"""
Integration Tests for Claim Settlement.

Tests for:
- Paying approved claims into the claimant wallet
- At-most-once payment
- Plan statistics
- Automatic payment on approval, including the failure path
"""

from decimal import Decimal

import pytest

from careledger.core.enums import (
    ClaimPaymentMethod,
    ClaimStatus,
    ServiceType,
    TransactionCategory,
    WalletStatus,
    WalletType,
)
from careledger.services.claims_service import ClaimsService
from careledger.services.settlement import CLAIM_REFERENCE
from careledger.services.wallet_ledger import WalletLedger
from careledger.utils.errors import AlreadyPaid, InvalidAmount, InvalidClaimState, ValidationError
from tests.conftest import SERVICE_DATE


async def approved_claim(session, claimant, admin, enrollment, billed="1000", **approve_kwargs):
    service = ClaimsService(session)
    claim = await service.submit_claim(
        claimant,
        enrollment_id=enrollment.id,
        patient_id=enrollment.user_id,
        service_type=ServiceType.OUTPATIENT,
        service_date=SERVICE_DATE,
        diagnosis={"code": "K35.80"},
        total_billed=Decimal(billed),
    )
    return await service.approve(claim.id, admin, **approve_kwargs)


@pytest.mark.integration
class TestPay:
    async def test_pay_credits_claimant(self, session, provider, admin, enrollment):
        claim = await approved_claim(session, provider, admin, enrollment)
        result = await ClaimsService(session).pay(claim.id, admin, method=ClaimPaymentMethod.WALLET)

        assert result.claim.status == ClaimStatus.PAID
        assert result.claim.amount_paid == Decimal("780.00")
        assert result.claim.payment_reference == result.transaction.transaction_number
        assert result.claim.payment_method == ClaimPaymentMethod.WALLET
        assert result.transaction.category == TransactionCategory.CLAIM_PAYMENT
        assert result.transaction.reference_id == claim.id
        assert result.wallet.owner_id == provider.id
        assert result.wallet.wallet_type == WalletType.PERSONAL
        assert result.wallet.available == Decimal("780.00")
        assert len(result.claim.status_history) == 3

    async def test_second_payment_refused(self, session, provider, admin, enrollment):
        claim = await approved_claim(session, provider, admin, enrollment)
        service = ClaimsService(session)
        await service.pay(claim.id, admin, amount=Decimal("500"))

        with pytest.raises(AlreadyPaid):
            await service.pay(claim.id, admin, amount=Decimal("500"))

        balances = await WalletLedger(session).get_balance(provider.id)
        assert balances.personal.available == Decimal("500.00")
        credits = await WalletLedger(session).transactions_for_reference(CLAIM_REFERENCE, claim.id)
        assert len(credits) == 1

    async def test_unapproved_claim(self, session, provider, admin, enrollment):
        service = ClaimsService(session)
        claim = await service.submit_claim(
            provider,
            enrollment_id=enrollment.id,
            patient_id=enrollment.user_id,
            service_type=ServiceType.OUTPATIENT,
            service_date=SERVICE_DATE,
            diagnosis={"code": "K35.80"},
            total_billed=Decimal("100"),
        )
        with pytest.raises(InvalidClaimState):
            await service.pay(claim.id, admin)

    async def test_amount_bounds(self, session, provider, admin, enrollment):
        claim = await approved_claim(session, provider, admin, enrollment)
        service = ClaimsService(session)

        with pytest.raises(InvalidAmount):
            await service.pay(claim.id, admin, amount=Decimal("0"))
        with pytest.raises(ValidationError):
            await service.pay(claim.id, admin, amount=Decimal("780.01"))
        assert claim.status == ClaimStatus.APPROVED
        assert claim.amount_paid == Decimal("0.00")

    async def test_pays_in_plan_currency(
        self, session, provider, admin, patient, make_plan, make_enrollment
    ):
        plan = await make_plan(currency="NGN")
        enrollment = await make_enrollment(plan, patient.id)
        claim = await approved_claim(session, provider, admin, enrollment)

        result = await ClaimsService(session).pay(claim.id, admin)

        assert result.claim.status == ClaimStatus.PAID
        assert result.wallet.currency == "NGN"
        assert result.transaction.currency == "NGN"
        assert result.wallet.available == Decimal("780.00")

    async def test_auto_pay_in_plan_currency(
        self, session, provider, admin, patient, make_plan, make_enrollment
    ):
        plan = await make_plan(currency="NGN")
        enrollment = await make_enrollment(plan, patient.id)

        claim = await approved_claim(session, provider, admin, enrollment, auto_pay=True)

        assert claim.status == ClaimStatus.PAID
        wallet = await WalletLedger(session).get_wallet(provider.id, WalletType.PERSONAL)
        assert wallet.currency == "NGN"

    async def test_plan_statistics(self, session, provider, admin, plan, enrollment):
        service = ClaimsService(session)
        first = await approved_claim(session, provider, admin, enrollment)
        second = await approved_claim(session, provider, admin, enrollment, billed="200")
        await service.pay(first.id, admin)
        await service.pay(second.id, admin)

        assert plan.total_claims_paid == 2
        assert plan.total_claims_amount == first.amount_paid + second.amount_paid
        assert plan.average_claim_processing_days == Decimal("0.00")


@pytest.mark.integration
class TestAutoPay:
    async def test_auto_pay_on_approval(self, session, provider, admin, enrollment):
        claim = await approved_claim(session, provider, admin, enrollment, auto_pay=True)

        assert claim.status == ClaimStatus.PAID
        assert claim.amount_paid == claim.approved_amount
        assert [h.new_status for h in claim.status_history][-2:] == [
            ClaimStatus.APPROVED,
            ClaimStatus.PAID,
        ]

    async def test_failed_auto_pay_keeps_approval(self, session, provider, admin, enrollment):
        ledger = WalletLedger(session)
        wallet = await ledger.get_or_create_wallet(provider.id, WalletType.PERSONAL)
        wallet.status = WalletStatus.SUSPENDED
        await session.flush()

        claim = await approved_claim(session, provider, admin, enrollment, auto_pay=True)

        assert claim.status == ClaimStatus.APPROVED
        assert claim.amount_paid == Decimal("0.00")
        assert claim.payment_initiated_at is None
        assert len(claim.status_history) == 2
        assert enrollment.claims_approved == 1
        assert await ledger.transactions_for_reference(CLAIM_REFERENCE, claim.id) == []

        # Once the wallet is usable the claim can still be paid
        wallet.status = WalletStatus.ACTIVE
        result = await ClaimsService(session).pay(claim.id, admin)
        assert result.claim.status == ClaimStatus.PAID
        assert result.wallet.available == Decimal("780.00")
