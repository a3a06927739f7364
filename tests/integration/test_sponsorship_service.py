"""
Integration Tests for Sponsorships.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from careledger.core.enums import SponsorshipStatus, TransactionCategory, WalletType
from careledger.services.sponsorship_service import SponsorshipService
from careledger.services.wallet_ledger import WalletLedger
from careledger.utils.errors import (
    InsufficientFunds,
    InvalidAmount,
    InvalidState,
    PermissionDenied,
)


@pytest.fixture
async def sponsorship(session, sponsor, patient):
    return await SponsorshipService(session).create_sponsorship(
        sponsor, beneficiary_id=patient.id, amount=Decimal("500"), description="School year"
    )


@pytest.mark.integration
class TestCreate:
    async def test_funds_sponsored_wallet(self, session, sponsor, patient, sponsorship):
        assert sponsorship.sponsorship_number.startswith("SP-")
        assert sponsorship.amount_remaining == Decimal("500.00")
        assert sponsorship.status == SponsorshipStatus.ACTIVE
        assert (sponsorship.end_date - sponsorship.start_date).days == 365

        balances = await WalletLedger(session).get_balance(patient.id)
        assert balances.sponsored.available == Decimal("500.00")
        assert balances.personal.available == Decimal("0.00")

    async def test_only_sponsors(self, session, patient):
        with pytest.raises(PermissionDenied):
            await SponsorshipService(session).create_sponsorship(
                patient, beneficiary_id=uuid4(), amount=Decimal("10")
            )

    async def test_positive_amount(self, session, sponsor):
        with pytest.raises(InvalidAmount):
            await SponsorshipService(session).create_sponsorship(
                sponsor, beneficiary_id=uuid4(), amount=Decimal("0")
            )


@pytest.mark.integration
class TestUse:
    async def test_use_debits_wallet(self, session, patient, sponsorship):
        transaction = await SponsorshipService(session).use_sponsorship(
            sponsorship.id, patient, Decimal("200"), description="Textbooks"
        )

        assert transaction.category == TransactionCategory.SPONSORSHIP_USAGE
        assert transaction.reference_id == sponsorship.id
        assert sponsorship.amount_used == Decimal("200.00")
        assert sponsorship.amount_remaining == Decimal("300.00")
        wallet = await WalletLedger(session).get_or_create_wallet(patient.id, WalletType.SPONSORED)
        assert wallet.available == Decimal("300.00")

    async def test_exhausting_completes(self, session, patient, sponsorship):
        await SponsorshipService(session).use_sponsorship(sponsorship.id, patient, Decimal("500"))
        assert sponsorship.amount_remaining == Decimal("0.00")
        assert sponsorship.status == SponsorshipStatus.COMPLETED

    async def test_more_than_remaining(self, session, patient, sponsorship):
        with pytest.raises(InsufficientFunds):
            await SponsorshipService(session).use_sponsorship(sponsorship.id, patient, Decimal("500.01"))
        assert sponsorship.amount_remaining == Decimal("500.00")

    async def test_only_beneficiary(self, session, sponsor, sponsorship):
        with pytest.raises(PermissionDenied):
            await SponsorshipService(session).use_sponsorship(sponsorship.id, sponsor, Decimal("10"))


@pytest.mark.integration
class TestPauseResume:
    async def test_paused_cannot_be_used(self, session, sponsor, patient, sponsorship):
        service = SponsorshipService(session)
        await service.pause(sponsorship.id, sponsor)
        with pytest.raises(InvalidState):
            await service.use_sponsorship(sponsorship.id, patient, Decimal("10"))

        await service.resume(sponsorship.id, sponsor)
        await service.use_sponsorship(sponsorship.id, patient, Decimal("10"))
        assert sponsorship.amount_remaining == Decimal("490.00")

    async def test_only_sponsor_pauses(self, session, patient, sponsorship):
        with pytest.raises(PermissionDenied):
            await SponsorshipService(session).pause(sponsorship.id, patient)

    async def test_resume_requires_paused(self, session, sponsor, sponsorship):
        with pytest.raises(InvalidState):
            await SponsorshipService(session).resume(sponsorship.id, sponsor)
