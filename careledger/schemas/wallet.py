"""
Pydantic Schemas for Wallets, Transactions and Sponsorships.
Source: wallet, transaction and sponsorship document schemas
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from careledger.core.enums import (
    SponsorshipStatus,
    TransactionCategory,
    TransactionStatus,
    TransactionType,
    WalletStatus,
    WalletType,
)


# =============================================================================
# Wallets
# =============================================================================


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    wallet_number: str
    owner_id: UUID
    wallet_type: WalletType
    status: WalletStatus
    currency: str
    available: Decimal
    pending: Decimal
    reserved: Decimal
    total_received: Decimal
    total_spent: Decimal
    transaction_count: int
    last_transaction_at: Optional[datetime] = None


class BalanceResponse(BaseModel):
    """Both wallets of the caller."""

    personal: WalletResponse
    sponsored: WalletResponse


class AddFundsRequest(BaseModel):
    amount: Decimal = Field(..., description="Amount to deposit")
    wallet_type: WalletType = WalletType.PERSONAL
    payment_method: Optional[str] = Field(None, max_length=50)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


# =============================================================================
# Transactions
# =============================================================================


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    transaction_number: str
    wallet_id: UUID
    transaction_type: TransactionType
    category: TransactionCategory
    amount: Decimal
    currency: str
    status: TransactionStatus
    balance_after: Decimal
    from_party: Optional[str] = None
    to_party: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[UUID] = None
    reversal_of_id: Optional[UUID] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    completed_at: Optional[datetime] = None
    reversed_at: Optional[datetime] = None
    created_at: datetime


class ReverseRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


# =============================================================================
# Sponsorships
# =============================================================================


class SponsorshipCreate(BaseModel):
    beneficiary_id: UUID
    amount: Decimal
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=1000)


class SponsorshipUse(BaseModel):
    amount: Decimal
    description: Optional[str] = Field(None, max_length=500)


class SponsorshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sponsorship_number: str
    sponsor_id: UUID
    beneficiary_id: UUID
    amount_total: Decimal
    amount_used: Decimal
    amount_remaining: Decimal
    currency: str
    start_date: date
    end_date: date
    status: SponsorshipStatus
    description: Optional[str] = None
