"""
Wallet and Ledger Transaction Models.
Source: wallet and transaction document schemas
Verified: 2026-10-18

A wallet holds one balance bucket per (owner, type). Every balance change
is paired with exactly one ``Transaction`` row written by
``careledger.services.wallet_ledger``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from careledger.core.enums import (
    TransactionCategory,
    TransactionStatus,
    TransactionType,
    WalletStatus,
    WalletType,
)
from careledger.models.base import Base, TimeStampedModel, UUIDModel

ZERO = Decimal("0.00")


class Wallet(Base, UUIDModel, TimeStampedModel):
    """Per-owner balance bucket. ``available`` never goes below zero."""

    __tablename__ = "wallets"

    wallet_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        comment="PW-... for personal, SW-... for sponsored",
    )
    owner_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    wallet_type: Mapped[WalletType] = mapped_column(Enum(WalletType), nullable=False)
    status: Mapped[WalletStatus] = mapped_column(
        Enum(WalletStatus), default=WalletStatus.ACTIVE, nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    available: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    pending: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    reserved: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)

    total_received: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_transaction_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("owner_id", "wallet_type", name="uq_wallets_owner_type"),
        CheckConstraint("available >= 0", name="ck_wallets_available_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Wallet(number='{self.wallet_number}', available={self.available})>"


class Transaction(Base, UUIDModel, TimeStampedModel):
    """
    Immutable ledger entry.

    Once completed, only ``status`` may change (to reversed); corrections are
    new entries linked through ``reversal_of_id``.
    """

    __tablename__ = "transactions"

    transaction_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable number (e.g., TXN-2026-000001)",
    )
    wallet_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("wallets.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    category: Mapped[TransactionCategory] = mapped_column(
        Enum(TransactionCategory), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus), default=TransactionStatus.PENDING, nullable=False
    )
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    from_party: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    to_party: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    reversal_of_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("transactions.id", ondelete="RESTRICT"),
        nullable=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    status_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reversed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_reference", "reference_type", "reference_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(number='{self.transaction_number}', "
            f"{self.transaction_type} {self.amount} {self.status})>"
        )
