"""
Sponsorship Model.
Source: sponsorship document schema
Verified: 2026-10-18
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import Date, Enum, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from careledger.core.enums import SponsorshipStatus
from careledger.models.base import Base, TimeStampedModel, UUIDModel


class Sponsorship(Base, UUIDModel, TimeStampedModel):
    """Funds held for a beneficiary's sponsored wallet."""

    __tablename__ = "sponsorships"

    sponsorship_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    sponsor_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    beneficiary_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)

    amount_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_used: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    amount_remaining: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[SponsorshipStatus] = mapped_column(
        Enum(SponsorshipStatus), default=SponsorshipStatus.ACTIVE, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Sponsorship(number='{self.sponsorship_number}', remaining={self.amount_remaining})>"
