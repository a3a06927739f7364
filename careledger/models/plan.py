"""
HMO Plan Model.
Source: HMO plan catalog document schema (coverage, pricing, limits, statistics)
Verified: 2026-10-18

The plan catalog owns plans. The claims core reads coverage, pricing and
limits and only ever writes the aggregate statistics columns.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Date, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from careledger.core.enums import EnrollmentType, PlanCategory, PlanStatus
from careledger.models.base import Base, TimeStampedModel, UUIDModel


class Plan(Base, UUIDModel, TimeStampedModel):
    """
    Coverage product.

    ``coverage`` maps service type -> {covered, copayment, coverage_percentage,
    limit: {amount, period}}. ``pricing`` holds per-enrollment-type premiums,
    deductibles and out-of-pocket maxima. Both are validated by
    ``careledger.schemas.plan`` before they are stored.
    """

    __tablename__ = "plans"

    plan_code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Catalog plan code",
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[PlanCategory] = mapped_column(
        Enum(PlanCategory),
        nullable=False,
        comment="Plan tier",
    )
    plan_type: Mapped[EnrollmentType] = mapped_column(
        Enum(EnrollmentType),
        nullable=False,
        comment="Primary enrollment type the plan is sold for",
    )
    status: Mapped[PlanStatus] = mapped_column(
        Enum(PlanStatus),
        default=PlanStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    is_available_for_new_enrollment: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    open_enrollment_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    open_enrollment_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Benefit rules
    coverage: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Service type -> coverage rule",
    )
    pricing: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Premiums, deductibles and out-of-pocket maxima per enrollment type",
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    # Limits
    annual_maximum: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True, comment="Annual benefit maximum"
    )
    lifetime_maximum: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True, comment="Lifetime benefit maximum"
    )
    dependents_allowed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Aggregate statistics (written by enrollment and settlement commands)
    total_enrollments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active_members: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_claims_paid: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_claims_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    average_claim_processing_days: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(8, 2), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def is_open_for_enrollment(self, on: date) -> bool:
        """Active, available, and inside the open-enrollment window if one is set."""
        if self.status != PlanStatus.ACTIVE or not self.is_available_for_new_enrollment:
            return False
        if self.open_enrollment_start and on < self.open_enrollment_start:
            return False
        if self.open_enrollment_end and on > self.open_enrollment_end:
            return False
        return True

    def __repr__(self) -> str:
        return f"<Plan(code='{self.plan_code}', status={self.status})>"
