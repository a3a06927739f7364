"""
Enrollment Model.
Source: HMO enrollment document schema (limits snapshot, utilization, cancellation)
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from careledger.core.enums import (
    EnrollmentStatus,
    EnrollmentType,
    PaymentPlan,
    PremiumPaymentMethod,
    RefundStatus,
)
from careledger.models.base import Base, TimeStampedModel, UUIDModel, utc_now

ZERO = Decimal("0.00")


class Enrollment(Base, UUIDModel, TimeStampedModel):
    """
    A member's subscription to a plan for one coverage window.

    Limits are snapshotted from the plan at enrollment time. Utilization
    columns are written only through ``careledger.services.utilization``.
    """

    __tablename__ = "enrollments"

    enrollment_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable number (e.g., ENR-2026-000001)",
    )
    membership_card_number: Mapped[Optional[str]] = mapped_column(
        String(30),
        unique=True,
        nullable=True,
        comment="Issued on activation (e.g., HMO-2026-000001)",
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Enrolled member",
    )
    plan_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    enrollment_type: Mapped[EnrollmentType] = mapped_column(Enum(EnrollmentType), nullable=False)
    dependents: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    primary_care_provider_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    beneficiary: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(EnrollmentStatus),
        default=EnrollmentStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Payment
    payment_plan: Mapped[PaymentPlan] = mapped_column(Enum(PaymentPlan), nullable=False)
    payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, comment="Premium charged per payment period"
    )
    payment_method: Mapped[PremiumPaymentMethod] = mapped_column(
        Enum(PremiumPaymentMethod), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    auto_renewal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_payment_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Coverage window
    coverage_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    coverage_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    renewal_date: Mapped[date] = mapped_column(Date, nullable=False)
    renewed_from_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("enrollments.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Limits snapshot
    deductible: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    max_out_of_pocket: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    annual_maximum: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    remaining_annual: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    lifetime_maximum: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    remaining_lifetime: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    # Utilization
    claims_submitted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claims_pending: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claims_approved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claims_rejected: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deductible_met: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    out_of_pocket_spent: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    total_claims_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    total_approved_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    appointments_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    prescriptions_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Cancellation
    cancellation_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancellation_effective_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    refund_status: Mapped[Optional[RefundStatus]] = mapped_column(
        Enum(RefundStatus), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    status_history: Mapped[list["EnrollmentStatusHistory"]] = relationship(
        back_populates="enrollment",
        cascade="all, delete-orphan",
        order_by="EnrollmentStatusHistory.sequence",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_enrollments_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Enrollment(number='{self.enrollment_number}', status={self.status})>"


class EnrollmentStatusHistory(Base, UUIDModel):
    """Audit trail of enrollment status changes."""

    __tablename__ = "enrollment_status_history"

    enrollment_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_status: Mapped[Optional[EnrollmentStatus]] = mapped_column(
        Enum(EnrollmentStatus), nullable=True
    )
    new_status: Mapped[EnrollmentStatus] = mapped_column(Enum(EnrollmentStatus), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    changed_by: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    enrollment: Mapped["Enrollment"] = relationship(back_populates="status_history")
