"""
Claim Model for HMO Claims Adjudication and Settlement.
Source: HMO claim document schema (billing, status history, appeal, processing)
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
    AppealStatus,
    ClaimantType,
    ClaimPaymentMethod,
    ClaimStatus,
    ServiceType,
)
from careledger.models.base import Base, TimeStampedModel, UUIDModel, utc_now

ZERO = Decimal("0.00")


class Claim(Base, UUIDModel, TimeStampedModel):
    """
    Reimbursement request against an enrollment.

    Claims are financial records: they are never deleted and only change
    through the transitions in ``careledger.services.claim_state_machine``.
    ``amount_paid`` is written once, by the settlement service.
    """

    __tablename__ = "claims"

    claim_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable claim number (e.g., CLM-2026-000001)",
    )

    # Parties
    enrollment_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("enrollments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    plan_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True, comment="Member who received care"
    )
    claimant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True, comment="Submitter, paid on settlement"
    )
    claimant_type: Mapped[ClaimantType] = mapped_column(Enum(ClaimantType), nullable=False)

    # Service
    service_type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType), nullable=False, index=True
    )
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    discharge_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    diagnosis: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, comment="{code, description}"
    )
    procedure: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documents: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Claimant notes")

    # Billing
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    total_billed: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    billing_breakdown: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(
        JSON, nullable=True, comment="Itemised charges [{item, amount}]"
    )
    coverage_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=ZERO, nullable=False
    )
    covered_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    copayment: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    deductible_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    coinsurance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    patient_responsibility: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False, comment="copayment + deductible + coinsurance"
    )
    approved_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    rejected_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[Optional[ClaimPaymentMethod]] = mapped_column(
        Enum(ClaimPaymentMethod), nullable=True
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True, comment="Ledger transaction number"
    )

    # Contribution currently applied to enrollment utilization
    utilization_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    applied_deductible: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    applied_out_of_pocket: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=ZERO, nullable=False
    )
    applied_benefit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)

    # Status
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus),
        default=ClaimStatus.SUBMITTED,
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Appeal
    appeal_submitted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    appeal_submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    appeal_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    appeal_documents: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    appeal_status: Mapped[Optional[AppealStatus]] = mapped_column(
        Enum(AppealStatus), nullable=True
    )
    appeal_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    appeal_review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Processing timestamps
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payment_initiated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    status_history: Mapped[list["ClaimStatusHistory"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimStatusHistory.sequence",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_claims_enrollment_service", "enrollment_id", "service_type"),
        Index("ix_claims_claimant_status", "claimant_id", "status"),
    )

    @property
    def is_paid(self) -> bool:
        return self.status == ClaimStatus.PAID or (self.amount_paid or ZERO) > ZERO

    def __repr__(self) -> str:
        return f"<Claim(number='{self.claim_number}', status={self.status})>"


class ClaimStatusHistory(Base, UUIDModel):
    """
    Status change history for a claim.

    Append-only: one row per successful transition.
    """

    __tablename__ = "claim_status_history"

    claim_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Associated claim ID",
    )
    sequence: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Position in the claim's audit trail"
    )
    previous_status: Mapped[Optional[ClaimStatus]] = mapped_column(
        Enum(ClaimStatus),
        nullable=True,
        comment="Previous status",
    )
    new_status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus),
        nullable=False,
        comment="New status",
    )
    event: Mapped[str] = mapped_column(String(30), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="When status changed",
    )
    changed_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        comment="User who changed status",
    )
    actor_type: Mapped[str] = mapped_column(
        String(20),
        default="system",
        nullable=False,
        comment="Actor role or 'system'",
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    claim: Mapped["Claim"] = relationship(back_populates="status_history")

    __table_args__ = (
        Index("ix_claim_status_history_claim_sequence", "claim_id", "sequence", unique=True),
    )

    def __repr__(self) -> str:
        return f"<ClaimStatusHistory(claim_id={self.claim_id}, {self.previous_status} -> {self.new_status})>"
