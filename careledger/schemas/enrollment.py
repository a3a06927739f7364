"""
Pydantic Schemas for HMO Enrollments.
Source: HMO enrollment document schema and enrollment request bodies
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from careledger.core.enums import (
    EnrollmentStatus,
    EnrollmentType,
    PaymentPlan,
    PremiumPaymentMethod,
    RefundStatus,
)


class Dependent(BaseModel):
    """Covered dependent of a family enrollment."""

    name: str = Field(..., min_length=1, max_length=200)
    relationship: str = Field(..., min_length=1, max_length=50)
    date_of_birth: Optional[date] = None


class EnrollmentCreate(BaseModel):
    """Schema for enrolling in a plan."""

    plan_id: UUID
    enrollment_type: EnrollmentType = EnrollmentType.INDIVIDUAL
    payment_plan: PaymentPlan = PaymentPlan.MONTHLY
    payment_method: PremiumPaymentMethod
    user_id: Optional[UUID] = Field(None, description="Admins only; defaults to the caller")
    coverage_start_date: Optional[date] = None
    dependents: list[Dependent] = Field(default_factory=list)
    primary_care_provider_id: Optional[UUID] = None
    beneficiary: Optional[dict[str, Any]] = None
    auto_renewal: bool = False


class EnrollmentCancel(BaseModel):
    """Schema for cancelling an enrollment."""

    reason: Optional[str] = Field(None, max_length=1000)
    effective_date: Optional[date] = None


class EnrollmentRenew(BaseModel):
    """Schema for renewing an enrollment."""

    payment_method: Optional[PremiumPaymentMethod] = None


class EnrollmentHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    previous_status: Optional[EnrollmentStatus] = None
    new_status: EnrollmentStatus
    changed_at: datetime
    changed_by: Optional[UUID] = None
    reason: Optional[str] = None


class EnrollmentResponse(BaseModel):
    """Schema for enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enrollment_number: str
    membership_card_number: Optional[str] = None
    user_id: UUID
    plan_id: UUID
    enrollment_type: EnrollmentType
    status: EnrollmentStatus
    dependents: list[dict[str, Any]]

    payment_plan: PaymentPlan
    payment_amount: Decimal
    payment_method: PremiumPaymentMethod
    currency: str
    auto_renewal: bool

    coverage_start_date: date
    coverage_end_date: date
    renewal_date: date
    renewed_from_id: Optional[UUID] = None

    deductible: Decimal
    max_out_of_pocket: Decimal
    annual_maximum: Optional[Decimal] = None
    remaining_annual: Optional[Decimal] = None
    lifetime_maximum: Optional[Decimal] = None
    remaining_lifetime: Optional[Decimal] = None

    claims_submitted: int
    claims_pending: int
    claims_approved: int
    claims_rejected: int
    deductible_met: Decimal
    out_of_pocket_spent: Decimal
    total_claims_amount: Decimal
    total_approved_amount: Decimal

    cancellation_effective_date: Optional[date] = None
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    refund_status: Optional[RefundStatus] = None

    status_history: list[EnrollmentHistoryEntry]
    created_at: datetime
