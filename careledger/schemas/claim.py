"""
Pydantic Schemas for HMO Claims.
Source: HMO claim document schema and claim/claim-admin request bodies
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from careledger.core.enums import (
    AppealStatus,
    ClaimantType,
    ClaimPaymentMethod,
    ClaimStatus,
    ServiceType,
)


# =============================================================================
# Nested Schemas
# =============================================================================


class Diagnosis(BaseModel):
    """Primary diagnosis of the claim."""

    code: str = Field(..., min_length=1, max_length=20, description="Diagnosis code (ICD-10)")
    description: Optional[str] = Field(None, max_length=500)


class Billing(BaseModel):
    """Amounts billed by the claimant."""

    total_billed: Decimal = Field(..., gt=0, description="Total billed amount")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    breakdown: Optional[list[dict[str, Any]]] = Field(None, description="Itemised charges")


class PatientResponsibility(BaseModel):
    """Patient share of the billed amount."""

    copayment: Decimal
    deductible: Decimal
    coinsurance: Decimal
    total: Decimal


# =============================================================================
# Request Schemas
# =============================================================================


class ClaimSubmit(BaseModel):
    """Schema for submitting a claim."""

    enrollment_id: UUID
    patient_id: UUID
    service_type: ServiceType
    service_date: date
    discharge_date: Optional[date] = None
    diagnosis: Diagnosis
    procedure: Optional[dict[str, str]] = None
    description: Optional[str] = Field(None, max_length=2000)
    billing: Billing
    documents: Optional[list[str]] = None

    @model_validator(mode="after")
    def check_dates(self) -> "ClaimSubmit":
        if self.discharge_date and self.discharge_date < self.service_date:
            raise ValueError("discharge_date cannot be before service_date")
        return self


class BillingUpdate(BaseModel):
    """Billing fields a claimant may amend."""

    total_billed: Optional[Decimal] = Field(None, gt=0)
    breakdown: Optional[list[dict[str, Any]]] = None


class ClaimUpdate(BaseModel):
    """Schema for amending a claim before it is decided."""

    billing: Optional[BillingUpdate] = None
    documents: Optional[list[str]] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ClaimAssign(BaseModel):
    """Schema for assigning a claim to a reviewer."""

    reviewer_id: Optional[UUID] = None


class ClaimApprove(BaseModel):
    """Schema for approving a claim."""

    amount: Optional[Decimal] = Field(None, ge=0, description="Defaults to the covered amount")
    notes: Optional[str] = Field(None, max_length=2000)
    auto_pay: Optional[bool] = None
    payment_method: Optional[ClaimPaymentMethod] = None


class ClaimReject(BaseModel):
    """Schema for rejecting a claim. ``reason`` is validated by the service."""

    reason: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)


class ClaimPartialApprove(BaseModel):
    """Schema for a partial approval."""

    approved_amount: Optional[Decimal] = None
    rejected_amount: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ClaimPay(BaseModel):
    """Schema for paying an approved claim."""

    amount: Optional[Decimal] = Field(None, description="Defaults to the approved amount")
    method: Optional[ClaimPaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ClaimAppeal(BaseModel):
    """Schema for appealing a decision."""

    reason: Optional[str] = Field(None, max_length=2000)
    documents: Optional[list[str]] = None


class AppealReview(BaseModel):
    """Schema for deciding an appeal."""

    decision: Literal["approved", "rejected"]
    notes: Optional[str] = Field(None, max_length=2000)
    amount: Optional[Decimal] = Field(None, ge=0)


class ClaimCancel(BaseModel):
    """Schema for withdrawing a claim."""

    reason: Optional[str] = Field(None, max_length=1000)


# =============================================================================
# Response Schemas
# =============================================================================


class ClaimHistoryEntry(BaseModel):
    """One status-history row."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int
    previous_status: Optional[ClaimStatus] = None
    new_status: ClaimStatus
    event: str
    changed_at: datetime
    changed_by: Optional[UUID] = None
    actor_type: str
    notes: Optional[str] = None
    reason: Optional[str] = None


class ClaimResponse(BaseModel):
    """Schema for claim response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    claim_number: str
    enrollment_id: UUID
    plan_id: UUID
    patient_id: UUID
    claimant_id: UUID
    claimant_type: ClaimantType
    service_type: ServiceType
    service_date: date
    discharge_date: Optional[date] = None
    diagnosis: dict
    description: Optional[str] = None
    documents: Optional[list[str]] = None
    notes: Optional[str] = None
    status: ClaimStatus

    currency: str
    total_billed: Decimal
    billing_breakdown: Optional[list[dict[str, Any]]] = None
    coverage_percentage: Decimal
    covered_amount: Decimal
    patient_responsibility: PatientResponsibility
    approved_amount: Decimal
    rejected_amount: Decimal
    amount_paid: Decimal
    payment_date: Optional[datetime] = None
    payment_method: Optional[ClaimPaymentMethod] = None
    payment_reference: Optional[str] = None

    reviewer_id: Optional[UUID] = None
    review_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    appeal_submitted: bool
    appeal_status: Optional[AppealStatus] = None
    appeal_reason: Optional[str] = None

    submitted_at: datetime
    review_completed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status_history: list[ClaimHistoryEntry]

    @model_validator(mode="before")
    @classmethod
    def nest_patient_responsibility(cls, data):
        """Group the flat ORM columns into the patient responsibility object."""
        if isinstance(data, dict) or not hasattr(data, "claim_number"):
            return data
        values = {name: getattr(data, name) for name in cls.model_fields if hasattr(data, name)}
        values["patient_responsibility"] = PatientResponsibility(
            copayment=data.copayment,
            deductible=data.deductible_amount,
            coinsurance=data.coinsurance,
            total=data.patient_responsibility,
        )
        values["status_history"] = [
            ClaimHistoryEntry.model_validate(entry) for entry in data.status_history
        ]
        return values


class ClaimListResponse(BaseModel):
    """Schema for paginated claim list."""

    items: list[ClaimResponse]
    total: int


# =============================================================================
# Patient Coverage
# =============================================================================


class ClaimSummary(BaseModel):
    """Short claim row for coverage lookups."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    claim_number: str
    service_type: ServiceType
    service_date: date
    total_billed: Decimal
    approved_amount: Decimal
    status: ClaimStatus


class CoverageLimits(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deductible: Decimal
    max_out_of_pocket: Decimal
    annual_maximum: Optional[Decimal] = None
    remaining_annual: Optional[Decimal] = None
    lifetime_maximum: Optional[Decimal] = None
    remaining_lifetime: Optional[Decimal] = None


class CoverageUtilization(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    claims_submitted: int
    claims_pending: int
    claims_approved: int
    claims_rejected: int
    deductible_met: Decimal
    out_of_pocket_spent: Decimal
    total_claims_amount: Decimal
    total_approved_amount: Decimal
    appointments_used: int
    prescriptions_used: int


class PatientCoverageResponse(BaseModel):
    """Active enrollment, plan benefits and recent claims of a patient."""

    enrollment_id: UUID
    enrollment_number: str
    membership_card_number: Optional[str] = None
    coverage_start_date: date
    coverage_end_date: date
    plan_id: UUID
    plan_code: str
    plan_name: str
    currency: str
    coverage: dict[str, Any]
    limits: CoverageLimits
    utilization: CoverageUtilization
    recent_claims: list[ClaimSummary]
