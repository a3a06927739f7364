"""
Pydantic Schemas for HMO Plans.
Source: HMO plan catalog document schema
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from careledger.core.enums import (
    EnrollmentType,
    LimitPeriod,
    PlanCategory,
    PlanStatus,
    ServiceType,
)


# =============================================================================
# Coverage Rules
# =============================================================================


class CoverageLimit(BaseModel):
    """Maximum eligible amount for a service within a period."""

    amount: Decimal = Field(..., ge=0, description="Limit amount")
    period: LimitPeriod = Field(..., description="Window the limit applies to")


class CoverageRule(BaseModel):
    """Plan rule for one service type."""

    covered: bool = Field(default=False, description="Whether the service is covered")
    copayment: Decimal = Field(default=Decimal("0"), ge=0, description="Flat copayment per claim")
    coverage_percentage: Decimal = Field(
        default=Decimal("0"), ge=0, le=100, description="Percentage of eligible amount paid"
    )
    limit: Optional[CoverageLimit] = None


# =============================================================================
# Pricing
# =============================================================================


class PlanPricing(BaseModel):
    """Premiums and cost-sharing caps keyed by enrollment type."""

    monthly_premium: dict[EnrollmentType, Decimal] = Field(default_factory=dict)
    annual_premium: dict[EnrollmentType, Decimal] = Field(default_factory=dict)
    deductible: dict[EnrollmentType, Decimal] = Field(default_factory=dict)
    max_out_of_pocket: dict[EnrollmentType, Decimal] = Field(default_factory=dict)

    @model_validator(mode="after")
    def derive_annual_premium(self) -> "PlanPricing":
        """Annual premium defaults to twelve monthly premiums."""
        for enrollment_type, monthly in self.monthly_premium.items():
            self.annual_premium.setdefault(enrollment_type, monthly * 12)
        return self


# =============================================================================
# Plan Schemas
# =============================================================================


class PlanCreate(BaseModel):
    """Schema for seeding a plan."""

    plan_code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: PlanCategory = PlanCategory.STANDARD
    plan_type: EnrollmentType = EnrollmentType.INDIVIDUAL
    status: PlanStatus = PlanStatus.ACTIVE
    is_available_for_new_enrollment: bool = True
    open_enrollment_start: Optional[date] = None
    open_enrollment_end: Optional[date] = None
    coverage: dict[ServiceType, CoverageRule] = Field(default_factory=dict)
    pricing: PlanPricing = Field(default_factory=PlanPricing)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    annual_maximum: Optional[Decimal] = Field(None, ge=0)
    lifetime_maximum: Optional[Decimal] = Field(None, ge=0)
    dependents_allowed: int = Field(default=0, ge=0)


class PlanResponse(BaseModel):
    """Schema for plan response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plan_code: str
    name: str
    description: Optional[str] = None
    category: PlanCategory
    plan_type: EnrollmentType
    status: PlanStatus
    is_available_for_new_enrollment: bool
    open_enrollment_start: Optional[date] = None
    open_enrollment_end: Optional[date] = None
    coverage: dict[ServiceType, CoverageRule]
    pricing: PlanPricing
    currency: str
    annual_maximum: Optional[Decimal] = None
    lifetime_maximum: Optional[Decimal] = None
    dependents_allowed: int
    total_enrollments: int
    active_members: int
    total_claims_paid: int
    total_claims_amount: Decimal
    average_claim_processing_days: Optional[Decimal] = None
    created_at: datetime
