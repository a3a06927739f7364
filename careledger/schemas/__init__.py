"""
Pydantic Schemas for the Claims and Settlement Core.

This module exports all request/response schemas for the API.
"""

from careledger.schemas.claim import (
    AppealReview,
    ClaimAppeal,
    ClaimApprove,
    ClaimAssign,
    ClaimCancel,
    ClaimListResponse,
    ClaimPartialApprove,
    ClaimPay,
    ClaimReject,
    ClaimResponse,
    ClaimSubmit,
)
from careledger.schemas.enrollment import (
    EnrollmentCancel,
    EnrollmentCreate,
    EnrollmentRenew,
    EnrollmentResponse,
)
from careledger.schemas.plan import CoverageLimit, CoverageRule, PlanCreate, PlanPricing, PlanResponse
from careledger.schemas.wallet import (
    AddFundsRequest,
    BalanceResponse,
    ReverseRequest,
    SponsorshipCreate,
    SponsorshipResponse,
    SponsorshipUse,
    TransactionResponse,
    WalletResponse,
)

__all__ = [
    # Claims
    "ClaimSubmit",
    "ClaimAssign",
    "ClaimApprove",
    "ClaimReject",
    "ClaimPartialApprove",
    "ClaimPay",
    "ClaimAppeal",
    "AppealReview",
    "ClaimCancel",
    "ClaimResponse",
    "ClaimListResponse",
    # Enrollments
    "EnrollmentCreate",
    "EnrollmentCancel",
    "EnrollmentRenew",
    "EnrollmentResponse",
    # Plans
    "CoverageLimit",
    "CoverageRule",
    "PlanPricing",
    "PlanCreate",
    "PlanResponse",
    # Wallets
    "WalletResponse",
    "BalanceResponse",
    "AddFundsRequest",
    "TransactionResponse",
    "ReverseRequest",
    "SponsorshipCreate",
    "SponsorshipUse",
    "SponsorshipResponse",
]
