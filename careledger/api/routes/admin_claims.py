"""
Claim Administration API Endpoints.

Provides:
- Reviewer assignment
- Approve / reject / partial approval
- Payment of approved claims
- Appeal decisions

Source: HMO claim-admin controller
Verified: 2026-10-18
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import require_admin
from careledger.core.actor import Actor
from careledger.db.connection import get_session
from careledger.schemas.claim import (
    AppealReview,
    ClaimApprove,
    ClaimAssign,
    ClaimPartialApprove,
    ClaimPay,
    ClaimReject,
    ClaimResponse,
)
from careledger.schemas.wallet import TransactionResponse, WalletResponse
from careledger.services.claims_service import ClaimsService

router = APIRouter(
    prefix="/api/v1/admin/claims",
    tags=["claims-admin"],
)


class PaymentResponse(BaseModel):
    """Paid claim with the ledger entry and the credited wallet."""

    claim: ClaimResponse
    transaction: TransactionResponse
    wallet: WalletResponse


@router.post("/{claim_id}/assign", response_model=ClaimResponse)
async def assign_claim(
    claim_id: UUID,
    body: ClaimAssign,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).assign(claim_id, actor, reviewer_id=body.reviewer_id)
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/approve", response_model=ClaimResponse)
async def approve_claim(
    claim_id: UUID,
    body: ClaimApprove,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Approve a claim, optionally paying it straight away."""
    claim = await ClaimsService(session).approve(
        claim_id,
        actor,
        amount=body.amount,
        notes=body.notes,
        auto_pay=body.auto_pay,
        payment_method=body.payment_method,
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/reject", response_model=ClaimResponse)
async def reject_claim(
    claim_id: UUID,
    body: ClaimReject,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).reject(claim_id, actor, reason=body.reason, notes=body.notes)
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/partial-approve", response_model=ClaimResponse)
async def partially_approve_claim(
    claim_id: UUID,
    body: ClaimPartialApprove,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).partially_approve(
        claim_id,
        actor,
        approved_amount=body.approved_amount,
        rejected_amount=body.rejected_amount,
        notes=body.notes,
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/pay", response_model=PaymentResponse)
async def pay_claim(
    claim_id: UUID,
    body: ClaimPay,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> PaymentResponse:
    """Credit the approved amount to the claimant's wallet."""
    result = await ClaimsService(session).pay(
        claim_id, actor, amount=body.amount, method=body.method, notes=body.notes
    )
    return PaymentResponse(
        claim=ClaimResponse.model_validate(result.claim),
        transaction=TransactionResponse.model_validate(result.transaction),
        wallet=WalletResponse.model_validate(result.wallet),
    )


@router.post("/{claim_id}/review-appeal", response_model=ClaimResponse)
async def review_appeal(
    claim_id: UUID,
    body: AppealReview,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).review_appeal(
        claim_id, actor, decision=body.decision, notes=body.notes, amount=body.amount
    )
    return ClaimResponse.model_validate(claim)
