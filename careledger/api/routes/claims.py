"""
Claims API Endpoints.

Provides:
- Claim submission
- Listing and retrieval of the caller's claims
- Amendments before review
- Patient coverage lookup
- Appeals and withdrawal

Source: HMO claim controller
Verified: 2026-10-18
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import get_current_actor
from careledger.core.actor import Actor
from careledger.core.enums import ClaimStatus
from careledger.db.connection import get_session
from careledger.schemas.claim import (
    ClaimAppeal,
    ClaimCancel,
    ClaimListResponse,
    ClaimResponse,
    ClaimSubmit,
    ClaimSummary,
    ClaimUpdate,
    CoverageLimits,
    CoverageUtilization,
    PatientCoverageResponse,
)
from careledger.services.claims_service import ClaimsService, ClaimUpdateDTO

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


@router.post("", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    body: ClaimSubmit,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Submit a claim against an active enrollment."""
    claim = await ClaimsService(session).submit_claim(
        actor,
        enrollment_id=body.enrollment_id,
        patient_id=body.patient_id,
        service_type=body.service_type,
        service_date=body.service_date,
        diagnosis=body.diagnosis.model_dump(),
        total_billed=body.billing.total_billed,
        currency=body.billing.currency,
        procedure=body.procedure,
        description=body.description,
        discharge_date=body.discharge_date,
        billing_breakdown=body.billing.breakdown,
        documents=body.documents,
    )
    return ClaimResponse.model_validate(claim)


@router.get("", response_model=ClaimListResponse)
async def list_claims(
    status_filter: Optional[ClaimStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimListResponse:
    claims = await ClaimsService(session).list_claims(
        actor, status=status_filter, limit=limit, offset=offset
    )
    items = [ClaimResponse.model_validate(claim) for claim in claims]
    return ClaimListResponse(items=items, total=len(items))


@router.get("/patients/{patient_id}/coverage", response_model=PatientCoverageResponse)
async def get_patient_coverage(
    patient_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> PatientCoverageResponse:
    """Active enrollment limits, utilization and recent claims of a patient."""
    summary = await ClaimsService(session).get_patient_coverage(actor, patient_id)
    enrollment = summary.enrollment
    return PatientCoverageResponse(
        enrollment_id=enrollment.id,
        enrollment_number=enrollment.enrollment_number,
        membership_card_number=enrollment.membership_card_number,
        coverage_start_date=enrollment.coverage_start_date,
        coverage_end_date=enrollment.coverage_end_date,
        plan_id=summary.plan.id,
        plan_code=summary.plan.plan_code,
        plan_name=summary.plan.name,
        currency=enrollment.currency,
        coverage=summary.plan.coverage or {},
        limits=CoverageLimits.model_validate(enrollment),
        utilization=CoverageUtilization.model_validate(enrollment),
        recent_claims=[ClaimSummary.model_validate(claim) for claim in summary.recent_claims],
    )


@router.patch("/{claim_id}", response_model=ClaimResponse)
async def update_claim(
    claim_id: UUID,
    body: ClaimUpdate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Amend billing, documents or notes of a claim that is not decided yet."""
    update_dto = ClaimUpdateDTO(
        total_billed=body.billing.total_billed if body.billing else None,
        billing_breakdown=body.billing.breakdown if body.billing else None,
        documents=body.documents,
        notes=body.notes,
    )
    claim = await ClaimsService(session).update_claim(claim_id, actor, update_dto)
    return ClaimResponse.model_validate(claim)


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).get_claim(claim_id, actor)
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/appeal", response_model=ClaimResponse)
async def appeal_claim(
    claim_id: UUID,
    body: ClaimAppeal,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Appeal a decision (once per claim)."""
    claim = await ClaimsService(session).appeal(
        claim_id, actor, reason=body.reason, documents=body.documents
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/cancel", response_model=ClaimResponse)
async def cancel_claim(
    claim_id: UUID,
    body: ClaimCancel,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Withdraw a claim that has not been decided."""
    claim = await ClaimsService(session).cancel(claim_id, actor, reason=body.reason)
    return ClaimResponse.model_validate(claim)
