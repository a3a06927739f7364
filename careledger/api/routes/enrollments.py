"""
Enrollment API Endpoints.

Source: HMO enrollment controller
Verified: 2026-10-18
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import get_current_actor
from careledger.core.actor import Actor
from careledger.db.connection import get_session
from careledger.schemas.enrollment import (
    EnrollmentCancel,
    EnrollmentCreate,
    EnrollmentRenew,
    EnrollmentResponse,
)
from careledger.services.enrollment_service import EnrollmentService

router = APIRouter(
    prefix="/api/v1/enrollments",
    tags=["enrollments"],
)


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    body: EnrollmentCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    """Enroll in a plan; the enrollment starts pending."""
    enrollment = await EnrollmentService(session).enroll(
        actor,
        plan_id=body.plan_id,
        enrollment_type=body.enrollment_type,
        payment_plan=body.payment_plan,
        payment_method=body.payment_method,
        user_id=body.user_id,
        coverage_start_date=body.coverage_start_date,
        dependents=[dependent.model_dump(mode="json") for dependent in body.dependents],
        primary_care_provider_id=body.primary_care_provider_id,
        beneficiary=body.beneficiary,
        auto_renewal=body.auto_renewal,
    )
    return EnrollmentResponse.model_validate(enrollment)


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    enrollment = await EnrollmentService(session).get_enrollment(enrollment_id, actor)
    return EnrollmentResponse.model_validate(enrollment)


@router.post("/{enrollment_id}/activate", response_model=EnrollmentResponse)
async def activate_enrollment(
    enrollment_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    enrollment = await EnrollmentService(session).activate_enrollment(enrollment_id, actor)
    return EnrollmentResponse.model_validate(enrollment)


@router.post("/{enrollment_id}/cancel", response_model=EnrollmentResponse)
async def cancel_enrollment(
    enrollment_id: UUID,
    body: EnrollmentCancel,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    enrollment = await EnrollmentService(session).cancel_enrollment(
        enrollment_id, actor, reason=body.reason, effective_date=body.effective_date
    )
    return EnrollmentResponse.model_validate(enrollment)


@router.post(
    "/{enrollment_id}/renew",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def renew_enrollment(
    enrollment_id: UUID,
    body: EnrollmentRenew,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    enrollment = await EnrollmentService(session).renew_enrollment(
        enrollment_id, actor, payment_method=body.payment_method
    )
    return EnrollmentResponse.model_validate(enrollment)
