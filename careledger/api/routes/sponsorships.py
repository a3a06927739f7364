"""
Sponsorship API Endpoints.

Source: sponsorship controller
Verified: 2026-10-18
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import get_current_actor
from careledger.core.actor import Actor
from careledger.db.connection import get_session
from careledger.schemas.wallet import (
    SponsorshipCreate,
    SponsorshipResponse,
    SponsorshipUse,
    TransactionResponse,
)
from careledger.services.sponsorship_service import SponsorshipService

router = APIRouter(
    prefix="/api/v1/sponsorships",
    tags=["sponsorships"],
)


@router.post("", response_model=SponsorshipResponse, status_code=status.HTTP_201_CREATED)
async def create_sponsorship(
    body: SponsorshipCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> SponsorshipResponse:
    sponsorship = await SponsorshipService(session).create_sponsorship(
        actor,
        beneficiary_id=body.beneficiary_id,
        amount=body.amount,
        start_date=body.start_date,
        end_date=body.end_date,
        description=body.description,
    )
    return SponsorshipResponse.model_validate(sponsorship)


@router.post("/{sponsorship_id}/use", response_model=TransactionResponse)
async def use_sponsorship(
    sponsorship_id: UUID,
    body: SponsorshipUse,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> TransactionResponse:
    transaction = await SponsorshipService(session).use_sponsorship(
        sponsorship_id, actor, amount=body.amount, description=body.description
    )
    return TransactionResponse.model_validate(transaction)


@router.post("/{sponsorship_id}/pause", response_model=SponsorshipResponse)
async def pause_sponsorship(
    sponsorship_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> SponsorshipResponse:
    sponsorship = await SponsorshipService(session).pause(sponsorship_id, actor)
    return SponsorshipResponse.model_validate(sponsorship)


@router.post("/{sponsorship_id}/resume", response_model=SponsorshipResponse)
async def resume_sponsorship(
    sponsorship_id: UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> SponsorshipResponse:
    sponsorship = await SponsorshipService(session).resume(sponsorship_id, actor)
    return SponsorshipResponse.model_validate(sponsorship)
