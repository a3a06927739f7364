"""
Plan API Endpoints.

Minimal catalog access: super-admin seeding and lookup.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import get_current_actor, require_admin
from careledger.core.actor import Actor
from careledger.db.connection import get_session
from careledger.schemas.plan import PlanCreate, PlanResponse
from careledger.services.plan_service import PlanService

router = APIRouter(
    prefix="/api/v1/plans",
    tags=["plans"],
)


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    body: PlanCreate,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> PlanResponse:
    plan = await PlanService(session).create_plan(actor, body)
    return PlanResponse.model_validate(plan)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: UUID,
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
    session: AsyncSession = Depends(get_session),
) -> PlanResponse:
    plan = await PlanService(session).get_plan(plan_id)
    return PlanResponse.model_validate(plan)
