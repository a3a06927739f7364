"""
Plan Service.

Minimal plan catalog: seeding by a super-admin and lookup.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.config import settings
from careledger.core.actor import Actor
from careledger.db.connection import flush_changes
from careledger.models.plan import Plan
from careledger.schemas.plan import PlanCreate
from careledger.utils.errors import NotFound, PermissionDenied, ValidationError
from careledger.utils.logging import get_logger
from careledger.utils.money import ZERO

logger = get_logger(__name__)


class PlanService:
    """Service for plan seeding and lookup."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_plan(self, actor: Actor, payload: PlanCreate) -> Plan:
        """
        Create a plan from a validated payload.

        Raises:
            PermissionDenied: Caller is not a super-admin
            ValidationError: Plan code already used
        """
        if not actor.is_admin:
            raise PermissionDenied("Only super-admins can create plans")

        existing = await self.session.execute(
            select(Plan.id).where(Plan.plan_code == payload.plan_code)
        )
        if existing.first() is not None:
            raise ValidationError(f"Plan code {payload.plan_code} already exists")

        data = payload.model_dump(mode="json")
        plan = Plan(
            plan_code=payload.plan_code,
            name=payload.name,
            description=payload.description,
            category=payload.category,
            plan_type=payload.plan_type,
            status=payload.status,
            is_available_for_new_enrollment=payload.is_available_for_new_enrollment,
            open_enrollment_start=payload.open_enrollment_start,
            open_enrollment_end=payload.open_enrollment_end,
            coverage=data["coverage"],
            pricing=data["pricing"],
            currency=(payload.currency or settings.CARELEDGER_DEFAULT_CURRENCY).upper(),
            annual_maximum=payload.annual_maximum,
            lifetime_maximum=payload.lifetime_maximum,
            dependents_allowed=payload.dependents_allowed,
            total_enrollments=0,
            active_members=0,
            total_claims_paid=0,
            total_claims_amount=ZERO,
        )
        self.session.add(plan)
        await flush_changes(self.session)

        logger.info(f"Created plan {plan.plan_code} ({plan.category.value})")
        return plan

    async def get_plan(self, plan_id: UUID) -> Plan:
        result = await self.session.execute(select(Plan).where(Plan.id == plan_id))
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFound(f"Plan not found: {plan_id}")
        return plan
