"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import os
from datetime import date
from decimal import Decimal
from uuid import uuid4

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from careledger.core.actor import Actor  # noqa: E402
from careledger.core.enums import (  # noqa: E402
    EnrollmentStatus,
    EnrollmentType,
    PaymentPlan,
    PremiumPaymentMethod,
    UserRole,
)
from careledger.db.connection import build_session_maker  # noqa: E402
from careledger.models import Base, Enrollment, EnrollmentStatusHistory, Plan  # noqa: E402
from careledger.schemas.plan import PlanCreate  # noqa: E402
from careledger.services.numbering import ENROLLMENT_PREFIX, generate_number  # noqa: E402
from careledger.services.utilization import initialize_limits  # noqa: E402

COVERAGE_START = date(2026, 1, 1)
COVERAGE_END = date(2027, 1, 1)
SERVICE_DATE = date(2026, 3, 15)


# =============================================================================
# Database
# =============================================================================


def create_test_engine() -> AsyncEngine:
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def engine():
    engine = create_test_engine()
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def admin() -> Actor:
    return Actor(id=uuid4(), role=UserRole.SUPER_ADMIN)


@pytest.fixture
def provider() -> Actor:
    return Actor(id=uuid4(), role=UserRole.PROVIDER)


@pytest.fixture
def patient() -> Actor:
    return Actor(id=uuid4(), role=UserRole.PATIENT)


@pytest.fixture
def sponsor() -> Actor:
    return Actor(id=uuid4(), role=UserRole.SPONSOR)


# =============================================================================
# Plans and Enrollments
# =============================================================================


def plan_payload(**overrides) -> dict:
    """Standard plan: outpatient 80% / copay 20, deductible 500, OOP max 3000."""
    payload = {
        "plan_code": f"STD-{uuid4().hex[:6].upper()}",
        "name": "Standard Care",
        "category": "standard",
        "plan_type": "individual",
        "coverage": {
            "outpatient": {"covered": True, "copayment": "20", "coverage_percentage": "80"},
            "specialist_consultation": {
                "covered": True,
                "copayment": "30",
                "coverage_percentage": "70",
                "limit": {"amount": "300", "period": "visit"},
            },
            "inpatient": {
                "covered": True,
                "copayment": "0",
                "coverage_percentage": "90",
                "limit": {"amount": "5000", "period": "year"},
            },
            "prescription": {"covered": True, "copayment": "5", "coverage_percentage": "100"},
            "dental": {"covered": False},
        },
        "pricing": {
            "monthly_premium": {"individual": "100", "family": "250"},
            "deductible": {"individual": "500", "family": "1000"},
            "max_out_of_pocket": {"individual": "3000", "family": "6000"},
        },
        "annual_maximum": "100000",
        "dependents_allowed": 4,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_plan(session):
    """Factory persisting a plan built from ``plan_payload``."""

    async def _make(**overrides) -> Plan:
        data = PlanCreate.model_validate(plan_payload(**overrides))
        plan = Plan(
            plan_code=data.plan_code,
            name=data.name,
            category=data.category,
            plan_type=data.plan_type,
            status=data.status,
            is_available_for_new_enrollment=data.is_available_for_new_enrollment,
            open_enrollment_start=data.open_enrollment_start,
            open_enrollment_end=data.open_enrollment_end,
            coverage=data.model_dump(mode="json")["coverage"],
            pricing=data.model_dump(mode="json")["pricing"],
            currency=data.currency or "USD",
            annual_maximum=data.annual_maximum,
            lifetime_maximum=data.lifetime_maximum,
            dependents_allowed=data.dependents_allowed,
            total_enrollments=0,
            active_members=0,
            total_claims_paid=0,
            total_claims_amount=Decimal("0.00"),
        )
        session.add(plan)
        await session.flush()
        return plan

    return _make


@pytest.fixture
async def plan(make_plan) -> Plan:
    return await make_plan()


@pytest.fixture
def make_enrollment(session):
    """Factory persisting an enrollment with limits snapshotted from the plan."""

    async def _make(
        plan: Plan,
        user_id,
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        payment_plan: PaymentPlan = PaymentPlan.ANNUAL,
        payment_amount: Decimal = Decimal("1200.00"),
        payment_method: PremiumPaymentMethod = PremiumPaymentMethod.CARD,
        coverage_start_date: date = COVERAGE_START,
        coverage_end_date: date = COVERAGE_END,
    ) -> Enrollment:
        enrollment = Enrollment(
            enrollment_number=await generate_number(
                session, Enrollment.enrollment_number, ENROLLMENT_PREFIX
            ),
            user_id=user_id,
            plan_id=plan.id,
            enrollment_type=EnrollmentType.INDIVIDUAL,
            dependents=[],
            status=status,
            payment_plan=payment_plan,
            payment_amount=payment_amount,
            payment_method=payment_method,
            currency=plan.currency,
            coverage_start_date=coverage_start_date,
            coverage_end_date=coverage_end_date,
            renewal_date=coverage_end_date,
            status_history=[
                EnrollmentStatusHistory(sequence=1, previous_status=None, new_status=status)
            ],
        )
        initialize_limits(enrollment, plan)
        plan.total_enrollments += 1
        plan.active_members += 1
        session.add(enrollment)
        await session.flush()
        return enrollment

    return _make


@pytest.fixture
async def enrollment(make_enrollment, plan, patient) -> Enrollment:
    return await make_enrollment(plan, patient.id)


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
