"""
Claims and Settlement API Tests.
End-to-end coverage of the HTTP surface against an in-memory database.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from careledger.api.main import app
from careledger.core.actor import Actor
from careledger.core.enums import UserRole
from careledger.db import connection
from careledger.db.connection import build_session_maker
from tests.conftest import create_schema, create_test_engine, plan_payload

ADMIN = Actor(id=uuid4(), role=UserRole.SUPER_ADMIN)
PROVIDER = Actor(id=uuid4(), role=UserRole.PROVIDER)


def headers(actor: Actor) -> dict[str, str]:
    return {"X-User-Id": str(actor.id), "X-User-Role": actor.role.value}


@pytest.fixture
def client(monkeypatch):
    """TestClient whose sessions run against a fresh in-memory database."""
    engine = create_test_engine()
    monkeypatch.setattr(connection, "_engine", engine)
    monkeypatch.setattr(connection, "_async_session_maker", build_session_maker(engine))

    with TestClient(app) as test_client:
        # Create tables on the event loop the app runs on
        test_client.portal.call(create_schema, engine)
        yield test_client


@pytest.fixture
def patient() -> Actor:
    return Actor(id=uuid4(), role=UserRole.PATIENT)


@pytest.fixture
def active_enrollment(client, patient) -> dict:
    """Plan created by an admin and an activated enrollment for the patient."""
    response = client.post("/api/v1/plans", json=plan_payload(), headers=headers(ADMIN))
    assert response.status_code == status.HTTP_201_CREATED
    plan = response.json()

    response = client.post(
        "/api/v1/enrollments",
        json={
            "plan_id": plan["id"],
            "payment_method": "card",
            "coverage_start_date": date.today().isoformat(),
        },
        headers=headers(patient),
    )
    assert response.status_code == status.HTTP_201_CREATED
    enrollment = response.json()
    assert enrollment["status"] == "pending"

    response = client.post(
        f"/api/v1/enrollments/{enrollment['id']}/activate", headers=headers(patient)
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()


def submit_claim(client, enrollment: dict, billed: str = "1000") -> dict:
    response = client.post(
        "/api/v1/claims",
        json={
            "enrollment_id": enrollment["id"],
            "patient_id": enrollment["user_id"],
            "service_type": "outpatient",
            "service_date": date.today().isoformat(),
            "diagnosis": {"code": "J06.9", "description": "Acute upper respiratory infection"},
            "billing": {"total_billed": billed},
        },
        headers=headers(PROVIDER),
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


@pytest.mark.api
class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"

    def test_detailed_health_checks_database(self, client):
        response = client.get("/health/detailed")
        assert response.json()["checks"]["database"] == "healthy"


@pytest.mark.api
class TestAuthentication:
    def test_missing_identity_headers(self, client):
        response = client.get("/api/v1/claims")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_role(self, client):
        response = client.get(
            "/api/v1/claims", headers={"X-User-Id": str(uuid4()), "X-User-Role": "wizard"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_admin_routes_need_admin(self, client):
        response = client.post(
            f"/api/v1/admin/claims/{uuid4()}/approve", json={}, headers=headers(PROVIDER)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {
            "success": False,
            "error": "permission_denied",
            "detail": "Super-admin role required",
        }


@pytest.mark.api
class TestClaimFlow:
    def test_submit_approve_pay(self, client, active_enrollment):
        claim = submit_claim(client, active_enrollment)
        assert claim["status"] == "submitted"
        assert Decimal(claim["covered_amount"]) == Decimal("780")
        assert Decimal(claim["patient_responsibility"]["total"]) == Decimal("220")
        assert len(claim["status_history"]) == 1

        response = client.post(
            f"/api/v1/admin/claims/{claim['id']}/approve", json={}, headers=headers(ADMIN)
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "approved"

        response = client.post(
            f"/api/v1/admin/claims/{claim['id']}/pay", json={}, headers=headers(ADMIN)
        )
        assert response.status_code == status.HTTP_200_OK
        payment = response.json()
        assert payment["claim"]["status"] == "paid"
        assert payment["transaction"]["category"] == "claim_payment"
        assert Decimal(payment["wallet"]["available"]) == Decimal("780")

        response = client.get("/api/v1/wallets/balance", headers=headers(PROVIDER))
        assert Decimal(response.json()["personal"]["available"]) == Decimal("780")

    def test_second_payment_conflicts(self, client, active_enrollment):
        claim = submit_claim(client, active_enrollment)
        client.post(f"/api/v1/admin/claims/{claim['id']}/approve", json={}, headers=headers(ADMIN))
        client.post(f"/api/v1/admin/claims/{claim['id']}/pay", json={}, headers=headers(ADMIN))

        response = client.post(
            f"/api/v1/admin/claims/{claim['id']}/pay", json={}, headers=headers(ADMIN)
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "already_paid"

        transactions = client.get("/api/v1/wallets/transactions", headers=headers(PROVIDER)).json()
        assert len(transactions) == 1

    def test_reject_without_reason(self, client, active_enrollment):
        claim = submit_claim(client, active_enrollment)
        response = client.post(
            f"/api/v1/admin/claims/{claim['id']}/reject", json={}, headers=headers(ADMIN)
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

        response = client.get(f"/api/v1/claims/{claim['id']}", headers=headers(PROVIDER))
        assert response.json()["status"] == "submitted"
        assert len(response.json()["status_history"]) == 1

    def test_reject_then_appeal(self, client, active_enrollment, patient):
        claim = submit_claim(client, active_enrollment)
        client.post(
            f"/api/v1/admin/claims/{claim['id']}/reject",
            json={"reason": "Missing referral"},
            headers=headers(ADMIN),
        )

        response = client.post(
            f"/api/v1/claims/{claim['id']}/appeal",
            json={"reason": "Referral attached", "documents": ["referral.pdf"]},
            headers=headers(patient),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "appealed"

        response = client.post(
            f"/api/v1/admin/claims/{claim['id']}/review-appeal",
            json={"decision": "approved", "notes": "Referral valid"},
            headers=headers(ADMIN),
        )
        assert response.json()["status"] == "approved"
        assert response.json()["appeal_status"] == "approved"

    def test_uncovered_service(self, client, active_enrollment):
        response = client.post(
            "/api/v1/claims",
            json={
                "enrollment_id": active_enrollment["id"],
                "patient_id": active_enrollment["user_id"],
                "service_type": "dental",
                "service_date": date.today().isoformat(),
                "diagnosis": {"code": "K02.9"},
                "billing": {"total_billed": "150"},
            },
            headers=headers(PROVIDER),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "service_not_covered"

    def test_claim_not_found(self, client):
        response = client.get(f"/api/v1/claims/{uuid4()}", headers=headers(ADMIN))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "not_found"

    def test_update_claim_billing(self, client, active_enrollment):
        claim = submit_claim(client, active_enrollment)
        response = client.patch(
            f"/api/v1/claims/{claim['id']}",
            json={
                "billing": {
                    "total_billed": "500",
                    "breakdown": [{"item": "consultation", "amount": "500"}],
                },
                "documents": ["invoice.pdf"],
                "notes": "Corrected invoice",
            },
            headers=headers(PROVIDER),
        )
        assert response.status_code == status.HTTP_200_OK, response.text
        body = response.json()
        assert Decimal(body["total_billed"]) == Decimal("500")
        assert Decimal(body["covered_amount"]) == Decimal("380")
        assert body["documents"] == ["invoice.pdf"]
        assert body["notes"] == "Corrected invoice"

    def test_update_decided_claim_conflicts(self, client, active_enrollment):
        claim = submit_claim(client, active_enrollment)
        client.post(f"/api/v1/admin/claims/{claim['id']}/approve", json={}, headers=headers(ADMIN))

        response = client.patch(
            f"/api/v1/claims/{claim['id']}",
            json={"notes": "Too late"},
            headers=headers(PROVIDER),
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "invalid_claim_state"

    def test_patient_coverage(self, client, active_enrollment, patient):
        submit_claim(client, active_enrollment)

        response = client.get(
            f"/api/v1/claims/patients/{patient.id}/coverage", headers=headers(PROVIDER)
        )
        assert response.status_code == status.HTTP_200_OK, response.text
        body = response.json()
        assert body["enrollment_id"] == active_enrollment["id"]
        assert body["coverage"]["outpatient"]["covered"] is True
        assert Decimal(body["limits"]["deductible"]) == Decimal("500")
        assert body["utilization"]["claims_submitted"] == 1
        assert len(body["recent_claims"]) == 1

    def test_patient_coverage_without_enrollment(self, client):
        response = client.get(
            f"/api/v1/claims/patients/{uuid4()}/coverage", headers=headers(PROVIDER)
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_claims(self, client, active_enrollment, patient):
        submit_claim(client, active_enrollment)
        submit_claim(client, active_enrollment, billed="80")

        response = client.get("/api/v1/claims", headers=headers(patient))
        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["items"]) == 2

        response = client.get(
            "/api/v1/claims", params={"status": "paid"}, headers=headers(patient)
        )
        assert response.json()["items"] == []
