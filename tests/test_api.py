# =============================================================================
# tests/test_api.py - API Endpoint Tests
# =============================================================================
# Tests for the FastAPI app with auth and services mocked out:
# - Health endpoints
# - Role checks (tutor-only endpoints, parent scoping)
# - Error responses from TutorDeskException
# - Query validation
#
# The TestClient is used without a `with` block so the lifespan (Redis
# relay) doesn't start.
#
# Run with: poetry run pytest tests/test_api.py -v
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.auth import Profile, get_current_profile
from app.dependencies import get_supabase_client
from app.main import app

from tests.conftest import PARENT_ID, STUDENT_ID

OTHER_PARENT_ID = "00000000-0000-4000-8000-0000000000ff"


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_tutor(tutor_row):
    app.dependency_overrides[get_current_profile] = lambda: Profile(**tutor_row)


@pytest.fixture
def as_parent(parent_row):
    app.dependency_overrides[get_current_profile] = lambda: Profile(**parent_row)


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "TutorDesk API"

    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_live(self, client):
        assert client.get("/api/v1/health/live").json()["status"] == "alive"

    def test_ready_when_dependencies_respond(self, client):
        app.dependency_overrides[get_supabase_client] = lambda: MagicMock()

        with patch("redis.Redis.from_url") as from_url:
            from_url.return_value.ping.return_value = True
            body = client.get("/api/v1/health/ready").json()

        assert body["status"] == "ready"
        assert body["checks"] == {"database": "healthy", "broker": "healthy"}

    def test_degraded_when_database_fails(self, client):
        db = MagicMock()
        db.get_client.side_effect = RuntimeError("connection refused")
        app.dependency_overrides[get_supabase_client] = lambda: db

        with patch("redis.Redis.from_url"):
            body = client.get("/api/v1/health/ready").json()

        assert body["status"] == "degraded"
        assert body["checks"]["database"].startswith("unhealthy")


# =============================================================================
# Auth & Roles
# =============================================================================

class TestRoles:

    def test_missing_token(self, client):
        response = client.get("/api/v1/parents")
        assert response.status_code in (401, 403)

    def test_parent_cannot_list_families(self, client, as_parent):
        response = client.get("/api/v1/parents")
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    def test_parent_sees_other_family_as_not_found(self, client, as_parent):
        response = client.get(f"/api/v1/parents/{OTHER_PARENT_ID}")
        assert response.status_code == 404
        assert response.json()["code"] == "PARENT_NOT_FOUND"

    def test_parent_reads_own_record(self, client, as_parent, parent_row, student_row):
        student = {k: v for k, v in student_row.items() if k != "parent"}
        with patch("app.routers.parents.ParentService") as service:
            service.get_parent_with_students.return_value = {**parent_row, "students": [student]}
            response = client.get(f"/api/v1/parents/{PARENT_ID}")

        assert response.status_code == 200
        assert response.json()["students"][0]["id"] == STUDENT_ID

    def test_tutor_creates_parent_and_queues_invite(self, client, as_tutor, parent_row):
        with patch("app.routers.parents.ParentService") as service, \
             patch("app.routers.parents.enqueue") as enqueue:
            service.create_parent.return_value = parent_row
            response = client.post(
                "/api/v1/parents",
                json={"name": "Jane Doe", "email": "Jane@Example.com"},
            )

        assert response.status_code == 201
        data = service.create_parent.call_args.args[0]
        assert data.email == "jane@example.com"
        enqueue.assert_called_once_with("send_parent_invite_email", PARENT_ID)

    def test_parent_edits_own_phone(self, client, as_parent, parent_row):
        with patch("app.routers.parents.ParentService") as service:
            service.update_parent.return_value = {**parent_row, "phone": "555-0199"}
            response = client.patch(f"/api/v1/parents/{PARENT_ID}", json={"phone": "555-0199"})

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0199"

    @pytest.mark.parametrize("body", [
        {"prepaid_subjects": ["piano"]},
        {"email": "someone-else@example.com"},
    ])
    def test_parent_cannot_change_billing_or_email(self, client, as_parent, body):
        with patch("app.routers.parents.ParentService") as service:
            response = client.patch(f"/api/v1/parents/{PARENT_ID}", json=body)

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"
        service.update_parent.assert_not_called()

    def test_tutor_changes_billing_mode(self, client, as_tutor, parent_row):
        with patch("app.routers.parents.ParentService") as service:
            service.update_parent.return_value = {**parent_row, "prepaid_subjects": ["piano"]}
            response = client.patch(f"/api/v1/parents/{PARENT_ID}", json={"prepaid_subjects": ["piano"]})

        assert response.status_code == 200
        assert service.update_parent.call_args.args[1].prepaid_subjects == ["piano"]


# =============================================================================
# Errors & Validation
# =============================================================================

class TestErrors:

    def test_invalid_body(self, client, as_tutor):
        response = client.post("/api/v1/parents", json={"name": ""})
        assert response.status_code == 422

    def test_invalid_month(self, client, as_tutor):
        response = client.get("/api/v1/payments/summary", params={"month": "March"})
        assert response.status_code == 422

    def test_service_errors_become_structured_json(self, client, as_tutor):
        from app.exceptions import NothingToInvoiceError

        with patch("app.routers.payments.PaymentService") as service:
            service.generate_invoice.side_effect = NothingToInvoiceError(PARENT_ID, "2025-03-01")
            response = client.post(
                "/api/v1/payments/invoices",
                json={"parent_id": PARENT_ID, "month": "2025-03"},
            )

        assert response.status_code == 400
        assert response.json()["code"] == "NOTHING_TO_INVOICE"

    def test_monthly_csv_download(self, client, as_tutor):
        with patch("app.routers.payments.PaymentService") as service:
            service.monthly_report_csv.return_value = "Monthly Payment Report - March 2025\n"
            response = client.get("/api/v1/payments/reports/monthly.csv", params={"month": "2025-03"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "tutoring-report-2025-03.csv" in response.headers["content-disposition"]
