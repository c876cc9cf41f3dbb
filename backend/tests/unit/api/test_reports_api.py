"""Unit tests for the reports and moderators HTTP endpoints.

Runs the FastAPI app with the workflow and identity resolver overridden
by in-memory collaborators.

Run with: pytest backend/tests/unit/api/test_reports_api.py -v
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from irp.api import report_error_handler
from irp.api.auth import JWTIdentityResolver, get_identity_resolver
from irp.app import create_app
from irp.errors import ConflictError, NotificationError
from irp.moderators.directory import get_moderator_directory
from irp.reports.workflow import get_report_workflow

SECRET = "api-test-secret-with-enough-length"


def _auth(user_id: str) -> dict[str, str]:
    token = jwt.encode(
        {
            "sub": user_id,
            "aud": "authenticated",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(monkeypatch, workflow, directory):
    monkeypatch.setattr("irp.app.setup_logging", lambda: None)
    app = create_app()
    resolver = JWTIdentityResolver(secret=SECRET, algorithm="HS256", audience="authenticated")
    app.dependency_overrides[get_report_workflow] = lambda: workflow
    app.dependency_overrides[get_moderator_directory] = lambda: directory
    app.dependency_overrides[get_identity_resolver] = lambda: resolver
    return TestClient(app)


def _submit(client, pdf_bytes, **fields) -> dict:
    data = {
        "reporterName": "Jane Doe",
        "reporterEmail": "jane.doe@example.com",
        "institutionId": "inst-42",
    }
    data.update(fields)
    response = client.post(
        "/api/v1/reports",
        data=data,
        files={"pdf": ("report.pdf", pdf_bytes, "application/pdf")},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateEndpoint:
    """Tests for multipart submission."""

    def test_create_report(self, client, pdf_bytes, report_repository):
        """Test anonymous submission returns identifiers."""
        body = _submit(
            client, pdf_bytes, reportContent=json.dumps({"category": "safety"})
        )

        assert set(body) == {"reportId", "pdfPath", "institutionId"}
        assert body["institutionId"] == "inst-42"
        stored = report_repository.reports[body["reportId"]].report_content
        assert stored["category"] == "safety"
        assert stored["submitted_by_user_id"] is None

    def test_authenticated_submitter_recorded(self, client, pdf_bytes, report_repository):
        """Test a bearer token on submission records the submitter."""
        response = client.post(
            "/api/v1/reports",
            data={"reporterName": "Jane", "reporterEmail": "jane@example.com"},
            files={"pdf": ("report.pdf", pdf_bytes, "application/pdf")},
            headers=_auth("user-9"),
        )

        report_id = response.json()["reportId"]
        assert report_repository.reports[report_id].report_content["submitted_by_user_id"] == "user-9"

    def test_missing_pdf(self, client):
        """Test submissions without an attachment are 422."""
        response = client.post(
            "/api/v1/reports",
            data={"reporterName": "Jane", "reporterEmail": "jane@example.com"},
        )

        assert response.status_code == 422
        assert response.headers["X-Error-Code"] == "VALIDATION_ERROR"

    def test_non_pdf_rejected(self, client):
        """Test non-PDF attachments are 422."""
        response = client.post(
            "/api/v1/reports",
            data={"reporterName": "Jane", "reporterEmail": "jane@example.com"},
            files={"pdf": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 422

    def test_malformed_report_content(self, client, pdf_bytes):
        """Test reportContent must be a JSON object."""
        response = client.post(
            "/api/v1/reports",
            data={
                "reporterName": "Jane",
                "reporterEmail": "jane@example.com",
                "reportContent": "[1, 2]",
            },
            files={"pdf": ("report.pdf", pdf_bytes, "application/pdf")},
        )

        assert response.status_code == 422

    def test_store_failure_is_generic(self, client, pdf_bytes, report_repository, blob_store):
        """Test persistence failures hide their details and roll back the upload."""
        from irp.errors import StoreError

        report_repository.fail_create = StoreError("password authentication failed", "create_report")

        response = client.post(
            "/api/v1/reports",
            data={"reporterName": "Jane", "reporterEmail": "jane@example.com"},
            files={"pdf": ("report.pdf", pdf_bytes, "application/pdf")},
        )

        assert response.status_code == 500
        assert "password" not in response.text
        assert response.json()["error_code"] == "PERSISTENCE_FAILED"
        assert blob_store.objects == {}


class TestWorkflowEndpoints:
    """Tests for listing and transition endpoints."""

    def test_requires_authentication(self, client):
        """Test moderator endpoints reject anonymous callers."""
        assert client.get("/api/v1/reports").status_code == 401
        assert client.post("/api/v1/reports/abc/assign").status_code == 401

        bad = client.get("/api/v1/reports", headers={"Authorization": "Bearer junk"})
        assert bad.status_code == 401

    def test_assign_review_flow(self, client, pdf_bytes, notifier):
        """Test the full claim and review cycle over HTTP."""
        report_id = _submit(client, pdf_bytes)["reportId"]
        moderator = _auth("user-x")

        available = client.get("/api/v1/reports/available", headers=moderator).json()
        assert [r["id"] for r in available] == [report_id]
        assert available[0]["status"] == "pending"
        assert "assignedTo" not in available[0]

        assigned = client.post(f"/api/v1/reports/{report_id}/assign", headers=moderator)
        assert assigned.status_code == 200
        assert assigned.json() == {
            "message": "Report assigned successfully",
            "reportId": report_id,
            "moderatorId": "user-x",
        }

        conflict = client.post(f"/api/v1/reports/{report_id}/assign", headers=_auth("user-y"))
        assert conflict.status_code == 409
        assert conflict.json()["error"] == "This report is already assigned to another moderator"

        mine = client.get("/api/v1/reports/assigned", headers=moderator).json()
        assert mine[0]["assignedTo"] == "user-x"

        reviewed = client.patch(
            f"/api/v1/reports/{report_id}/review",
            json={"reportContent": {"comparisonNotes": "ok", "findings": []}},
            headers=moderator,
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "completed"

        completed = client.get("/api/v1/reports/completed", headers=moderator).json()
        assert completed[0]["completedAt"].endswith("Z")
        assert notifier.calls[0]["review_notes"] == "ok"

    def test_unassign(self, client, pdf_bytes):
        """Test unassigning returns the report to the pool."""
        report_id = _submit(client, pdf_bytes)["reportId"]
        moderator = _auth("user-x")
        client.post(f"/api/v1/reports/{report_id}/assign", headers=moderator)

        response = client.delete(f"/api/v1/reports/{report_id}/assign", headers=moderator)
        again = client.delete(f"/api/v1/reports/{report_id}/assign", headers=moderator)

        assert response.status_code == 200
        assert response.json()["reportId"] == report_id
        assert again.status_code == 409

    def test_get_report_and_pdf_url(self, client, pdf_bytes):
        """Test single-report reads."""
        created = _submit(client, pdf_bytes)
        headers = _auth("user-x")

        report = client.get(f"/api/v1/reports/{created['reportId']}", headers=headers).json()
        link = client.get(
            f"/api/v1/reports/{created['reportId']}/pdf-url",
            params={"expiresIn": 600},
            headers=headers,
        ).json()

        assert report["pdfPath"] == created["pdfPath"]
        assert link["expiresIn"] == 600
        assert link["pdfPath"] == created["pdfPath"]

    def test_unknown_report_is_404(self, client):
        """Test missing reports are 404."""
        response = client.post("/api/v1/reports/missing/assign", headers=_auth("user-x"))

        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "NOT_FOUND"

    def test_moderator_profile(self, client):
        """Test the caller's profile is created on first access."""
        response = client.get("/api/v1/moderators/me", headers=_auth("user-x"))

        assert response.status_code == 200
        body = response.json()
        assert body["uuid"] == "user-x"
        assert body["createdAt"].endswith("Z")


class TestHealthEndpoints:
    """Tests for the unauthenticated service endpoints."""

    def test_root_and_ping(self, client):
        """Test root info and ping."""
        root = client.get("/").json()
        assert root["message"] == "Institution Report Platform API is running"
        assert root["version"] == "1.0.0"
        assert client.get("/ping").json() == {"message": "pong"}
        assert client.get("/health").json()["status"] == "ok"
        assert client.get("/health/live").json() == {"status": "alive"}


class TestErrorHandler:
    """Tests for rendering workflow errors."""

    @pytest.mark.asyncio
    async def test_domain_error_message_passes_through(self):
        """Test domain errors keep their message."""
        request = MagicMock()
        request.url.path = "/api/v1/reports/r-1/assign"

        response = await report_error_handler(
            request, ConflictError(ConflictError.ASSIGNED_TO_ANOTHER)
        )

        body = json.loads(response.body)
        assert response.status_code == 409
        assert body["error"] == ConflictError.ASSIGNED_TO_ANOTHER

    @pytest.mark.asyncio
    async def test_collaborator_error_is_generic(self):
        """Test collaborator failures hide their message."""
        request = MagicMock()
        request.url.path = "/api/v1/reports/r-1/review"

        response = await report_error_handler(
            request, NotificationError("smtp relay rejected api key re_secret")
        )

        body = json.loads(response.body)
        assert response.status_code == 500
        assert "re_secret" not in body["error"]
        assert response.headers["X-Error-Code"] == "NOTIFICATION_FAILED"
