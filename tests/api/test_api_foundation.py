"""Tests for API foundation (server, auth, models, error mapping)."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest  # type: ignore[import-not-found]
from fastapi.testclient import TestClient  # type: ignore[import-untyped]

from worklog.api import create_app
from worklog.api.auth import create_access_token, create_token_for_user
from worklog.api.middleware import status_for
from worklog.api.models import (
    EntryResponse,
    ErrorResponse,
    StartEntryRequest,
    UpdateEntryRequest,
    patch_of,
)
from worklog.core.config import ConfigManager
from worklog.core.errors import (
    AlreadyClosedError,
    ConflictError,
    MalformedBundleError,
    NotFoundError,
    ValidationError,
    WorklogError,
)
from worklog.core.service import WorklogService


@pytest.fixture
def client(config: ConfigManager, service: WorklogService) -> TestClient:
    """Create test client."""
    return TestClient(create_app(config, service=service))


@pytest.fixture
def auth_headers(config: ConfigManager) -> dict[str, str]:
    """Create authentication headers."""
    token_data = create_token_for_user(config)
    return {"Authorization": f"Bearer {token_data['access_token']}"}


class TestAppCreation:
    """Test FastAPI app creation."""

    def test_create_app(self, config: ConfigManager, service: WorklogService) -> None:
        app = create_app(config, service=service)

        assert app.title == "Worklog API"
        assert app.state.service is service

    def test_create_app_with_data_dir(self, config: ConfigManager, temp_dir: Path) -> None:
        app = create_app(config, data_dir=temp_dir / "elsewhere")

        assert app.state.service.storage.data_dir == temp_dir / "elsewhere"

    def test_openapi_schema(self, client: TestClient) -> None:
        response = client.get("/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/entries/start" in paths
        assert "/api/v1/reports/monthly/{year}/{month}" in paths


class TestSystemEndpoints:
    """Test health, status and root endpoints."""

    def test_health_no_auth_required(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"]

    def test_root(self, client: TestClient) -> None:
        data = client.get("/").json()

        assert data["message"] == "Worklog API"
        assert data["health"] == "/api/v1/health"

    def test_status(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        data = client.get("/api/v1/status", headers=auth_headers).json()

        assert data["api_enabled"] is False
        assert data["authentication_enabled"] is True
        assert data["running_entry_id"] is None
        assert data["uptime_seconds"] >= 0

        entry = service.start_entry()
        data = client.get("/api/v1/status", headers=auth_headers).json()
        assert data["running_entry_id"] == entry.id


class TestAuthentication:
    """Test JWT authentication."""

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/api/v1/tasks/")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client: TestClient, config: ConfigManager) -> None:
        config.ensure_api_secret_key()

        response = client.get("/api/v1/tasks/", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_token_signed_with_other_key(self, client: TestClient, config: ConfigManager) -> None:
        config.ensure_api_secret_key()
        token = create_access_token({"sub": "someone"}, "some-other-secret")

        response = client.get("/api/v1/tasks/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_expired_token(self, client: TestClient, config: ConfigManager) -> None:
        secret = config.ensure_api_secret_key()
        token = create_access_token({"sub": "cli-user"}, secret, timedelta(seconds=-10))

        response = client.get("/api/v1/tasks/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_valid_token(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get("/api/v1/tasks/", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == []

    def test_missing_secret_key(self, client: TestClient) -> None:
        """A bearer token cannot be checked without a configured secret."""
        token = create_access_token({"sub": "cli-user"}, "whatever")

        response = client.get("/api/v1/tasks/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 500

    def test_authentication_disabled(self, client: TestClient, config: ConfigManager) -> None:
        config.set("api.authentication.enabled", False)

        response = client.get("/api/v1/tasks/")

        assert response.status_code == 200

    def test_create_token_for_user(self, config: ConfigManager) -> None:
        token_data = create_token_for_user(config, user_id="alice")

        assert token_data["token_type"] == "bearer"
        assert token_data["expires_in"] == 24 * 3600
        assert config.get("api.authentication.secret_key")

    def test_token_expiry_from_config(self, config: ConfigManager) -> None:
        config.set("api.authentication.token_expiry_hours", 2)

        assert create_token_for_user(config)["expires_in"] == 7200


class TestErrorMapping:
    """Domain errors become JSON error bodies."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (NotFoundError("x"), 404),
            (ConflictError("x"), 409),
            (AlreadyClosedError("x"), 409),
            (ValidationError("x"), 422),
            (MalformedBundleError("x"), 422),
            (WorklogError("x"), 400),
        ],
    )
    def test_status_for(self, error: WorklogError, expected: int) -> None:
        assert status_for(error) == expected

    def test_error_body(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get("/api/v1/entries/missing", headers=auth_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "not_found"
        assert "missing" in body["detail"]


class TestModels:
    """Test API models."""

    def test_start_entry_request_defaults(self) -> None:
        request = StartEntryRequest()

        assert request.task_id is None
        assert request.memo is None

    def test_patch_of_only_sent_fields(self) -> None:
        request = UpdateEntryRequest.model_validate({"task_id": None, "memo": "Edited"})

        assert patch_of(request) == {"task_id": None, "memo": "Edited"}
        assert patch_of(UpdateEntryRequest()) == {}

    def test_entry_response_from_details(self, service: WorklogService) -> None:
        task = service.create_task("Review")
        entry = service.add_entry(
            datetime(2024, 3, 1, 8, tzinfo=timezone.utc),
            datetime(2024, 3, 1, 8, 45, tzinfo=timezone.utc),
            task_id=task.id,
        )

        response = EntryResponse.from_details(service.get_entry(entry.id))

        assert response.duration_seconds == 2700
        assert response.task is not None
        assert response.task.name == "Review"
        assert response.artifacts == []

    def test_error_response(self) -> None:
        error = ErrorResponse(detail="Entry not found", error_code="not_found")

        assert error.model_dump() == {"detail": "Entry not found", "error_code": "not_found"}
