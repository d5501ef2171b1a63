"""Tests for artifact and dataset transfer endpoints."""

from datetime import datetime, timezone

import pytest  # type: ignore[import-not-found]
from fastapi.testclient import TestClient  # type: ignore[import-untyped]

from worklog.api import create_app
from worklog.api.auth import create_token_for_user
from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService

UTC = timezone.utc


@pytest.fixture
def client(config: ConfigManager, service: WorklogService) -> TestClient:
    return TestClient(create_app(config, service=service))


@pytest.fixture
def auth_headers(config: ConfigManager) -> dict[str, str]:
    token_data = create_token_for_user(config)
    return {"Authorization": f"Bearer {token_data['access_token']}"}


def seed(service: WorklogService) -> None:
    task = service.create_task("Review")
    entry = service.add_entry(
        datetime(2024, 3, 1, 8, tzinfo=UTC), datetime(2024, 3, 1, 9, tzinfo=UTC), task.id
    )
    service.create_artifact(
        "PR #12", "pull_request", reference="https://example.org/12", entry_id=entry.id
    )


class TestArtifactEndpoints:
    """Test /api/v1/artifacts."""

    def test_create_artifact(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.post(
            "/api/v1/artifacts/",
            json={
                "name": "Design doc",
                "artifact_type": "document",
                "reference": "docs/design.md",
                "metadata": {"pages": 4},
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["artifact_type"] == "document"
        assert data["metadata"] == {"pages": 4}

    def test_create_linked_artifact(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        entry = service.start_entry()

        response = client.post(
            "/api/v1/artifacts/",
            json={"name": "Notes", "artifact_type": "note", "entry_id": entry.id},
            headers=auth_headers,
        )

        artifact_id = response.json()["id"]
        assert [a.id for a in service.get_entry(entry.id).artifacts] == [artifact_id]

    def test_create_with_unknown_entry_writes_nothing(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        response = client.post(
            "/api/v1/artifacts/",
            json={"name": "Notes", "artifact_type": "note", "entry_id": "missing"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert service.list_artifacts() == []

    def test_create_with_blank_name(
        self, client: TestClient, auth_headers: dict[str, str]
    ) -> None:
        response = client.post(
            "/api/v1/artifacts/", json={"name": " ", "artifact_type": "note"}, headers=auth_headers
        )

        assert response.status_code == 422

    def test_list_get_delete(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        entry = service.start_entry()
        artifact = service.create_artifact("Notes", "note", entry_id=entry.id)

        assert len(client.get("/api/v1/artifacts/", headers=auth_headers).json()) == 1
        assert client.get(
            f"/api/v1/artifacts/{artifact.id}", headers=auth_headers
        ).json()["name"] == "Notes"

        response = client.delete(f"/api/v1/artifacts/{artifact.id}", headers=auth_headers)

        assert response.status_code == 204
        assert service.get_entry(entry.id).artifacts == []
        assert client.get(f"/api/v1/artifacts/{artifact.id}", headers=auth_headers).status_code == (
            404
        )


class TestDataEndpoints:
    """Test /api/v1/data export and import."""

    def test_export(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        seed(service)

        response = client.get("/api/v1/data/export", headers=auth_headers)

        assert response.status_code == 200
        bundle = response.json()
        assert bundle["version"] == "1.0"
        assert len(bundle["tasks"]) == 1
        assert len(bundle["time_entries"]) == 1
        assert len(bundle["artifacts"]) == 1
        assert len(bundle["entry_artifacts"]) == 1

    def test_merge_import_is_idempotent(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        seed(service)
        bundle = client.get("/api/v1/data/export", headers=auth_headers).json()

        response = client.post(
            "/api/v1/data/import", json={"bundle": bundle}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "tasks_imported": 0,
            "entries_imported": 0,
            "artifacts_imported": 0,
        }

    def test_replace_import(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        seed(service)
        bundle = client.get("/api/v1/data/export", headers=auth_headers).json()
        service.create_task("Local only")

        response = client.post(
            "/api/v1/data/import", json={"bundle": bundle, "merge": False}, headers=auth_headers
        )

        assert response.json()["tasks_imported"] == 1
        assert [t.name for t in service.list_tasks()] == ["Review"]

    def test_malformed_bundle(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        service.create_task("Keep me")

        response = client.post(
            "/api/v1/data/import",
            json={"bundle": {"version": "1.0", "tasks": "nope"}, "merge": False},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "malformed_bundle"
        assert [t.name for t in service.list_tasks()] == ["Keep me"]

    def test_merge_second_running_entry_conflicts(
        self, client: TestClient, auth_headers: dict[str, str], service: WorklogService
    ) -> None:
        service.start_entry()
        bundle = service.export_data()
        service.stop_entry()
        service.start_entry()
        bundle["time_entries"][0]["id"] = "incoming-running"

        response = client.post(
            "/api/v1/data/import", json={"bundle": bundle}, headers=auth_headers
        )

        assert response.status_code == 409
