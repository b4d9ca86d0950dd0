"""
Unit tests for the HTTP surface.

Collaborators are swapped through FastAPI dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from routes.catalog import get_catalog_client_factory
from routes.drive import get_source_gateway_factory
from routes.uploads import get_orchestrator_factory
from services.upload_job_service import UploadJobService, get_upload_job_service
from services.upload_orchestrator import UploadOrchestrator
from exceptions import ExternalServiceError
from tests.factories import CatalogPageFactory, VariantFactory


@pytest.fixture
def jobs():
    return UploadJobService()


@pytest.fixture
def client(gateway, destination_client, jobs):
    """TestClient wired to the fake source and destination."""
    destination_client.pages = [
        CatalogPageFactory.create([VariantFactory.create(sku="WP-SCAL-DUS-2424", product_id="P1")])
    ]

    def factory(settings, credentials):
        return UploadOrchestrator(
            gateway=gateway,
            destination=destination_client,
            catalog_query="product_type:Wallpaper",
        )

    app.dependency_overrides[get_orchestrator_factory] = lambda: factory
    app.dependency_overrides[get_upload_job_service] = lambda: jobs
    app.dependency_overrides[get_catalog_client_factory] = lambda: (lambda settings: destination_client)
    app.dependency_overrides[get_source_gateway_factory] = lambda: (lambda settings, credentials: gateway)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestUploadRoutes:
    """Tests for POST /api/uploads/*"""

    def test_spec_upload_by_file_ids(self, client, source_client, jobs):
        """Should run the sync and return the summary with a completed job."""
        # Arrange
        source_client.add_file("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf")

        # Act
        response = client.post("/api/uploads/specs", json={
            "file_ids": ["s1"],
            "access_token": "token-1",
        })

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["succeeded"] == 1
        assert body["summary"]["category"] == "spec"
        assert jobs.get(body["job_id"]).status.value == "completed"

    def test_image_dry_run_by_folder(self, client, source_client, destination_client):
        source_client.add_file("i1", "WP-SCAL-DUS_1.png", "image/png", folder_id="folder-1")

        response = client.post("/api/uploads/images", json={
            "folder_id": "folder-1",
            "access_token": "token-1",
            "dry_run": True,
        })

        assert response.status_code == 200
        assert response.json()["summary"]["results"][0]["reason"] == "dry run"
        assert destination_client.write_calls == []

    def test_requires_exactly_one_source(self, client):
        """Should reject requests naming both or neither source."""
        neither = client.post("/api/uploads/images", json={"access_token": "t"})
        both = client.post("/api/uploads/images", json={
            "folder_id": "f",
            "file_ids": ["x"],
            "access_token": "t",
        })

        assert neither.status_code == 422
        assert both.status_code == 422

    def test_catalog_failure_marks_job_failed(self, client, destination_client, jobs):
        # Arrange
        destination_client.pages = [ExternalServiceError("shopify", "unauthorized")]

        # Act
        response = client.post("/api/uploads/specs", json={
            "file_ids": ["s1"],
            "access_token": "token-1",
        })

        # Assert
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CATALOG_FETCH_FAILED"
        assert jobs.list_jobs()[0].status.value == "failed"


class TestJobRoutes:
    """Tests for /api/uploads/jobs"""

    def test_get_unknown_job(self, client):
        response = client.get("/api/uploads/jobs/job_missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UPLOAD_JOB_NOT_FOUND"

    def test_list_and_clear(self, client, jobs):
        job = jobs.create("a")
        jobs.complete(job.id)

        listed = client.get("/api/uploads/jobs")
        cleared = client.delete("/api/uploads/jobs/completed")

        assert [j["id"] for j in listed.json()] == [job.id]
        assert cleared.json() == {"removed": 1}


class TestCatalogAndHealth:
    """Tests for GET /api/catalog/skus and GET /health"""

    def test_catalog_summary(self, client):
        response = client.get("/api/catalog/skus")

        assert response.status_code == 200
        assert response.json()["total_variants"] == 1

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] in ("healthy", "degraded")


class TestDriveRoutes:
    """Tests for GET /api/drive/folders/{folder_id}/count"""

    def test_counts_category_files(self, client, source_client):
        """Should count only the requested category."""
        # Arrange
        source_client.add_file("i1", "WP-SCAL-DUS_1.png", "image/png", b"1234", folder_id="folder-1")
        source_client.add_file("i2", "WP-SCAL-DUS_2.png", "image/png", b"12", folder_id="folder-1")

        # Act
        response = client.get(
            "/api/drive/folders/folder-1/count",
            params={"category": "image"},
            headers={"X-Drive-Access-Token": "token-1"},
        )

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["folder_name"] == "Folder folder-1"
        assert body["count"] == 2
        assert body["total_bytes"] == 6
        assert source_client.calls_to("list_files")[0][3] == "mimeType contains 'image/'"

    def test_requires_access_token(self, client):
        response = client.get("/api/drive/folders/folder-1/count")

        assert response.status_code == 422

    def test_folder_failure(self, client, source_client):
        source_client.fail_next("get_folder_name", ExternalServiceError("google_drive", "File not found"))

        response = client.get(
            "/api/drive/folders/missing/count",
            headers={"X-Drive-Access-Token": "token-1"},
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "FOLDER_LOOKUP_FAILED"
