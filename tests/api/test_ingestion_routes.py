"""API tests for ingestion and pipeline callback routes."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tracker.db.models import IngestionJob, User
from tracker.models.job import CreateIngestionJobRequest, IngestionJobStatus
from tracker.services.ingestion_job_service import IngestionJobService


def _csv_upload(filename: str) -> CreateIngestionJobRequest:
    return CreateIngestionJobRequest(filename=filename, file_type="csv")


@pytest.mark.api
class TestIngestionAPI:
    """Test /api/v1/ingest endpoints."""

    def test_init_requires_auth(self, client: TestClient):
        response = client.post("/api/v1/ingest/init", json={"filename": "a.csv", "file_type": "csv"})

        assert response.status_code == 401

    def test_init_rejects_invalid_token(self, client: TestClient):
        response = client.post(
            "/api/v1/ingest/init",
            json={"filename": "a.csv", "file_type": "csv"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    def test_init_upload(self, authenticated_client: TestClient, db: Session, mock_dispatcher):
        """Test that init returns an upload target and starts the lifecycle."""
        response = authenticated_client.post(
            "/api/v1/ingest/init",
            json={"filename": "orders.CSV", "file_type": "CSV", "file_size": 4096},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["job_id"].startswith("job_")
        assert data["upload_url"] == f"https://mock-storage.example.com/upload/{data['job_id']}"
        assert data["status"] == "pending"

        expires_at = datetime.fromisoformat(data["expires_at"])
        job = IngestionJobService.get_job_global(db, data["job_id"])
        assert expires_at - job.created_at == timedelta(seconds=3600)
        assert job.file_type == "csv"

        mock_dispatcher["ingestion"].assert_called_once_with(data["job_id"])

    def test_init_rejects_file_type(self, authenticated_client: TestClient, db: Session, mock_dispatcher):
        response = authenticated_client.post(
            "/api/v1/ingest/init", json={"filename": "setup.exe", "file_type": "EXE"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["field"] == "file_type"
        assert "EXE" in data["message"]
        assert "csv, json, xml, pdf, xlsx, txt, log" in data["message"]
        assert db.query(IngestionJob).count() == 0
        mock_dispatcher["ingestion"].assert_not_called()

    @pytest.mark.parametrize("file_type", ["application/x-msdownload", ""])
    def test_init_rejects_any_disallowed_tag_with_400(
        self, authenticated_client: TestClient, db: Session, file_type: str
    ):
        response = authenticated_client.post(
            "/api/v1/ingest/init", json={"filename": "payload.bin", "file_type": file_type}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["field"] == "file_type"
        assert f"'{file_type}'" in data["message"]
        assert "csv, json, xml, pdf, xlsx, txt, log" in data["message"]
        assert db.query(IngestionJob).count() == 0

    def test_init_missing_filename(self, authenticated_client: TestClient):
        response = authenticated_client.post("/api/v1/ingest/init", json={"file_type": "csv"})

        assert response.status_code == 422

    def test_status(self, authenticated_client: TestClient, ingestion_job: IngestionJob):
        response = authenticated_client.get(f"/api/v1/ingest/status/{ingestion_job.job_id}")

        assert response.status_code == 200
        job = response.json()["job"]
        assert job["job_id"] == ingestion_job.job_id
        assert job["status"] == "pending"
        assert job["filename"] == "sales.csv"
        assert job["result_data"] is None
        assert job["error_message"] is None

    def test_status_other_organization(
        self, client: TestClient, ingestion_job: IngestionJob, other_auth_headers: dict
    ):
        response = client.get(f"/api/v1/ingest/status/{ingestion_job.job_id}", headers=other_auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_polling_terminal_job_is_stable(
        self, authenticated_client: TestClient, db: Session, ingestion_job: IngestionJob
    ):
        IngestionJobService.update_job(
            db, ingestion_job.job_id, status=IngestionJobStatus.FAILED, error_message="corrupt"
        )

        first = authenticated_client.get(f"/api/v1/ingest/status/{ingestion_job.job_id}").json()
        second = authenticated_client.get(f"/api/v1/ingest/status/{ingestion_job.job_id}").json()

        assert first == second
        assert first["job"]["status"] == "failed"
        assert first["job"]["result_data"] is None

    def test_list_my_jobs(
        self,
        authenticated_client: TestClient,
        db: Session,
        user: User,
        teammate: User,
    ):
        mine = IngestionJobService.create_job(
            db, _csv_upload("mine.csv"), user.id, user.organization_id
        )
        IngestionJobService.create_job(
            db, _csv_upload("theirs.csv"), teammate.id, teammate.organization_id
        )

        data = authenticated_client.get("/api/v1/ingest/jobs").json()

        assert data["count"] == 1
        assert data["jobs"][0]["job_id"] == mine.job_id

        everything = authenticated_client.get("/api/v1/ingest/jobs/all").json()
        assert everything["count"] == 2

        limited = authenticated_client.get("/api/v1/ingest/jobs/all", params={"limit": 1}).json()
        assert limited["count"] == 1

    def test_list_limit_bounds(self, authenticated_client: TestClient):
        assert authenticated_client.get("/api/v1/ingest/jobs/all", params={"limit": 0}).status_code == 422
        assert authenticated_client.get("/api/v1/ingest/jobs/all", params={"limit": 501}).status_code == 422

    def test_stats(self, authenticated_client: TestClient, ingestion_job: IngestionJob):
        response = authenticated_client.get("/api/v1/ingest/stats")

        assert response.status_code == 200
        assert response.json() == {
            "stats": {"total": 1, "pending": 1, "processing": 0, "completed": 0, "failed": 0}
        }

    def test_delete(self, authenticated_client: TestClient, ingestion_job: IngestionJob):
        job_id = ingestion_job.job_id

        response = authenticated_client.delete(f"/api/v1/ingest/{job_id}")

        assert response.status_code == 200
        assert response.json()["message"] == "Job deleted successfully"
        assert authenticated_client.get(f"/api/v1/ingest/status/{job_id}").status_code == 404
        assert authenticated_client.delete(f"/api/v1/ingest/{job_id}").status_code == 404


@pytest.mark.api
class TestPipelineCallbackAPI:
    """Test /api/v1/pipeline/callback."""

    def test_callback_without_auth(self, client: TestClient, ingestion_job: IngestionJob):
        response = client.post(
            "/api/v1/pipeline/callback",
            json={
                "job_id": ingestion_job.job_id,
                "status": "completed",
                "result_url": "https://pipeline.test/out.json",
                "result_data": {"rows_processed": 12},
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "message": "Job status updated",
            "job_id": ingestion_job.job_id,
            "status": "completed",
        }

    def test_callback_unknown_job(self, client: TestClient, db: Session):
        response = client.post("/api/v1/pipeline/callback", json={"job_id": "job_nope", "status": "failed"})

        assert response.status_code == 404
        assert db.query(IngestionJob).count() == 0

    def test_callback_missing_status(self, client: TestClient, ingestion_job: IngestionJob):
        response = client.post("/api/v1/pipeline/callback", json={"job_id": ingestion_job.job_id})

        assert response.status_code == 400
        assert response.json()["error"] == "missing_field"
        assert response.json()["field"] == "status"

    def test_callback_conflict_on_terminal_job(self, client: TestClient, ingestion_job: IngestionJob):
        job_id = ingestion_job.job_id
        client.post("/api/v1/pipeline/callback", json={"job_id": job_id, "status": "failed", "error_message": "x"})

        response = client.post(
            "/api/v1/pipeline/callback",
            json={"job_id": job_id, "status": "completed", "result_data": {"rows_processed": 1}},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "conflict"
