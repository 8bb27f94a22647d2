"""API tests for error rendering."""

import pytest
from fastapi.testclient import TestClient

from tracker.api.app import app
from tracker.api.error_handlers import GENERIC_ERROR_MESSAGE
from tracker.core.config import settings
from tracker.db.session import get_db
from tracker.services.ingestion_job_service import IngestionJobService


@pytest.fixture
def lenient_client(db_session, mock_dispatcher):
    """Test client that returns 500 responses instead of re-raising server errors."""
    app.dependency_overrides[get_db] = lambda: db_session

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.mark.api
class TestErrorHandling:

    def test_value_error_is_a_server_error(self, lenient_client: TestClient, auth_headers: dict, mocker):
        mocker.patch.object(
            IngestionJobService, "get_stats", side_effect=ValueError("Unknown ingestion job fields: bogus")
        )

        response = lenient_client.get("/api/v1/ingest/stats", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"

    def test_production_hides_error_details(
        self, lenient_client: TestClient, auth_headers: dict, mocker, monkeypatch
    ):
        monkeypatch.setattr(settings, "app_env", "production")
        mocker.patch.object(
            IngestionJobService, "get_stats", side_effect=ValueError("Unknown ingestion job fields: bogus")
        )

        response = lenient_client.get("/api/v1/ingest/stats", headers=auth_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert "bogus" not in response.text

    def test_domain_errors_keep_their_status(self, lenient_client: TestClient, auth_headers: dict):
        response = lenient_client.get("/api/v1/ingest/status/job_missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
