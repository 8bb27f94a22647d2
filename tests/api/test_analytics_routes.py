"""API tests for analytics and health routes."""

from typing import List

import pytest
from fastapi.testclient import TestClient

from tracker.db.models import Project


@pytest.mark.api
class TestAnalyticsAPI:
    """Test /api/v1/analytics endpoints."""

    def test_organization_stats(self, authenticated_client: TestClient, projects: List[Project]):
        response = authenticated_client.get("/api/v1/analytics/organization")

        assert response.status_code == 200
        assert response.json() == {"total": 4, "active": 2, "completed": 2}

    def test_user_stats(self, client: TestClient, projects: List[Project], teammate_headers: dict):
        response = client.get("/api/v1/analytics/user", headers=teammate_headers)

        assert response.json() == {"total": 1, "active": 1, "completed": 0}

    def test_completion_time(self, authenticated_client: TestClient, projects: List[Project]):
        response = authenticated_client.get("/api/v1/analytics/completion-time")

        assert response.json() == {"average_completion_days": 28.0, "average_completion_hours": "672.0"}

    def test_completion_time_without_completed_projects(self, authenticated_client: TestClient):
        response = authenticated_client.get("/api/v1/analytics/completion-time")

        assert response.json() == {"average_completion_days": None, "average_completion_hours": None}

    def test_dashboard(self, authenticated_client: TestClient, projects: List[Project]):
        response = authenticated_client.get("/api/v1/analytics/dashboard")

        assert response.status_code == 200
        data = response.json()
        assert data["organization_stats"] == {"total": 4, "active": 2, "completed": 2}
        assert data["user_stats"] == {"total": 3, "active": 1, "completed": 2}
        assert data["average_completion_time"]["average_completion_days"] == 28.0
        overview = data["detailed_analytics"]["overview"]
        assert overview["total_contributors"] == 2
        assert overview["completion_rate"] == "50.0"

    def test_dashboard_other_organization_is_empty(
        self, client: TestClient, projects: List[Project], other_auth_headers: dict
    ):
        data = client.get("/api/v1/analytics/dashboard", headers=other_auth_headers).json()

        assert data["organization_stats"] == {"total": 0, "active": 0, "completed": 0}
        assert data["detailed_analytics"]["top_contributors"] == []

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/v1/analytics/dashboard").status_code == 401


@pytest.mark.api
class TestHealthAPI:

    def test_health(self, client: TestClient, projects: List[Project]):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"]["total_projects"] == 4
        assert data["workers"]["in_flight_tasks"] == 0

    def test_readiness(self, client: TestClient):
        assert client.get("/api/v1/readiness").json()["status"] == "ready"

    def test_liveness(self, client: TestClient):
        assert client.get("/api/v1/liveness").json()["status"] == "alive"

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]
        assert response.headers["X-Content-Type-Options"] == "nosniff"
