"""Service layer for business logic."""

from tracker.services.analytics_service import ProjectAnalyticsService
from tracker.services.auth_service import AuthService
from tracker.services.background_job_service import BackgroundJobService
from tracker.services.ingestion_job_service import IngestionJobService
from tracker.services.maintenance_service import MaintenanceService

__all__ = [
    "AuthService",
    "IngestionJobService",
    "BackgroundJobService",
    "ProjectAnalyticsService",
    "MaintenanceService",
]
