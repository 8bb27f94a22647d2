"""Health check and system status routes."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session as DBSession

from tracker.db.models import BackgroundJob, IngestionJob, Organization, Project, User
from tracker.db.session import get_db
from tracker.models.job import BackgroundJobStatus, IngestionJobStatus
from tracker.workers import dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: DBSession = Depends(get_db)):
    """
    Health check endpoint with system statistics.

    Returns:
        System health status and statistics
    """
    try:
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "database": {
                "total_organizations": db.query(Organization).count(),
                "total_users": db.query(User).count(),
                "total_projects": db.query(Project).count(),
                "total_ingestion_jobs": db.query(IngestionJob).count(),
                "active_ingestion_jobs": db.query(IngestionJob).filter(
                    IngestionJob.status.in_([IngestionJobStatus.PENDING, IngestionJobStatus.PROCESSING])
                ).count(),
                "total_background_jobs": db.query(BackgroundJob).count(),
                "active_background_jobs": db.query(BackgroundJob).filter(
                    BackgroundJob.status.in_([BackgroundJobStatus.QUEUED, BackgroundJobStatus.RUNNING])
                ).count(),
            },
            "workers": {
                "in_flight_tasks": dispatcher.pending_count(),
            },
        }
    except Exception as e:
        logger.error(f"Health check error: {e}")
        return {
            "status": "unhealthy",
            "timestamp": datetime.utcnow().isoformat(),
            "error": str(e)
        }


@router.get("/readiness")
async def readiness_check(db: DBSession = Depends(get_db)):
    """
    Readiness check for container orchestration.

    Returns:
        Readiness status
    """
    try:
        db.execute(text("SELECT 1"))

        return {
            "status": "ready",
            "timestamp": datetime.utcnow().isoformat(),
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return {
            "status": "not_ready",
            "timestamp": datetime.utcnow().isoformat(),
            "error": str(e)
        }


@router.get("/liveness")
async def liveness_check():
    """
    Liveness check for container orchestration.

    Returns:
        Liveness status (always returns 200 if server is running)
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
    }
