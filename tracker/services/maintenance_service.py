"""Read-only housekeeping reports produced by the archive and cleanup background jobs."""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.db.models import BackgroundJob, IngestionJob, Project
from tracker.models.job import BackgroundJobStatus, IngestionJobStatus
from tracker.models.project import ProjectStatus

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Archive candidates and expired job counts. Nothing here writes."""

    @staticmethod
    def cutoff(days: int, now: Optional[datetime] = None) -> datetime:
        """Point in time `days` days before `now`."""
        return (now or datetime.utcnow()) - timedelta(days=days)

    @staticmethod
    def _archivable(db: Session, organization_id: int, older_than_days: int):
        return db.query(Project).filter(
            Project.organization_id == organization_id,
            Project.status == ProjectStatus.COMPLETED,
            Project.completed_at.isnot(None),
            Project.completed_at < MaintenanceService.cutoff(older_than_days)
        )

    @staticmethod
    def find_archivable_projects(db: Session, organization_id: int, older_than_days: int) -> List[int]:
        """
        Ids of completed projects finished before the cutoff.

        Args:
            db: Database session
            organization_id: Organization ID
            older_than_days: Minimum age of the completion, in days

        Returns:
            Project ids, oldest completion first
        """
        rows = MaintenanceService._archivable(db, organization_id, older_than_days).with_entities(
            Project.id
        ).order_by(Project.completed_at).all()
        return [project_id for (project_id,) in rows]

    @staticmethod
    def count_archivable_by_user(db: Session, organization_id: int, older_than_days: int) -> List[Dict[str, int]]:
        """Archive candidates per owner, largest first."""
        project_count = func.count(Project.id)
        rows = MaintenanceService._archivable(db, organization_id, older_than_days).with_entities(
            Project.user_id, project_count
        ).group_by(Project.user_id).order_by(project_count.desc(), Project.user_id).all()
        return [{"user_id": user_id, "project_count": int(count)} for user_id, count in rows]

    @staticmethod
    def count_expired_ingestion_jobs(db: Session, organization_id: int, retention_days: int) -> int:
        """Terminal ingestion jobs that finished before the retention window."""
        count = db.query(func.count(IngestionJob.id)).filter(
            IngestionJob.organization_id == organization_id,
            IngestionJob.status.in_([IngestionJobStatus.COMPLETED, IngestionJobStatus.FAILED]),
            IngestionJob.completed_at.isnot(None),
            IngestionJob.completed_at < MaintenanceService.cutoff(retention_days)
        ).scalar()

        logger.info(f"Found {count} expired ingestion jobs for organization {organization_id}")

        return int(count or 0)

    @staticmethod
    def count_expired_background_jobs(
        db: Session,
        organization_id: int,
        retention_days: int,
        exclude_job_id: Optional[str] = None,
    ) -> int:
        """Terminal background jobs that finished before the retention window."""
        query = db.query(func.count(BackgroundJob.id)).filter(
            BackgroundJob.organization_id == organization_id,
            BackgroundJob.status.in_([BackgroundJobStatus.COMPLETED, BackgroundJobStatus.FAILED]),
            BackgroundJob.completed_at.isnot(None),
            BackgroundJob.completed_at < MaintenanceService.cutoff(retention_days)
        )
        if exclude_job_id:
            query = query.filter(BackgroundJob.job_id != exclude_job_id)

        count = query.scalar()

        logger.info(f"Found {count} expired background jobs for organization {organization_id}")

        return int(count or 0)
