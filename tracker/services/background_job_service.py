"""Background compute job management service."""

import logging
import math
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.core.exceptions import ConflictError, NoFieldsError, NotFoundError
from tracker.db.models import BackgroundJob
from tracker.models.job import (
    BackgroundJobResponse,
    BackgroundJobStatus,
    BackgroundJobType,
    CreateBackgroundJobRequest,
)

logger = logging.getLogger(__name__)

# Estimated run time per job type, in seconds
ESTIMATED_TIME_SECONDS = {
    BackgroundJobType.RECOMPUTE_ANALYTICS: 15,
    BackgroundJobType.ARCHIVE_OLD_PROJECTS: 30,
    BackgroundJobType.CLEANUP_OLD_JOBS: 10,
}
DEFAULT_ESTIMATED_TIME_SECONDS = 20

UPDATABLE_FIELDS = ("status", "progress_percentage", "current_step", "result_data", "error_message")


class BackgroundJobService:
    """Service for managing background compute jobs."""

    @staticmethod
    def generate_job_id() -> str:
        """Generate an opaque, globally unique job id."""
        return f"bg_job_{secrets.token_hex(16)}"

    @staticmethod
    def get_estimated_time(job_type: BackgroundJobType) -> int:
        """Estimated duration hint for a job type."""
        return ESTIMATED_TIME_SECONDS.get(job_type, DEFAULT_ESTIMATED_TIME_SECONDS)

    @staticmethod
    def create_job(
        db: Session,
        request: CreateBackgroundJobRequest,
        user_id: int,
        organization_id: int,
    ) -> BackgroundJob:
        """Create a new job in the queued state with progress 0."""
        job_type = BackgroundJobType(request.job_type)

        job = BackgroundJob(
            job_id=BackgroundJobService.generate_job_id(),
            job_type=job_type,
            user_id=user_id,
            organization_id=organization_id,
            status=BackgroundJobStatus.QUEUED,
            progress_percentage=0,
            job_options=dict(request.options or {}),
            estimated_time_seconds=BackgroundJobService.get_estimated_time(job_type),
        )
        db.add(job)
        db.commit()
        db.refresh(job)

        logger.info(
            f"Created background job {job.job_id} for organization {organization_id} "
            f"(type={job_type.value}, user={user_id})"
        )

        return job

    @staticmethod
    def get_job(db: Session, job_id: str, organization_id: int) -> Optional[BackgroundJob]:
        """Get job by ID (organization-scoped)."""
        return db.query(BackgroundJob).filter(
            BackgroundJob.job_id == job_id,
            BackgroundJob.organization_id == organization_id
        ).first()

    @staticmethod
    def get_job_global(db: Session, job_id: str) -> Optional[BackgroundJob]:
        """Get job by ID without an organization check (worker use only)."""
        return db.query(BackgroundJob).filter(BackgroundJob.job_id == job_id).first()

    @staticmethod
    def get_job_or_404(db: Session, job_id: str, organization_id: int) -> BackgroundJob:
        """Organization-scoped lookup that raises when nothing is visible."""
        job = BackgroundJobService.get_job(db, job_id, organization_id)
        if not job:
            raise NotFoundError("Job not found or you do not have permission to access it")
        return job

    @staticmethod
    def list_jobs(db: Session, organization_id: int, limit: Optional[int] = 50) -> List[BackgroundJob]:
        """List an organization's jobs, newest first."""
        query = db.query(BackgroundJob).filter(
            BackgroundJob.organization_id == organization_id
        ).order_by(BackgroundJob.created_at.desc(), BackgroundJob.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def list_jobs_by_status(
        db: Session,
        organization_id: int,
        status: BackgroundJobStatus,
    ) -> List[BackgroundJob]:
        """List an organization's jobs in one status, newest first."""
        return db.query(BackgroundJob).filter(
            BackgroundJob.organization_id == organization_id,
            BackgroundJob.status == BackgroundJobStatus(status)
        ).order_by(BackgroundJob.created_at.desc(), BackgroundJob.id.desc()).all()

    @staticmethod
    def update_job(db: Session, job_id: str, **fields: Any) -> Optional[BackgroundJob]:
        """
        Apply a partial update to a job.

        Entering RUNNING stamps started_at, a terminal status stamps completed_at.

        Args:
            db: Database session
            job_id: Job ID
            **fields: Any of status, progress_percentage, current_step, result_data, error_message

        Returns:
            Updated job, or None if the job does not exist

        Raises:
            NoFieldsError: If no fields were given
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown background job fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise NoFieldsError()

        job = BackgroundJobService.get_job_global(db, job_id)
        if not job:
            return None

        for key, value in fields.items():
            setattr(job, key, value)

        new_status = fields.get("status")
        if new_status is not None:
            new_status = BackgroundJobStatus(new_status)
            job.status = new_status
            now = datetime.utcnow()
            if new_status == BackgroundJobStatus.RUNNING and not job.started_at:
                job.started_at = now
            if new_status.is_terminal:
                job.completed_at = now

        db.commit()
        db.refresh(job)

        logger.info(
            f"Updated background job {job_id} -> status {job.status.value}, "
            f"progress {job.progress_percentage}%"
        )

        return job

    @staticmethod
    def delete_job(db: Session, job_id: str, organization_id: int) -> bool:
        """
        Delete a job that is not running.

        Returns:
            True if deleted

        Raises:
            NotFoundError: If the job is not visible to this organization
            ConflictError: If the job is running
        """
        job = BackgroundJobService.get_job(db, job_id, organization_id)
        if not job:
            raise NotFoundError("Job not found or you do not have permission to delete it")

        if job.status == BackgroundJobStatus.RUNNING:
            raise ConflictError("Cannot delete a job that is currently running")

        db.delete(job)
        db.commit()

        logger.info(f"Deleted background job {job_id} for organization {organization_id}")

        return True

    @staticmethod
    def get_stats(db: Session, organization_id: int) -> Dict[str, int]:
        """Count jobs per status with a single grouped query."""
        rows = db.query(BackgroundJob.status, func.count(BackgroundJob.id)).filter(
            BackgroundJob.organization_id == organization_id
        ).group_by(BackgroundJob.status).all()

        stats = {job_status.value: 0 for job_status in BackgroundJobStatus}
        for job_status, count in rows:
            stats[BackgroundJobStatus(job_status).value] = int(count)

        return {"total": sum(stats.values()), **stats}

    @staticmethod
    def elapsed_seconds(job: BackgroundJob, now: Optional[datetime] = None) -> int:
        """Whole seconds since the job started, 0 if it has not started."""
        if not job.started_at:
            return 0
        now = now or datetime.utcnow()
        return max(0, math.floor((now - job.started_at).total_seconds()))

    @staticmethod
    def to_response(job: BackgroundJob) -> BackgroundJobResponse:
        """Convert BackgroundJob ORM model to response Pydantic model."""
        return BackgroundJobResponse(
            job_id=job.job_id,
            job_type=job.job_type,
            user_id=job.user_id,
            organization_id=job.organization_id,
            status=job.status,
            progress_percentage=job.progress_percentage,
            current_step=job.current_step,
            options=job.job_options or {},
            result_data=job.result_data,
            error_message=job.error_message,
            estimated_time_seconds=job.estimated_time_seconds,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            updated_at=job.updated_at,
        )
