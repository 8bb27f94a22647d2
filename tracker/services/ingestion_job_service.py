"""File ingestion job management service."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.core.config import settings
from tracker.core.exceptions import (
    ConflictError,
    MissingFieldError,
    NoFieldsError,
    NotFoundError,
    ValidationError,
)
from tracker.db.models import IngestionJob
from tracker.models.job import (
    ALLOWED_FILE_TYPES,
    CreateIngestionJobRequest,
    IngestionJobResponse,
    IngestionJobStatus,
    PipelineCallbackRequest,
)

logger = logging.getLogger(__name__)

# Columns that may be written through update_job
UPDATABLE_FIELDS = ("status", "result_url", "result_data", "error_message")

# Position of each status in pending -> processing -> terminal
STATUS_ORDER = {
    IngestionJobStatus.PENDING: 0,
    IngestionJobStatus.PROCESSING: 1,
    IngestionJobStatus.COMPLETED: 2,
    IngestionJobStatus.FAILED: 2,
}


class IngestionJobService:
    """Service for managing file ingestion jobs."""

    @staticmethod
    def generate_job_id() -> str:
        """Generate an opaque, globally unique job id."""
        return f"job_{secrets.token_hex(16)}"

    @staticmethod
    def generate_upload_url(job_id: str) -> str:
        """Build the (mock) upload target for a job."""
        return f"{settings.storage_base_url}/upload/{job_id}"

    @staticmethod
    def generate_result_url(job_id: str) -> str:
        """Build the (mock) result reference for a completed job."""
        return f"{settings.storage_base_url}/results/{job_id}.json"

    @staticmethod
    def upload_expires_at(issued_at: Optional[datetime] = None) -> datetime:
        """Expiry of an upload target issued at `issued_at` (defaults to now)."""
        issued_at = issued_at or datetime.utcnow()
        return issued_at + timedelta(seconds=settings.upload_url_expiry_seconds)

    @staticmethod
    def validate_file_type(file_type: str) -> str:
        """
        Normalize and validate a file-type tag.

        Args:
            file_type: Tag supplied by the client (any case)

        Returns:
            Lower-cased tag

        Raises:
            ValidationError: If the tag is not in the allow-list
        """
        normalized = file_type.strip().lower()
        if normalized not in ALLOWED_FILE_TYPES:
            raise ValidationError(
                f"File type '{file_type}' not allowed. Allowed types: {', '.join(ALLOWED_FILE_TYPES)}",
                field="file_type",
            )
        return normalized

    @staticmethod
    def create_job(
        db: Session,
        request: CreateIngestionJobRequest,
        user_id: int,
        organization_id: int,
    ) -> IngestionJob:
        """
        Create a new ingestion job in the pending state.

        The file type is validated before anything is written.

        Raises:
            ValidationError: If the file type is not allowed
        """
        file_type = IngestionJobService.validate_file_type(request.file_type)
        job_id = IngestionJobService.generate_job_id()

        job = IngestionJob(
            job_id=job_id,
            user_id=user_id,
            organization_id=organization_id,
            filename=request.filename,
            file_type=file_type,
            file_size=request.file_size,
            status=IngestionJobStatus.PENDING,
            upload_url=IngestionJobService.generate_upload_url(job_id),
        )
        db.add(job)
        db.commit()
        db.refresh(job)

        logger.info(
            f"Created ingestion job {job.job_id} for organization {organization_id} "
            f"(file={request.filename}, type={file_type}, user={user_id})"
        )

        return job

    @staticmethod
    def get_job(db: Session, job_id: str, organization_id: int) -> Optional[IngestionJob]:
        """Get job by ID (organization-scoped)."""
        return db.query(IngestionJob).filter(
            IngestionJob.job_id == job_id,
            IngestionJob.organization_id == organization_id
        ).first()

    @staticmethod
    def get_job_global(db: Session, job_id: str) -> Optional[IngestionJob]:
        """Get job by ID without an organization check (callback and worker use only)."""
        return db.query(IngestionJob).filter(IngestionJob.job_id == job_id).first()

    @staticmethod
    def get_job_or_404(db: Session, job_id: str, organization_id: int) -> IngestionJob:
        """Organization-scoped lookup that raises when nothing is visible."""
        job = IngestionJobService.get_job(db, job_id, organization_id)
        if not job:
            raise NotFoundError("Job not found or you do not have permission to access it")
        return job

    @staticmethod
    def list_user_jobs(db: Session, user_id: int, organization_id: int) -> List[IngestionJob]:
        """List a user's jobs, newest first."""
        return db.query(IngestionJob).filter(
            IngestionJob.user_id == user_id,
            IngestionJob.organization_id == organization_id
        ).order_by(IngestionJob.created_at.desc(), IngestionJob.id.desc()).all()

    @staticmethod
    def list_organization_jobs(
        db: Session,
        organization_id: int,
        limit: Optional[int] = None,
    ) -> List[IngestionJob]:
        """List an organization's jobs, newest first, optionally capped."""
        query = db.query(IngestionJob).filter(
            IngestionJob.organization_id == organization_id
        ).order_by(IngestionJob.created_at.desc(), IngestionJob.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def update_job(db: Session, job_id: str, **fields: Any) -> Optional[IngestionJob]:
        """
        Apply a partial update to a job.

        Lifecycle timestamps are stamped from the new status: the first move to
        PROCESSING sets started_processing_at, a terminal status sets completed_at.

        Args:
            db: Database session
            job_id: Job ID
            **fields: Any of status, result_url, result_data, error_message

        Returns:
            Updated job, or None if the job does not exist

        Raises:
            NoFieldsError: If no fields were given
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown ingestion job fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise NoFieldsError()
        updates = dict(fields)

        job = IngestionJobService.get_job_global(db, job_id)
        if not job:
            return None

        for key, value in updates.items():
            setattr(job, key, value)

        new_status = updates.get("status")
        if new_status is not None:
            new_status = IngestionJobStatus(new_status)
            job.status = new_status
            now = datetime.utcnow()
            if new_status == IngestionJobStatus.PROCESSING and not job.started_processing_at:
                job.started_processing_at = now
            if new_status.is_terminal:
                job.completed_at = now

        db.commit()
        db.refresh(job)

        logger.info(f"Updated ingestion job {job_id} ({', '.join(updates)}) -> status {job.status.value}")

        return job

    @staticmethod
    def delete_job(db: Session, job_id: str, organization_id: int) -> bool:
        """
        Delete a job in any status.

        Returns:
            True if deleted, False if not found in this organization
        """
        deleted = db.query(IngestionJob).filter(
            IngestionJob.job_id == job_id,
            IngestionJob.organization_id == organization_id
        ).delete(synchronize_session=False)
        db.commit()

        if deleted:
            logger.info(f"Deleted ingestion job {job_id} for organization {organization_id}")

        return deleted > 0

    @staticmethod
    def get_stats(db: Session, organization_id: int) -> Dict[str, int]:
        """Count jobs per status with a single grouped query."""
        rows = db.query(IngestionJob.status, func.count(IngestionJob.id)).filter(
            IngestionJob.organization_id == organization_id
        ).group_by(IngestionJob.status).all()

        stats = {job_status.value: 0 for job_status in IngestionJobStatus}
        for job_status, count in rows:
            stats[IngestionJobStatus(job_status).value] = int(count)

        return {"total": sum(stats.values()), **stats}

    @staticmethod
    def apply_callback(db: Session, request: PipelineCallbackRequest) -> IngestionJob:
        """
        Apply an out-of-band status update from an external processor.

        The lookup is not organization-scoped. Unset optional fields keep their
        values. A terminal job only accepts a repeat of its current state.

        Raises:
            MissingFieldError: If job_id or status is missing
            ValidationError: If the status is unknown or outcome fields do not match it
            NotFoundError: If no job has this id
            ConflictError: If the job is terminal and the update would change it
        """
        if not request.job_id or not request.status:
            raise MissingFieldError(
                "job_id and status are required",
                field="job_id" if not request.job_id else "status",
            )

        try:
            new_status = IngestionJobStatus(request.status.strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in IngestionJobStatus)
            raise ValidationError(
                f"Invalid status '{request.status}'. Allowed statuses: {allowed}",
                field="status",
            )

        if (request.result_url or request.result_data) and new_status != IngestionJobStatus.COMPLETED:
            raise ValidationError(
                "result_url and result_data may only be sent with status 'completed'",
                field="status",
            )
        if request.error_message and new_status != IngestionJobStatus.FAILED:
            raise ValidationError(
                "error_message may only be sent with status 'failed'",
                field="status",
            )

        job = IngestionJobService.get_job_global(db, request.job_id)
        if not job:
            raise NotFoundError("Job not found")

        updates: Dict[str, Any] = {"status": new_status}
        if request.result_url:
            updates["result_url"] = request.result_url
        if request.result_data:
            updates["result_data"] = request.result_data
        if request.error_message:
            updates["error_message"] = request.error_message

        if job.status.is_terminal:
            unchanged = all(getattr(job, key) == value for key, value in updates.items())
            if unchanged:
                logger.info(f"Callback for job {job.job_id} repeats terminal state {job.status.value}")
                return job
            raise ConflictError(
                f"Job {job.job_id} is already {job.status.value} and cannot be changed"
            )

        if STATUS_ORDER[new_status] < STATUS_ORDER[job.status]:
            raise ConflictError(
                f"Job {job.job_id} cannot move back from {job.status.value} to {new_status.value}"
            )

        logger.info(f"Pipeline callback for job {job.job_id}: {job.status.value} -> {new_status.value}")

        return IngestionJobService.update_job(db, job.job_id, **updates)

    @staticmethod
    def to_response(job: IngestionJob) -> IngestionJobResponse:
        """Convert IngestionJob ORM model to response Pydantic model."""
        return IngestionJobResponse(
            job_id=job.job_id,
            user_id=job.user_id,
            organization_id=job.organization_id,
            filename=job.filename,
            file_type=job.file_type,
            file_size=job.file_size,
            status=job.status,
            upload_url=job.upload_url,
            result_url=job.result_url,
            result_data=job.result_data,
            error_message=job.error_message,
            created_at=job.created_at,
            started_processing_at=job.started_processing_at,
            completed_at=job.completed_at,
            updated_at=job.updated_at,
        )
