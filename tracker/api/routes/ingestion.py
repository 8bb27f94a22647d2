"""File ingestion API routes."""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session as DBSession

from tracker.core.config import settings
from tracker.core.exceptions import NotFoundError
from tracker.db.session import get_db
from tracker.middleware.auth import CurrentUser, get_current_user
from tracker.middleware.rate_limit import get_job_trigger_limit, limiter
from tracker.models.job import (
    CreateIngestionJobRequest,
    IngestionJobListResponse,
    IngestionJobStatusResponse,
    IngestionStatsResponse,
    MessageResponse,
    UploadInitResponse,
)
from tracker.services.ingestion_job_service import IngestionJobService
from tracker.workers import dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingestion"])


@router.post("/init", response_model=UploadInitResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_job_trigger_limit)
async def init_upload(
    request: Request,
    payload: CreateIngestionJobRequest,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> UploadInitResponse:
    """
    Initiate a file upload.

    Creates a pending ingestion job, returns a time-limited upload target and
    starts the simulated transfer in the background.

    Raises:
        ValidationError: If the file type is not allowed (nothing is stored)
    """
    job = IngestionJobService.create_job(db, payload, user.id, user.organization_id)

    dispatcher.start_ingestion_job(job.job_id)

    return UploadInitResponse(
        job_id=job.job_id,
        upload_url=job.upload_url,
        status=job.status,
        expires_at=IngestionJobService.upload_expires_at(job.created_at),
    )


@router.get("/status/{job_id}", response_model=IngestionJobStatusResponse)
async def get_ingestion_status(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> IngestionJobStatusResponse:
    """Current state of an ingestion job owned by the caller's organization."""
    job = IngestionJobService.get_job_or_404(db, job_id, user.organization_id)
    return IngestionJobStatusResponse(job=IngestionJobService.to_response(job))


@router.get("/jobs", response_model=IngestionJobListResponse)
async def list_my_ingestion_jobs(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> IngestionJobListResponse:
    """The caller's own ingestion jobs, newest first."""
    jobs = IngestionJobService.list_user_jobs(db, user.id, user.organization_id)
    return IngestionJobListResponse(
        jobs=[IngestionJobService.to_response(job) for job in jobs],
        count=len(jobs),
    )


@router.get("/jobs/all", response_model=IngestionJobListResponse)
async def list_organization_ingestion_jobs(
    limit: int = Query(settings.job_list_default_limit, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> IngestionJobListResponse:
    """All ingestion jobs of the caller's organization, newest first."""
    jobs = IngestionJobService.list_organization_jobs(db, user.organization_id, limit=limit)
    return IngestionJobListResponse(
        jobs=[IngestionJobService.to_response(job) for job in jobs],
        count=len(jobs),
    )


@router.get("/stats", response_model=IngestionStatsResponse)
async def get_ingestion_stats(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> IngestionStatsResponse:
    """Per-status ingestion job counts for the caller's organization."""
    return IngestionStatsResponse(stats=IngestionJobService.get_stats(db, user.organization_id))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_ingestion_job(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> MessageResponse:
    """
    Delete an ingestion job in any status.

    A lifecycle still running for the job stops at its next transition.
    """
    if not IngestionJobService.delete_job(db, job_id, user.organization_id):
        raise NotFoundError("Job not found or you do not have permission to delete it")

    return MessageResponse(message="Job deleted successfully")
