"""Background job API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session as DBSession

from tracker.core.config import settings
from tracker.db.models import BackgroundJob
from tracker.db.session import get_db
from tracker.middleware.auth import CurrentUser, get_current_user
from tracker.middleware.rate_limit import get_job_trigger_limit, limiter
from tracker.models.job import (
    BackgroundJobListResponse,
    BackgroundJobStatsResponse,
    BackgroundJobStatusResponse,
    BackgroundJobTriggerResponse,
    BackgroundJobType,
    CreateBackgroundJobRequest,
    MessageResponse,
    RecomputeMetricsRequest,
)
from tracker.services.background_job_service import BackgroundJobService
from tracker.workers import dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _trigger(db: DBSession, payload: CreateBackgroundJobRequest, user: CurrentUser) -> BackgroundJobTriggerResponse:
    job: BackgroundJob = BackgroundJobService.create_job(db, payload, user.id, user.organization_id)

    dispatcher.start_background_job(job.job_id)

    return BackgroundJobTriggerResponse(
        job_id=job.job_id,
        job_type=job.job_type,
        status=job.status,
        estimated_time_seconds=job.estimated_time_seconds,
        created_at=job.created_at,
    )


@router.post("/recompute-metrics", response_model=BackgroundJobTriggerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_job_trigger_limit)
async def recompute_metrics(
    request: Request,
    payload: Optional[RecomputeMetricsRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> BackgroundJobTriggerResponse:
    """
    Trigger an analytics recalculation for the caller's organization.

    Returns immediately with the queued job; poll /jobs/status/{job_id}.
    """
    job_request = CreateBackgroundJobRequest(
        job_type=BackgroundJobType.RECOMPUTE_ANALYTICS,
        options=payload.options if payload else {},
    )
    return _trigger(db, job_request, user)


@router.post("", response_model=BackgroundJobTriggerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_job_trigger_limit)
async def trigger_job(
    request: Request,
    payload: CreateBackgroundJobRequest,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> BackgroundJobTriggerResponse:
    """Trigger a background job of any known type."""
    return _trigger(db, payload, user)


@router.get("/status/{job_id}", response_model=BackgroundJobStatusResponse)
async def get_job_status(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> BackgroundJobStatusResponse:
    """
    Get job status and details.

    Returns:
        Job details including progress, current step and result, plus whole
        seconds elapsed since the job started
    """
    job = BackgroundJobService.get_job_or_404(db, job_id, user.organization_id)

    return BackgroundJobStatusResponse(
        job=BackgroundJobService.to_response(job),
        elapsed_time_seconds=BackgroundJobService.elapsed_seconds(job),
    )


@router.get("", response_model=BackgroundJobListResponse)
async def list_jobs(
    limit: int = Query(settings.job_list_default_limit, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> BackgroundJobListResponse:
    """Background jobs of the caller's organization, newest first."""
    jobs = BackgroundJobService.list_jobs(db, user.organization_id, limit=limit)
    return BackgroundJobListResponse(
        jobs=[BackgroundJobService.to_response(job) for job in jobs],
        count=len(jobs),
    )


@router.get("/stats", response_model=BackgroundJobStatsResponse)
async def get_job_stats(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> BackgroundJobStatsResponse:
    """Per-status background job counts for the caller's organization."""
    return BackgroundJobStatsResponse(stats=BackgroundJobService.get_stats(db, user.organization_id))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> MessageResponse:
    """
    Delete a background job that is not running.

    Raises:
        NotFoundError: If the job is not visible to the caller
        ConflictError: If the job is running
    """
    BackgroundJobService.delete_job(db, job_id, user.organization_id)
    return MessageResponse(message="Job deleted successfully")
