"""Callback route for external processing pipelines."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from tracker.db.session import get_db
from tracker.models.job import PipelineCallbackRequest, PipelineCallbackResponse
from tracker.services.ingestion_job_service import IngestionJobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.post("/callback", response_model=PipelineCallbackResponse)
async def pipeline_callback(
    payload: PipelineCallbackRequest,
    db: DBSession = Depends(get_db)
) -> PipelineCallbackResponse:
    """
    Receive a status update for an ingestion job.

    Not authenticated and not organization-scoped: the job id is the only
    credential. A job that is already completed or failed only accepts an
    identical repeat.

    Raises:
        MissingFieldError: If job_id or status is missing
        ValidationError: If the status or outcome fields are invalid
        NotFoundError: If the job does not exist
        ConflictError: If the update contradicts a terminal job
    """
    job = IngestionJobService.apply_callback(db, payload)

    return PipelineCallbackResponse(
        message="Job status updated",
        job_id=job.job_id,
        status=job.status,
    )
