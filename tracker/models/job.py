"""Job models for ingestion and background processing."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enumerations
# ============================================================================


class IngestionJobStatus(str, Enum):
    """File ingestion job status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionJobStatus.COMPLETED, IngestionJobStatus.FAILED)


class BackgroundJobStatus(str, Enum):
    """Background compute job status."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BackgroundJobStatus.COMPLETED, BackgroundJobStatus.FAILED)


class BackgroundJobType(str, Enum):
    """Types of background jobs."""

    RECOMPUTE_ANALYTICS = "recompute_analytics"
    ARCHIVE_OLD_PROJECTS = "archive_old_projects"
    CLEANUP_OLD_JOBS = "cleanup_old_jobs"


ALLOWED_FILE_TYPES: List[str] = ["csv", "json", "xml", "pdf", "xlsx", "txt", "log"]


# ============================================================================
# Ingestion Models
# ============================================================================


class CreateIngestionJobRequest(BaseModel):
    """Request to initiate a file upload."""

    filename: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., description="File type tag, checked against the allow-list")
    file_size: Optional[int] = Field(None, ge=0, description="File size in bytes")


class UploadInitResponse(BaseModel):
    """Response returned when an upload is initiated."""

    job_id: str
    upload_url: str
    status: IngestionJobStatus
    expires_at: datetime


class IngestionJobResponse(BaseModel):
    """Response containing ingestion job information."""

    job_id: str
    user_id: int
    organization_id: int
    filename: str
    file_type: str
    file_size: Optional[int] = None
    status: IngestionJobStatus

    upload_url: Optional[str] = None
    result_url: Optional[str] = None
    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    created_at: datetime
    started_processing_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IngestionJobStatusResponse(BaseModel):
    """Single ingestion job lookup."""

    job: IngestionJobResponse


class IngestionJobListResponse(BaseModel):
    """List of ingestion jobs."""

    jobs: List[IngestionJobResponse]
    count: int


class IngestionStats(BaseModel):
    """Per-status ingestion job counts for an organization."""

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0


class IngestionStatsResponse(BaseModel):
    stats: IngestionStats


class PipelineCallbackRequest(BaseModel):
    """
    Out-of-band status update from an external processor.

    job_id and status are optional here so that missing values are reported
    as a 400 with a field-specific message instead of a generic 422.
    """

    job_id: Optional[str] = None
    status: Optional[str] = None
    result_url: Optional[str] = None
    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


class PipelineCallbackResponse(BaseModel):
    message: str
    job_id: str
    status: IngestionJobStatus


# ============================================================================
# Background Job Models
# ============================================================================


class CreateBackgroundJobRequest(BaseModel):
    """Request to trigger a background job."""

    job_type: BackgroundJobType
    options: Dict[str, Any] = {}


class RecomputeMetricsRequest(BaseModel):
    """Request body for the analytics recalculation shortcut."""

    options: Dict[str, Any] = {}


class BackgroundJobTriggerResponse(BaseModel):
    """Response returned when a background job is triggered."""

    job_id: str
    job_type: BackgroundJobType
    status: BackgroundJobStatus
    estimated_time_seconds: Optional[int] = None
    created_at: datetime


class BackgroundJobResponse(BaseModel):
    """Response containing background job information."""

    job_id: str
    job_type: BackgroundJobType
    user_id: int
    organization_id: int
    status: BackgroundJobStatus

    progress_percentage: int = Field(0, ge=0, le=100)
    current_step: Optional[str] = None
    options: Dict[str, Any] = {}

    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    estimated_time_seconds: Optional[int] = None

    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BackgroundJobStatusResponse(BaseModel):
    """Background job lookup with elapsed time since start."""

    job: BackgroundJobResponse
    elapsed_time_seconds: int


class BackgroundJobListResponse(BaseModel):
    """List of background jobs."""

    jobs: List[BackgroundJobResponse]
    count: int


class BackgroundJobStats(BaseModel):
    """Per-status background job counts for an organization."""

    total: int = 0
    queued: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0


class BackgroundJobStatsResponse(BaseModel):
    stats: BackgroundJobStats


class MessageResponse(BaseModel):
    message: str
