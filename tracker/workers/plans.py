"""Step plans executed by background jobs, one per job type. Steps only read."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from sqlalchemy.orm import Session

from tracker.core.config import settings
from tracker.models.job import BackgroundJobType
from tracker.services.analytics_service import ProjectAnalyticsService
from tracker.services.background_job_service import BackgroundJobService
from tracker.services.ingestion_job_service import IngestionJobService
from tracker.services.maintenance_service import MaintenanceService


@dataclass(frozen=True)
class JobContext:
    """What a step may know about the job it runs for."""

    job_id: str
    organization_id: int
    options: Dict[str, Any] = field(default_factory=dict)

    def int_option(self, name: str, default: int) -> int:
        """Read a positive integer option, falling back to `default`."""
        value = self.options.get(name, default)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"Option '{name}' must be a positive integer, got {value!r}")
        return value


# A step receives the session, the job context and the outputs of earlier steps
StepFunction = Callable[[Session, JobContext, Dict[str, Any]], Any]


@dataclass(frozen=True)
class JobStep:
    label: str
    result_key: str
    run: StepFunction
    delay: float


@dataclass(frozen=True)
class JobPlan:
    """Ordered steps plus the labels and result keys around them."""

    initial_step: str
    initial_delay: float
    steps: Tuple[JobStep, ...]
    completion_step: str
    timestamp_key: str
    metrics_updated: Tuple[str, ...]


# ============================================================================
# recompute_analytics
# ============================================================================


RECOMPUTE_ANALYTICS = JobPlan(
    initial_step="Initializing analytics recalculation...",
    initial_delay=2.0,
    steps=(
        JobStep(
            label="Recalculating project statistics...",
            result_key="organization_stats",
            run=lambda db, ctx, _: ProjectAnalyticsService.get_stats_by_organization(db, ctx.organization_id),
            delay=3.0,
        ),
        JobStep(
            label="Updating completion time metrics...",
            result_key="average_completion_time",
            run=lambda db, ctx, _: ProjectAnalyticsService.get_average_completion_time(db, ctx.organization_id),
            delay=3.0,
        ),
        JobStep(
            label="Refreshing detailed analytics...",
            result_key="detailed_analytics",
            run=lambda db, ctx, _: ProjectAnalyticsService.get_detailed_analytics(db, ctx.organization_id),
            delay=2.0,
        ),
    ),
    completion_step="Analytics recalculation complete",
    timestamp_key="recalculated_at",
    metrics_updated=(
        "project_counts",
        "completion_rates",
        "average_completion_time",
        "user_statistics",
        "organization_overview",
    ),
)


# ============================================================================
# archive_old_projects (report only)
# ============================================================================


def _older_than_days(ctx: JobContext) -> int:
    return ctx.int_option("older_than_days", settings.archive_after_days)


def _find_archive_candidates(db: Session, ctx: JobContext, results: Dict[str, Any]):
    return MaintenanceService.find_archivable_projects(db, ctx.organization_id, _older_than_days(ctx))


def _group_archive_candidates(db: Session, ctx: JobContext, results: Dict[str, Any]):
    return MaintenanceService.count_archivable_by_user(db, ctx.organization_id, _older_than_days(ctx))


ARCHIVE_OLD_PROJECTS = JobPlan(
    initial_step="Preparing archive report...",
    initial_delay=2.0,
    steps=(
        JobStep(
            label="Finding completed projects past the archive window...",
            result_key="archive_candidates",
            run=_find_archive_candidates,
            delay=5.0,
        ),
        JobStep(
            label="Grouping archive candidates by owner...",
            result_key="candidates_by_user",
            run=_group_archive_candidates,
            delay=10.0,
        ),
        JobStep(
            label="Refreshing project statistics...",
            result_key="organization_stats",
            run=lambda db, ctx, _: ProjectAnalyticsService.get_stats_by_organization(db, ctx.organization_id),
            delay=5.0,
        ),
    ),
    completion_step="Archive report complete",
    timestamp_key="reported_at",
    metrics_updated=("archive_candidates", "project_counts"),
)


# ============================================================================
# cleanup_old_jobs (report only)
# ============================================================================


def _retention_days(ctx: JobContext) -> int:
    return ctx.int_option("retention_days", settings.job_retention_days)


def _count_expired_ingestion_jobs(db: Session, ctx: JobContext, results: Dict[str, Any]) -> int:
    return MaintenanceService.count_expired_ingestion_jobs(db, ctx.organization_id, _retention_days(ctx))


def _count_expired_background_jobs(db: Session, ctx: JobContext, results: Dict[str, Any]) -> int:
    return MaintenanceService.count_expired_background_jobs(
        db, ctx.organization_id, _retention_days(ctx), exclude_job_id=ctx.job_id
    )


def _recount_jobs(db: Session, ctx: JobContext, results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "ingestion": IngestionJobService.get_stats(db, ctx.organization_id),
        "background": BackgroundJobService.get_stats(db, ctx.organization_id),
    }


CLEANUP_OLD_JOBS = JobPlan(
    initial_step="Preparing job retention report...",
    initial_delay=1.0,
    steps=(
        JobStep(
            label="Counting expired ingestion jobs...",
            result_key="expired_ingestion_jobs",
            run=_count_expired_ingestion_jobs,
            delay=3.0,
        ),
        JobStep(
            label="Counting expired background jobs...",
            result_key="expired_background_jobs",
            run=_count_expired_background_jobs,
            delay=3.0,
        ),
        JobStep(
            label="Recounting job statistics...",
            result_key="job_stats",
            run=_recount_jobs,
            delay=2.0,
        ),
    ),
    completion_step="Job retention report complete",
    timestamp_key="reported_at",
    metrics_updated=("expired_ingestion_jobs", "expired_background_jobs", "job_statistics"),
)


PLANS: Dict[BackgroundJobType, JobPlan] = {
    BackgroundJobType.RECOMPUTE_ANALYTICS: RECOMPUTE_ANALYTICS,
    BackgroundJobType.ARCHIVE_OLD_PROJECTS: ARCHIVE_OLD_PROJECTS,
    BackgroundJobType.CLEANUP_OLD_JOBS: CLEANUP_OLD_JOBS,
}


def get_plan(job_type: BackgroundJobType) -> JobPlan:
    """Plan for a job type. Raises LookupError for types without one."""
    try:
        return PLANS[BackgroundJobType(job_type)]
    except (KeyError, ValueError):
        raise LookupError(f"No execution plan for job type '{job_type}'")
