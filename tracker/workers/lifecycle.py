"""
Job lifecycle engine.

Each coroutine here drives one job from its initial to a terminal state. They
are launched detached by the dispatcher, so nobody awaits them: every failure
is logged and turned into a FAILED job instead of being raised. A cancelled
unit (server shutdown) is marked FAILED before the cancellation propagates.
"""

import asyncio
import logging
import random
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from tracker.core.config import settings
from tracker.db.models import BackgroundJob, IngestionJob
from tracker.db.session import SessionLocal
from tracker.models.job import BackgroundJobStatus, IngestionJobStatus
from tracker.services.background_job_service import BackgroundJobService
from tracker.services.ingestion_job_service import IngestionJobService
from tracker.workers.plans import JobContext, JobPlan, get_plan

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

PROGRESS_COMPLETE = 100
INGESTION_FAILURE_MESSAGE = "Mock error: File format invalid or corrupted"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
INTERRUPTED_MESSAGE = "Job interrupted before completion (server shutdown)"


def _scaled(seconds: float) -> float:
    return seconds * settings.job_delay_scale


def _record_interruption(db: Session, job_id: str, advance: Callable[..., Any], status: Any) -> None:
    """
    Mark a cancelled job FAILED.

    Runs while the cancellation propagates, so errors are logged and not raised.
    """
    try:
        db.rollback()
        advance(db, job_id, status=status, error_message=INTERRUPTED_MESSAGE)
    except Exception:
        logger.exception(f"Could not mark interrupted job {job_id} as failed")


# ============================================================================
# Ingestion jobs: pending -> processing -> completed | failed
# ============================================================================


def build_ingestion_result(rng: random.Random, processing_time_ms: int) -> Dict[str, Any]:
    """Synthetic processing output attached to a completed ingestion job."""
    return {
        "rows_processed": rng.randint(100, 10099),
        "columns": rng.randint(5, 24),
        "processing_time_ms": processing_time_ms,
        "summary": "File processed successfully",
        "data_preview": [
            {"id": 1, "name": "Sample Data 1", "value": 123},
            {"id": 2, "name": "Sample Data 2", "value": 456},
            {"id": 3, "name": "Sample Data 3", "value": 789},
        ],
    }


def _advance_ingestion(db: Session, job_id: str, **fields: Any) -> Optional[IngestionJob]:
    """
    Write one transition unless the job is gone or already finished.

    A job deleted mid-flight or completed through the callback is left alone.
    """
    # Other sessions may have written since our last read
    db.expire_all()
    job = IngestionJobService.get_job_global(db, job_id)
    if job is None:
        logger.info(f"Ingestion job {job_id} no longer exists, stopping")
        return None
    if job.status.is_terminal:
        logger.info(f"Ingestion job {job_id} is already {job.status.value}, stopping")
        return None
    return IngestionJobService.update_job(db, job_id, **fields)


async def run_ingestion_job(
    job_id: str,
    session_factory: Optional[sessionmaker] = None,
    sleep: Sleep = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> None:
    """
    Simulate transfer and processing of an uploaded file.

    After a random transfer delay the job moves to PROCESSING, then after a
    fixed processing delay a single draw decides between COMPLETED (with a
    synthetic result) and FAILED. There is no retry.

    Args:
        job_id: Ingestion job ID
        session_factory: Session factory (defaults to SessionLocal)
        sleep: Awaitable delay function
        rng: Random source for delays and the outcome draw
    """
    rng = rng or random.Random()
    db = (session_factory or SessionLocal)()
    started = time.monotonic()

    try:
        transfer_delay = rng.uniform(
            settings.ingestion_transfer_delay_min, settings.ingestion_transfer_delay_max
        )
        await sleep(_scaled(transfer_delay))

        if _advance_ingestion(db, job_id, status=IngestionJobStatus.PROCESSING) is None:
            return

        await sleep(_scaled(settings.ingestion_processing_delay))

        if rng.random() < settings.ingestion_success_rate:
            processing_time_ms = round((time.monotonic() - started) * 1000)
            job = _advance_ingestion(
                db,
                job_id,
                status=IngestionJobStatus.COMPLETED,
                result_url=IngestionJobService.generate_result_url(job_id),
                result_data=build_ingestion_result(rng, processing_time_ms),
            )
            if job:
                logger.info(f"Ingestion job {job_id} completed successfully")
        else:
            job = _advance_ingestion(
                db,
                job_id,
                status=IngestionJobStatus.FAILED,
                error_message=INGESTION_FAILURE_MESSAGE,
            )
            if job:
                logger.warning(f"Ingestion job {job_id} failed: {INGESTION_FAILURE_MESSAGE}")

    except asyncio.CancelledError:
        logger.warning(f"Ingestion job {job_id} was cancelled")
        _record_interruption(db, job_id, _advance_ingestion, IngestionJobStatus.FAILED)
        raise

    except Exception as e:
        logger.error(f"Error processing ingestion job {job_id}: {e}", exc_info=True)
        try:
            db.rollback()
            _advance_ingestion(
                db,
                job_id,
                status=IngestionJobStatus.FAILED,
                error_message=str(e) or UNKNOWN_ERROR_MESSAGE,
            )
        except Exception:
            logger.exception(f"Could not mark ingestion job {job_id} as failed")

    finally:
        db.close()


# ============================================================================
# Background jobs: queued -> running (0, 25, 50, 75) -> completed (100) | failed
# ============================================================================


def _advance_background(db: Session, job_id: str, **fields: Any) -> Optional[BackgroundJob]:
    """Write one transition unless the job has been deleted."""
    db.expire_all()
    job = BackgroundJobService.update_job(db, job_id, **fields)
    if job is None:
        logger.info(f"Background job {job_id} no longer exists, stopping")
    return job


async def _execute_plan(db: Session, plan: JobPlan, ctx: JobContext, sleep: Sleep) -> None:
    quantum = PROGRESS_COMPLETE // (len(plan.steps) + 1)

    started = _advance_background(
        db,
        ctx.job_id,
        status=BackgroundJobStatus.RUNNING,
        progress_percentage=0,
        current_step=plan.initial_step,
    )
    if started is None:
        return

    await sleep(_scaled(plan.initial_delay))

    results: Dict[str, Any] = {}
    for index, step in enumerate(plan.steps, start=1):
        if _advance_background(db, ctx.job_id, progress_percentage=index * quantum, current_step=step.label) is None:
            return

        results[step.result_key] = step.run(db, ctx, results)
        # End the read transaction before suspending
        db.commit()

        await sleep(_scaled(step.delay))

    results[plan.timestamp_key] = datetime.utcnow().isoformat()
    results["metrics_updated"] = list(plan.metrics_updated)

    job = _advance_background(
        db,
        ctx.job_id,
        status=BackgroundJobStatus.COMPLETED,
        progress_percentage=PROGRESS_COMPLETE,
        current_step=plan.completion_step,
        result_data=results,
    )
    if job:
        logger.info(f"Background job {ctx.job_id} ({job.job_type.value}) completed")


async def run_background_job(
    job_id: str,
    session_factory: Optional[sessionmaker] = None,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    Run a queued background job through its plan.

    The job moves to RUNNING at progress 0, then each plan step raises the
    progress by a fixed quantum and records one output. Any exception stops
    the plan and marks the job FAILED with the exception message; progress
    already persisted is kept as is.

    Args:
        job_id: Background job ID
        session_factory: Session factory (defaults to SessionLocal)
        sleep: Awaitable delay function
    """
    db = (session_factory or SessionLocal)()

    try:
        job = BackgroundJobService.get_job_global(db, job_id)
        if job is None:
            logger.info(f"Background job {job_id} was removed before it started")
            return
        if job.status != BackgroundJobStatus.QUEUED:
            logger.warning(f"Background job {job_id} is {job.status.value}, not queued; skipping")
            return

        try:
            ctx = JobContext(
                job_id=job.job_id,
                organization_id=job.organization_id,
                options=dict(job.job_options or {}),
            )
            plan = get_plan(job.job_type)
            await _execute_plan(db, plan, ctx, sleep)

        except Exception as e:
            logger.error(f"Background job {job_id} failed: {e}", exc_info=True)
            db.rollback()
            _advance_background(
                db,
                job_id,
                status=BackgroundJobStatus.FAILED,
                error_message=str(e) or UNKNOWN_ERROR_MESSAGE,
            )

    except asyncio.CancelledError:
        logger.warning(f"Background job {job_id} was cancelled")
        _record_interruption(db, job_id, _advance_background, BackgroundJobStatus.FAILED)
        raise

    except Exception:
        logger.exception(f"Could not record the outcome of background job {job_id}")

    finally:
        db.close()
