"""
Detached task dispatch for job lifecycles.

Request handlers call start_* after committing a job and return immediately.
The event loop only keeps weak references to tasks, so running tasks are held
here until they finish.
"""

import asyncio
import logging
from typing import Any, Coroutine, Set

from tracker.workers.lifecycle import run_background_job, run_ingestion_job

logger = logging.getLogger(__name__)

_running_tasks: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _running_tasks.discard(task)

    if task.cancelled():
        logger.warning(f"Task {task.get_name()} was cancelled")
        return

    error = task.exception()
    if error is not None:
        logger.error(f"Task {task.get_name()} crashed: {error}", exc_info=error)
    else:
        logger.debug(f"Task {task.get_name()} finished")


def spawn(coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task:
    """
    Schedule a coroutine on the running loop without awaiting it.

    Must be called from inside the event loop (async route handlers).
    """
    loop = asyncio.get_running_loop()
    task = loop.create_task(coro, name=name)
    _running_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


def start_ingestion_job(job_id: str) -> asyncio.Task:
    """Launch the simulated transfer and processing of an ingestion job."""
    logger.info(f"Dispatching ingestion job {job_id}")
    return spawn(run_ingestion_job(job_id), name=f"ingestion:{job_id}")


def start_background_job(job_id: str) -> asyncio.Task:
    """Launch the step plan of a background job."""
    logger.info(f"Dispatching background job {job_id}")
    return spawn(run_background_job(job_id), name=f"background:{job_id}")


def pending_count() -> int:
    """Number of job tasks still in flight."""
    return len(_running_tasks)


async def cancel_all() -> None:
    """Cancel in-flight tasks and wait for them to unwind (shutdown only)."""
    tasks = list(_running_tasks)
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
