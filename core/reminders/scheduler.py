"""
In-process APScheduler trigger for reminder dispatch.

For deployments without an external cron. Runs the same dispatch as the
HTTP trigger every INTERVAL_MINUTES. Jobs are memory-only: the interval job
is recreated on every start, so nothing needs persisting.

max_instances=1 keeps in-process runs from overlapping; it does not
serialise against an external trigger hitting the HTTP endpoint.
"""

import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config import ConfigurationError, DispatchConfig
from .kinds import DEFAULT_TOLERANCE
from .sessions import SessionFetchError
from .window import max_invocation_interval

logger = logging.getLogger(__name__)

JOB_ID = "reminder_dispatch"
INTERVAL_MINUTES = 5

_scheduler: AsyncIOScheduler | None = None


async def _run_scheduled_dispatch() -> None:
    """Job body: build config, run dispatch, log the summary."""
    from .dispatcher import run_reminder_dispatch

    try:
        config = DispatchConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Scheduled reminder run skipped: {e}")
        return

    try:
        result = await run_reminder_dispatch(config)
    except SessionFetchError as e:
        logger.error(f"Scheduled reminder run failed: {e}")
        return

    logger.info(f"Scheduled reminder run: {result.to_response()}")


def _configured_tolerance() -> timedelta:
    try:
        return DispatchConfig.from_env().narrowest_tolerance
    except ConfigurationError:
        return DEFAULT_TOLERANCE


def init_scheduler(
    interval_minutes: int = INTERVAL_MINUTES,
    tolerance: timedelta | None = None,
) -> AsyncIOScheduler:
    """
    Initialize and start the scheduler with the dispatch interval job.

    Warns when the interval is wider than the configured tolerance allows;
    tolerance defaults to the narrowest one in the environment config.

    Call this during app startup (in FastAPI lifespan).
    """
    global _scheduler

    if _scheduler is not None:
        return _scheduler

    if tolerance is None:
        tolerance = _configured_tolerance()
    if timedelta(minutes=interval_minutes) > max_invocation_interval(tolerance):
        logger.warning(
            f"Reminder interval of {interval_minutes} minutes can skip reminder "
            f"windows with a tolerance of {tolerance}"
        )

    _scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )
    _scheduler.add_job(
        _run_scheduled_dispatch,
        trigger="interval",
        minutes=interval_minutes,
        id=JOB_ID,
        replace_existing=True,
    )
    _scheduler.start()
    logger.info(f"Reminder scheduler started (every {interval_minutes} minutes)")
    return _scheduler


def shutdown_scheduler() -> None:
    """
    Shutdown the scheduler gracefully.

    Call this during app shutdown.
    """
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=True)
        _scheduler = None
        logger.info("Reminder scheduler stopped")
