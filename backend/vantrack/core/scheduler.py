"""APScheduler setup for per-session periodic jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from vantrack.config import settings

logger = logging.getLogger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()


def publish_job_id(bus_id: str) -> str:
    return f"publish:{bus_id}"


def watchdog_job_id(bus_id: str) -> str:
    return f"watchdog:{bus_id}"


def schedule_session_jobs(scheduler: AsyncIOScheduler, session) -> None:
    """Add the publisher and watchdog jobs for one driver session.

    The two jobs are independent: the watchdog keeps running when samples
    stop arriving, which is the condition it exists to catch.
    """
    bus_id = session.bus_id

    scheduler.add_job(
        session.publisher.tick,
        "interval",
        seconds=settings.publish_interval_seconds,
        id=publish_job_id(bus_id),
        name=f"Publish location for {bus_id}",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    scheduler.add_job(
        session.watchdog.check,
        "interval",
        seconds=settings.watchdog_interval_seconds,
        id=watchdog_job_id(bus_id),
        name=f"Stoppage watchdog for {bus_id}",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.debug("Scheduled jobs for bus %s", bus_id)


def cancel_session_jobs(scheduler: AsyncIOScheduler, bus_id: str) -> None:
    for job_id in (publish_job_id(bus_id), watchdog_job_id(bus_id)):
        if scheduler.get_job(job_id) is not None:
            scheduler.remove_job(job_id)
    logger.debug("Cancelled jobs for bus %s", bus_id)
