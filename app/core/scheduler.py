import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.memory import MemoryJobStore

from app.core.config import settings

logger = logging.getLogger(__name__)

RATE_LIMIT_SWEEP_JOB_ID = "sweep_rate_limit_entries"
REVOCATION_SWEEP_JOB_ID = "sweep_revoked_tokens"

scheduler = BackgroundScheduler(
    jobstores={"default": MemoryJobStore()},
    job_defaults={"coalesce": True, "max_instances": 1},
)


def register_maintenance_jobs(target: BackgroundScheduler) -> None:
    """Add the periodic rate-limit and revocation sweeps to a scheduler."""
    from app.core.rate_limit import sweep_attempt_store
    from app.services.revocation_service import sweep_revoked_tokens

    target.add_job(
        sweep_attempt_store,
        trigger="interval",
        seconds=settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
        id=RATE_LIMIT_SWEEP_JOB_ID,
        replace_existing=True,
    )
    target.add_job(
        sweep_revoked_tokens,
        trigger="interval",
        minutes=settings.REVOCATION_SWEEP_INTERVAL_MINUTES,
        id=REVOCATION_SWEEP_JOB_ID,
        replace_existing=True,
    )


def start_scheduler():
    """Start the scheduler with the maintenance sweeps."""
    register_maintenance_jobs(scheduler)
    scheduler.start()
    logger.info("APScheduler started for maintenance sweeps")


def shutdown_scheduler():
    """Gracefully shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler shut down")
