"""APScheduler integration for FastAPI.

Runs the periodic maintenance sweep: expired keypair claims are recycled,
abandoned signing sessions are failed, and retired keypairs left behind in the
available pool are moved to the consumed pool.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from launchpad.config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

SWEEP_JOB_ID = "maintenance_sweep"


async def run_sweep() -> dict:
    """One maintenance pass. Safe to run concurrently with pool creations."""
    from launchpad.api.deps import get_claim_ledger, get_orchestrator

    claims = get_claim_ledger()
    orchestrator = get_orchestrator()

    result = {"sessions_expired": 0, "claims_recycled": 0, "keypairs_reconciled": 0}
    try:
        result["sessions_expired"] = orchestrator.expire_sessions()
        result["claims_recycled"] = claims.recycle_expired()
        result["keypairs_reconciled"] = claims.reconcile_retired()
    except Exception as e:
        logger.error(f"Maintenance sweep failed: {e}", exc_info=True)
        raise
    if any(result.values()):
        logger.info(f"Maintenance sweep: {result}")
    return result


def start_scheduler():
    """Start the scheduler with the maintenance sweep job."""
    scheduler.add_job(
        run_sweep,
        trigger=IntervalTrigger(seconds=settings.sweep_interval_seconds),
        id=SWEEP_JOB_ID,
        name="Maintenance sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    scheduler.start()
    logger.info(f"Scheduler started, sweeping every {settings.sweep_interval_seconds}s")


def stop_scheduler():
    """Shut down the scheduler."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    """Return current scheduler state for the API."""
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [
            {
                "id": j.id,
                "name": j.name,
                "next_run": str(j.next_run_time) if j.next_run_time else None,
                "trigger": str(j.trigger),
            }
            for j in jobs
        ],
    }
