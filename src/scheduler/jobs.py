"""
Background job definitions using APScheduler.

Jobs include:
- Monthly commission run for every HubSpot owner
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config import settings
from src.db import get_db_context
from src.services.commission_run import run_monthly
from src.services.hubspot_client import HubSpotClient

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def monthly_commission_job():
    """Compute and sync last month's commissions."""
    logger.info("Running monthly commission job")
    try:
        crm = HubSpotClient()
        async with get_db_context() as db:
            period, statuses = await run_monthly(db, crm)
        failed = [s["owner"] for s in statuses if s["status"] != "success"]
        if failed:
            logger.warning(f"Monthly commission job: {len(failed)} reps failed: {failed}")
    except Exception as e:
        logger.error(f"Monthly commission job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    scheduler.add_job(
        monthly_commission_job,
        trigger=CronTrigger(
            day=settings.monthly_run_day,
            hour=settings.monthly_run_hour,
            timezone="UTC",
        ),
        id="monthly_commission_run",
        name="Monthly commission run",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler configured: monthly run on day {settings.monthly_run_day} "
        f"at {settings.monthly_run_hour:02d}:00 UTC"
    )
