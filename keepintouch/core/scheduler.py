"""
Keep-in-Touch — Periodic Jobs.

Reminder generation: every GENERATION_INTERVAL_HOURS, create the
communication reminders that entered their lead-time window.

Birthday refresh: once a day at BIRTHDAY_REFRESH_HOUR, rebuild every
contact's pending birthday reminders (rolls the window into the next year).

Cleanup: once a day, drop sent/dismissed reminders older than
CLEANUP_DAYS_OLD.

Jobs are fire-and-forget: failures are logged, never raised, never retried.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from keepintouch.config import settings

if TYPE_CHECKING:
    from keepintouch.core.orchestrator import ReminderOrchestrator
    from keepintouch.data.models import BirthdayRegenerationResult, GenerationResult

logger = logging.getLogger(__name__)


async def run_reminder_generation(
    orchestrator: ReminderOrchestrator,
) -> GenerationResult | None:
    """Generate communication reminders; returns None if the run failed."""
    try:
        result = await orchestrator.generate_all()
    except Exception as exc:
        logger.error("Scheduled reminder generation failed: %s", exc)
        return None
    for failure in result.errors:
        logger.warning("Contact #%d skipped: %s", failure.contact_id, failure.error)
    return result


async def run_birthday_refresh(
    orchestrator: ReminderOrchestrator,
) -> BirthdayRegenerationResult | None:
    """Rebuild birthday reminders; returns None if the run failed."""
    try:
        return await orchestrator.regenerate_all_birthday_reminders()
    except Exception as exc:
        logger.error("Scheduled birthday refresh failed: %s", exc)
        return None


async def run_cleanup(
    orchestrator: ReminderOrchestrator,
    days_old: int | None = None,
) -> int | None:
    """Delete old closed reminders; returns None if the run failed."""
    if days_old is None:
        days_old = settings.CLEANUP_DAYS_OLD
    try:
        return await orchestrator.cleanup(days_old)
    except Exception as exc:
        logger.error("Scheduled cleanup failed: %s", exc)
        return None


def build_scheduler(orchestrator: ReminderOrchestrator) -> AsyncIOScheduler:
    """Register the periodic jobs on a new (not yet started) scheduler."""
    tz = settings.tz
    scheduler = AsyncIOScheduler(timezone=tz)

    scheduler.add_job(
        run_reminder_generation,
        trigger="interval",
        hours=settings.GENERATION_INTERVAL_HOURS,
        args=[orchestrator],
        id="reminder_generation",
        next_run_time=datetime.now(tz),
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_birthday_refresh,
        trigger="cron",
        hour=settings.BIRTHDAY_REFRESH_HOUR,
        minute=0,
        args=[orchestrator],
        id="birthday_refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_cleanup,
        trigger="cron",
        hour=settings.BIRTHDAY_REFRESH_HOUR,
        minute=30,
        args=[orchestrator],
        id="reminder_cleanup",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info(
        "Jobs scheduled: generation every %dh, birthdays at %02d:00 %s, cleanup at %02d:30",
        settings.GENERATION_INTERVAL_HOURS,
        settings.BIRTHDAY_REFRESH_HOUR,
        settings.TIMEZONE,
        settings.BIRTHDAY_REFRESH_HOUR,
    )
    return scheduler
