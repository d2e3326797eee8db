"""
Keep-in-Touch — Entry Point.

Single entry point: `python main.py` starts the periodic reminder jobs.
"""

import asyncio
import logging

from keepintouch.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from keepintouch.adapters.sqlite_store import SQLiteContactStore, SQLiteReminderStore
from keepintouch.core.orchestrator import ReminderOrchestrator
from keepintouch.core.scheduler import build_scheduler

logger = logging.getLogger("keepintouch")


async def run() -> None:
    """Wire the SQLite stores into the engine and run the jobs until cancelled."""
    orchestrator = ReminderOrchestrator(
        contacts=SQLiteContactStore(),
        reminders=SQLiteReminderStore(),
        tz=settings.tz,
    )
    scheduler = build_scheduler(orchestrator)
    scheduler.start()
    logger.info("Keep-in-Touch reminder engine started (db: %s)", settings.DATABASE_PATH)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Keep-in-Touch reminder engine stopped")


if __name__ == "__main__":
    main()
