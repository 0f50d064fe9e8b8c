# recalltrial/scheduler/jobs.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from recalltrial.config import settings
from recalltrial.container import build_services
from recalltrial.db import SessionLocal
from recalltrial.providers.base import NotificationSender
from recalltrial.services.reminder_service import DispatchSummary

logger = logging.getLogger(__name__)


async def dispatch_reminders_job(sender: NotificationSender) -> DispatchSummary:
    """
    Periodic job: one sweep over due reminders in a fresh session.
    Errors are logged and re-raised so APScheduler records the failed run;
    reminders left PENDING are picked up by the next run.
    """
    async with SessionLocal() as session:
        svc = build_services(session, sender)["reminders"]
        try:
            summary = await svc.tick()
        except Exception:
            logger.exception("dispatch_reminders_job failed")
            raise

    if summary.considered_count or summary.failed_count:
        logger.info(
            "dispatch_done considered=%s attempted=%s sent=%s failed=%s",
            summary.considered_count,
            summary.attempted_count,
            summary.sent_count,
            summary.failed_count,
        )
    return summary


def setup_scheduler(scheduler: AsyncIOScheduler, sender: NotificationSender) -> None:
    """
    Registers periodic jobs. Called once at startup.
    """
    scheduler.add_job(
        dispatch_reminders_job,
        trigger="interval",
        minutes=settings.DISPATCH_INTERVAL_MINUTES,
        kwargs={"sender": sender},
        id="dispatch_reminders_job",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=60,    # give a missed run one minute to catch up
    )
