# recalltrial/main.py
from __future__ import annotations

import os
import asyncio
import logging
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from recalltrial.config import settings
from recalltrial.core.logging import setup_logging
from recalltrial.container import build_sender, init_db
from recalltrial.db import engine
from recalltrial.scheduler.jobs import setup_scheduler

# ---- logging first ----
setup_logging()
logger = logging.getLogger("recalltrial.main")


async def main() -> None:
    logger.info(
        "boot: reminder worker LOG_LEVEL=%s policy=%s interval=%smin email=%s",
        settings.log_level,
        settings.REMINDER_POLICY,
        settings.DISPATCH_INTERVAL_MINUTES,
        "resend" if settings.RESEND_API_KEY else "dry-run",
    )

    # DB init: production uses alembic, create_all only when explicitly enabled
    if os.getenv("INIT_DB_ON_START", "0") == "1":
        await init_db()
        logger.info("DB init done (create_all enabled by ENV)")
    else:
        logger.info("DB init skipped (use alembic upgrade head)")

    sender = build_sender()

    # ---------- Scheduler ----------
    scheduler = AsyncIOScheduler(timezone="UTC")
    if settings.SCHEDULER_ENABLED:
        setup_scheduler(scheduler, sender)
        scheduler.start()
        logger.info("scheduler started")
    else:
        logger.warning("SCHEDULER_ENABLED=0: no periodic dispatch, rely on the cron endpoint")

    # graceful shutdown on signals
    stop_evt = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _stop(*_: object) -> None:
        stop_evt.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _stop)
        except NotImplementedError:
            pass

    await stop_evt.wait()

    # ---------- Shutdown ----------
    if scheduler.running:
        try:
            scheduler.shutdown(wait=False)
        except Exception:
            logger.exception("scheduler shutdown failed")

    try:
        await sender.aclose()
    except Exception:
        logger.exception("email client close failed")

    try:
        await engine.dispose()
    except Exception:
        logger.exception("engine dispose failed")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
