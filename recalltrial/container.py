# recalltrial/container.py
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from recalltrial.config import settings
from recalltrial.db import engine
from recalltrial.models.base import Base

from recalltrial.repositories.reminder_repo import ReminderRepo
from recalltrial.repositories.trial_repo import TrialRepo

from recalltrial.providers.base import NotificationSender
from recalltrial.providers.resend_email import ResendEmailSender
from recalltrial.services.reminder_planner import get_policy
from recalltrial.services.reminder_service import ReminderService
from recalltrial.services.trial_service import TrialService


async def init_db() -> None:
    """
    Dev-only: create missing tables.
    In production run `alembic upgrade head`.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def build_sender() -> ResendEmailSender:
    return ResendEmailSender()


def build_services(session: AsyncSession, sender: NotificationSender) -> dict[str, Any]:
    """
    Wire repositories and services around one session.
    One session per sweep / request; never share it between concurrent sweeps.
    """
    reminders_repo = ReminderRepo(session)

    reminders = ReminderService(
        reminders_repo,
        sender,
        batch_size=settings.DISPATCH_BATCH_SIZE,
    )
    trials = TrialService(TrialRepo(session), reminders_repo, policy=get_policy())

    return {"reminders": reminders, "trials": trials}
