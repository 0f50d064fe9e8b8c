from __future__ import annotations

import json
import logging

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError

from recalltrial.config import Settings, settings
from recalltrial.container import build_services
from recalltrial.core import logging as core_logging
from recalltrial.models.enums import ReminderStatus, TrialStatus
from recalltrial.repositories.reminder_repo import ReminderRepo
from recalltrial.repositories.user_repo import UserRepo
from recalltrial.scheduler import jobs
from recalltrial.services.trial_service import NewTrial

from conftest import utc


def test_setup_scheduler_registers_dispatch_job(sender):
    scheduler = AsyncIOScheduler(timezone="UTC")
    jobs.setup_scheduler(scheduler, sender)

    job = scheduler.get_job("dispatch_reminders_job")
    assert job is not None
    assert job.kwargs == {"sender": sender}
    assert job.max_instances == 1
    assert job.coalesce is True


async def test_dispatch_job_runs_a_sweep_in_its_own_session(
    monkeypatch, session, session_factory, sender, make_trial, make_reminder
):
    monkeypatch.setattr(jobs, "SessionLocal", session_factory)
    reminder = await make_reminder(await make_trial(), utc(2025, 6, 9))

    summary = await jobs.dispatch_reminders_job(sender)

    assert summary.sent_count == 1
    assert (await ReminderRepo(session).get(reminder.id)).status is ReminderStatus.SENT


async def test_wired_trial_service_plans_and_cancels(session, sender):
    services = build_services(session, sender)
    user = await UserRepo(session).create("ana@example.com", "Asia/Qatar")

    created = await services["trials"].create_trial(
        user,
        NewTrial("Netflix", "https://netflix.com", "2025-06-01", "2025-06-10"),
        utc(2025, 6, 1),
    )
    assert len(created.reminders) == 2

    trial = await services["trials"].cancel_trial(created.trial.id, user.id, utc(2025, 6, 2))
    assert trial.status is TrialStatus.CANCELED

    summary = await services["reminders"].process_due_reminders(utc(2025, 6, 11))
    assert summary.considered_count == 0
    assert sender.calls == []

def test_settings_defaults_and_aliases(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("CRON_KEY", raising=False)
    monkeypatch.setenv("POSTGRES_DSN", "postgresql+asyncpg://u:p@pg:5432/trials")
    monkeypatch.setenv("CRON_SECRET", "from-legacy-name")
    monkeypatch.setenv("REMINDER_POLICY", " Fixed ")
    monkeypatch.setenv("DISPATCH_BATCH_SIZE", "0")
    monkeypatch.setenv("APP_URL", "https://recalltrial.com/")

    s = Settings(_env_file=None)

    assert s.DATABASE_URL == "postgresql+asyncpg://u:p@pg:5432/trials"
    assert s.CRON_KEY == "from-legacy-name"
    assert s.REMINDER_POLICY == "fixed"
    assert s.DISPATCH_BATCH_SIZE is None
    assert s.APP_URL == "https://recalltrial.com"
    assert s.REMINDER_SAFETY_MARGIN_MINUTES == 5


def test_settings_reject_unknown_policy(monkeypatch):
    monkeypatch.setenv("REMINDER_POLICY", "weekly")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_json_logs_carry_context(monkeypatch, capsys):
    root = logging.getLogger()
    saved = (root.handlers[:], root.level)
    monkeypatch.setattr(settings, "log_json", True)
    try:
        core_logging.setup_logging()
        logging.getLogger("recalltrial.test").info("reminder_sent", extra={"reminder_id": 7})
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "reminder_sent"
    assert record["reminder_id"] == 7
    assert record["trial_id"] == "-"
