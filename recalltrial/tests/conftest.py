from __future__ import annotations

import os

# tests never talk to Postgres or Resend
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RESEND_API_KEY"] = ""
os.environ["CRON_KEY"] = "test-cron-key"

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from recalltrial.models import Base, Reminder, ReminderStatus, ReminderType, Trial, TrialStatus, User
from recalltrial.providers.base import SendResult


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'recalltrial.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def user(session) -> User:
    u = User(email="ana@example.com", timezone="UTC")
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
def make_trial(session, user):
    async def _make(status: TrialStatus = TrialStatus.ACTIVE, end_date: date = date(2025, 6, 10)) -> Trial:
        t = Trial(
            user_id=user.id,
            service_name="Netflix",
            service_url="https://www.netflix.com",
            cancel_url="https://www.netflix.com/cancelplan",
            domain="netflix.com",
            start_date=date(2025, 6, 1),
            end_date=end_date,
            renewal_price=Decimal("15.49"),
            currency="USD",
            status=status,
        )
        session.add(t)
        await session.commit()
        return t

    return _make


@pytest.fixture
def make_reminder(session):
    async def _make(
        trial: Trial,
        remind_at: datetime,
        label: ReminderType = ReminderType.ONE_DAY,
        status: ReminderStatus = ReminderStatus.PENDING,
    ) -> Reminder:
        r = Reminder(
            trial_id=trial.id,
            user_id=trial.user_id,
            remind_at=remind_at,
            type=label,
            status=status,
        )
        session.add(r)
        await session.commit()
        return r

    return _make


class RecordingSender:
    """Sender fake: records every call and answers from a script."""

    def __init__(self, results=None, default: SendResult | None = None):
        self.results = list(results or [])
        self.default = default or SendResult.ok("msg-1")
        self.calls: list[tuple[int, ReminderType]] = []

    async def send(self, trial, user, label):
        self.calls.append((trial.id, label))
        if self.results:
            r = self.results.pop(0)
            if isinstance(r, Exception):
                raise r
            return r
        return self.default


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()
