from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from recalltrial.models.enums import ReminderStatus, TrialStatus, ensure_transition
from recalltrial.models.reminder import Reminder
from recalltrial.models.trial import Trial


class ReminderRepo:
    """
    Storage side of the reminder lifecycle. Every status change is a single
    conditional UPDATE guarded by the expected current status, committed right
    away, so concurrent sweeps can never both win the same row.
    """

    def __init__(self, s: AsyncSession) -> None:
        self.s = s

    async def add_planned(self, trial: Trial, plan: Iterable) -> list[Reminder]:
        """Insert one PENDING reminder per planned entry. Does not commit."""
        rows = [
            Reminder(
                trial_id=trial.id,
                user_id=trial.user_id,
                remind_at=p.fire_at,
                type=p.label,
                status=ReminderStatus.PENDING,
            )
            for p in plan
        ]
        self.s.add_all(rows)
        await self.s.flush()
        return rows

    async def due(self, now: datetime, limit: Optional[int] = None) -> Sequence[Reminder]:
        """PENDING reminders whose time has come and whose trial is still ACTIVE."""
        q = (
            select(Reminder)
            .join(Reminder.trial)
            .where(
                Reminder.status == ReminderStatus.PENDING,
                Reminder.remind_at <= now,
                Trial.status == TrialStatus.ACTIVE,
            )
            .options(contains_eager(Reminder.trial), joinedload(Reminder.user))
            .order_by(Reminder.remind_at.asc(), Reminder.id.asc())
        )
        if limit:
            q = q.limit(limit)
        res = await self.s.execute(q)
        return res.scalars().unique().all()

    async def _transition(
        self,
        rid: int,
        source: ReminderStatus,
        target: ReminderStatus,
        **values,
    ) -> bool:
        ensure_transition(source, target)
        res = await self.s.execute(
            update(Reminder)
            .where(Reminder.id == rid, Reminder.status == source)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        await self.s.commit()
        return res.rowcount == 1

    async def claim(self, rid: int, now: datetime) -> bool:
        """PENDING -> SENDING. False means another worker got there first."""
        return await self._transition(
            rid, ReminderStatus.PENDING, ReminderStatus.SENDING, claimed_at=now
        )

    async def mark_sent(self, rid: int, now: datetime, message_id: Optional[str] = None) -> bool:
        return await self._transition(
            rid,
            ReminderStatus.SENDING,
            ReminderStatus.SENT,
            sent_at=now,
            provider_message_id=message_id,
            last_error=None,
        )

    async def mark_failed(self, rid: int, reason: str) -> bool:
        return await self._transition(
            rid, ReminderStatus.SENDING, ReminderStatus.FAILED, last_error=reason
        )

    async def skip_for_trial(self, trial_id: int) -> int:
        """PENDING -> SKIPPED for every reminder of the trial. Does not commit."""
        ensure_transition(ReminderStatus.PENDING, ReminderStatus.SKIPPED)
        res = await self.s.execute(
            update(Reminder)
            .where(Reminder.trial_id == trial_id, Reminder.status == ReminderStatus.PENDING)
            .values(status=ReminderStatus.SKIPPED)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount or 0

    async def get(self, rid: int) -> Optional[Reminder]:
        return await self.s.get(Reminder, rid, populate_existing=True)

    async def list_for_trial(self, trial_id: int) -> Sequence[Reminder]:
        res = await self.s.execute(
            select(Reminder)
            .where(Reminder.trial_id == trial_id)
            .order_by(Reminder.remind_at.asc(), Reminder.id.asc())
            .execution_options(populate_existing=True)
        )
        return res.scalars().all()
