from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recalltrial.models.enums import TrialStatus
from recalltrial.models.trial import Trial


class TrialRepo:
    def __init__(self, s: AsyncSession) -> None:
        self.s = s

    async def get(self, trial_id: int, user_id: Optional[int] = None) -> Optional[Trial]:
        q = select(Trial).where(Trial.id == trial_id)
        if user_id is not None:
            q = q.where(Trial.user_id == user_id)
        res = await self.s.execute(q.limit(1))
        return res.scalar_one_or_none()

    async def create(
        self,
        *,
        user_id: int,
        service_name: str,
        service_url: str,
        domain: str,
        start_date: date,
        end_date: date,
        cancel_url: Optional[str] = None,
        renewal_price: Optional[Decimal] = None,
        currency: str = "USD",
    ) -> Trial:
        """Adds the trial and flushes to get its id. Does not commit."""
        trial = Trial(
            user_id=user_id,
            service_name=service_name,
            service_url=service_url,
            cancel_url=cancel_url,
            domain=domain,
            start_date=start_date,
            end_date=end_date,
            renewal_price=renewal_price,
            currency=currency,
            status=TrialStatus.ACTIVE,
        )
        self.s.add(trial)
        await self.s.flush()
        return trial

    async def mark_canceled(self, trial: Trial, now: datetime) -> bool:
        """ACTIVE -> CANCELED. Returns False if it was already canceled. Does not commit."""
        if trial.status == TrialStatus.CANCELED:
            return False
        trial.status = TrialStatus.CANCELED
        trial.canceled_at = now
        await self.s.flush()
        return True

