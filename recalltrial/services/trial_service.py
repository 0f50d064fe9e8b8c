# recalltrial/services/trial_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from urllib.parse import urlparse

from recalltrial.config import settings
from recalltrial.exceptions import TrialNotFound, TrialValidationError
from recalltrial.models.reminder import Reminder
from recalltrial.models.trial import Trial
from recalltrial.models.user import User
from recalltrial.repositories.reminder_repo import ReminderRepo
from recalltrial.repositories.trial_repo import TrialRepo
from recalltrial.services.reminder_planner import (
    ReminderPolicy,
    compute_reminder_plan,
    labels_of,
)
from recalltrial.utils.dates import parse_civil_date, to_utc_aware

logger = logging.getLogger(__name__)


@dataclass
class NewTrial:
    service_name: str
    service_url: str
    start_date: date | str
    end_date: date | str
    cancel_url: Optional[str] = None
    renewal_price: Optional[Decimal | str] = None
    currency: str = "USD"


@dataclass
class CreatedTrial:
    trial: Trial
    reminders: list[Reminder]


def extract_domain(url: str) -> str:
    """Host part of the service URL without a leading ``www.``."""
    raw = url.strip()
    if "://" not in raw:
        raw = f"https://{raw}"
    host = (urlparse(raw).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host or url.strip()


def _price(value: Optional[Decimal | str]) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except ArithmeticError as e:
        raise TrialValidationError(f"invalid renewal price {value!r}") from e


class TrialService:
    """
    Trial registration and cancellation. Both touch reminders: creation plans
    and stores them, cancellation skips every still-pending one in the same
    transaction as the status change.
    """

    def __init__(
        self,
        trials: TrialRepo,
        reminders: ReminderRepo,
        policy: Optional[ReminderPolicy] = None,
        safety_margin: Optional[timedelta] = None,
    ) -> None:
        self.trials = trials
        self.reminders = reminders
        self.policy = policy
        self.safety_margin = safety_margin

    async def create_trial(self, user: User, data: NewTrial, now: datetime) -> CreatedTrial:
        if not data.service_name or not data.service_name.strip():
            raise TrialValidationError("Service name is required")
        if not data.service_url or not data.service_url.strip():
            raise TrialValidationError("Service URL is required")
        try:
            start = parse_civil_date(data.start_date)
            end = parse_civil_date(data.end_date)
        except ValueError as e:
            raise TrialValidationError(f"invalid date: {e}") from e
        if end < start:
            raise TrialValidationError("End date must be after start date")

        s = self.trials.s
        trial = await self.trials.create(
            user_id=user.id,
            service_name=data.service_name.strip(),
            service_url=data.service_url.strip(),
            domain=extract_domain(data.service_url),
            start_date=start,
            end_date=end,
            cancel_url=data.cancel_url or None,
            renewal_price=_price(data.renewal_price),
            currency=data.currency or "USD",
        )

        tz = user.timezone or settings.DEFAULT_TIMEZONE
        plan = compute_reminder_plan(
            end,
            to_utc_aware(now),
            tz,
            policy=self.policy,
            safety_margin=self.safety_margin,
        )
        rows = await self.reminders.add_planned(trial, plan)
        await s.commit()

        logger.info(
            "trial_created user=%s service=%s end=%s tz=%s planned=%s",
            user.id, trial.service_name, end, tz, [l.value for l in labels_of(plan)],
            extra={"trial_id": trial.id},
        )
        return CreatedTrial(trial=trial, reminders=rows)

    async def cancel_trial(self, trial_id: int, user_id: int, now: datetime) -> Trial:
        trial = await self.trials.get(trial_id, user_id=user_id)
        if trial is None:
            raise TrialNotFound(f"trial {trial_id} not found")

        changed = await self.trials.mark_canceled(trial, to_utc_aware(now))
        # always attempted, even on a repeated cancel
        skipped = await self.reminders.skip_for_trial(trial.id)
        await self.trials.s.commit()

        logger.info(
            "trial_canceled first_time=%s skipped=%s", changed, skipped,
            extra={"trial_id": trial.id},
        )
        return trial

    async def reminders_for_trial(self, trial_id: int, user_id: int) -> list[Reminder]:
        trial = await self.trials.get(trial_id, user_id=user_id)
        if trial is None:
            raise TrialNotFound(f"trial {trial_id} not found")
        return list(await self.reminders.list_for_trial(trial.id))
