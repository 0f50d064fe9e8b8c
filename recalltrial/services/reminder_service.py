from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from recalltrial.providers.base import NotificationSender, SendResult
from recalltrial.utils.dates import now_utc, to_utc_aware

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryFailure:
    reminder_id: int
    trial_id: int
    reason: str


@dataclass
class DispatchSummary:
    considered_count: int = 0
    attempted_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    failures: list[DeliveryFailure] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


class ReminderService:
    def __init__(self, repo, sender: NotificationSender, batch_size: Optional[int] = None):
        self.repo = repo
        self.sender = sender
        self.batch_size = batch_size

    async def tick(self) -> DispatchSummary:
        """Periodic entry point: dispatch whatever is due right now."""
        return await self.process_due_reminders(now_utc())

    async def process_due_reminders(self, now: datetime) -> DispatchSummary:
        """
        One sweep over due reminders. Safe to run concurrently with other
        sweeps: a reminder is only sent by the caller whose claim succeeded.

        Delivery problems are recorded per reminder and never stop the sweep.
        Storage errors propagate; reminders resolved earlier in the sweep stay
        resolved.
        """
        now = to_utc_aware(now)
        summary = DispatchSummary()

        due = await self.repo.due(now, limit=self.batch_size)
        summary.considered_count = len(due)

        for item in due:
            if not await self.repo.claim(item.id, now):
                logger.debug("claim_lost", extra={"reminder_id": item.id, "trial_id": item.trial_id})
                continue

            summary.attempted_count += 1
            result = await self._deliver(item)

            if result.success:
                if not await self.repo.mark_sent(item.id, now, result.message_id):
                    self._outcome_lost(item, "SENT")
                    continue
                summary.sent_count += 1
                logger.info(
                    "reminder_sent type=%s message_id=%s",
                    item.type.value, result.message_id,
                    extra={"reminder_id": item.id, "trial_id": item.trial_id},
                )
            else:
                reason = result.error or "unknown error"
                if not await self.repo.mark_failed(item.id, reason):
                    self._outcome_lost(item, "FAILED")
                    continue
                summary.failed_count += 1
                summary.failures.append(DeliveryFailure(item.id, item.trial_id, reason))
                logger.warning(
                    "reminder_failed type=%s reason=%s",
                    item.type.value, reason,
                    extra={"reminder_id": item.id, "trial_id": item.trial_id},
                )

        return summary

    @staticmethod
    def _outcome_lost(item, outcome: str) -> None:
        # guarded update matched no row; the summary only counts stored outcomes
        logger.warning(
            "outcome_not_recorded outcome=%s", outcome,
            extra={"reminder_id": item.id, "trial_id": item.trial_id},
        )

    async def _deliver(self, item) -> SendResult:
        try:
            result = await self.sender.send(item.trial, item.user, item.type)
        except Exception as e:
            logger.exception(
                "sender_error", extra={"reminder_id": item.id, "trial_id": item.trial_id}
            )
            return SendResult.failed(str(e) or e.__class__.__name__)
        if result is None:
            return SendResult.failed("sender returned no result")
        return result
