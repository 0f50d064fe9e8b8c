# recalltrial/providers/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from recalltrial.models.enums import ReminderType
from recalltrial.models.trial import Trial
from recalltrial.models.user import User


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message_id: Optional[str] = None) -> "SendResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def failed(cls, error: str) -> "SendResult":
        return cls(success=False, error=error)


class NotificationSender(Protocol):
    """Single best-effort delivery attempt. Must not retry on its own."""

    async def send(self, trial: Trial, user: User, label: ReminderType) -> SendResult: ...
