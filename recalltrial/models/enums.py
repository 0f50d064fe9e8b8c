# recalltrial/models/enums.py
from __future__ import annotations

import enum
from datetime import timedelta

from recalltrial.exceptions import IllegalTransition


class TrialStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"


class ReminderStatus(str, enum.Enum):
    """
    Reminder lifecycle:

        PENDING -> SENDING -> SENT
                           -> FAILED
        PENDING -> SKIPPED

    SENDING is held between a successful claim and the recorded outcome.
    Nothing is ever re-entered and PENDING is the only claimable state.
    """

    PENDING = "PENDING"
    SENDING = "SENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReminderStatus.SENT, ReminderStatus.FAILED, ReminderStatus.SKIPPED)

    @property
    def is_claimable(self) -> bool:
        return self is ReminderStatus.PENDING

    def can_transition_to(self, target: "ReminderStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[ReminderStatus, frozenset[ReminderStatus]] = {
    ReminderStatus.PENDING: frozenset({ReminderStatus.SENDING, ReminderStatus.SKIPPED}),
    ReminderStatus.SENDING: frozenset({ReminderStatus.SENT, ReminderStatus.FAILED}),
    ReminderStatus.SENT: frozenset(),
    ReminderStatus.FAILED: frozenset(),
    ReminderStatus.SKIPPED: frozenset(),
}


def ensure_transition(current: ReminderStatus, target: ReminderStatus) -> ReminderStatus:
    """Return ``target`` if ``current -> target`` is allowed, raise otherwise."""
    if not ReminderStatus(current).can_transition_to(ReminderStatus(target)):
        raise IllegalTransition(f"reminder status {current.value} -> {target.value} is not allowed")
    return target


class ReminderType(str, enum.Enum):
    """
    Reminder label. Each label is bound to exactly one offset before the trial
    end, so a stored label always maps back to the offset it was planned with.
    """

    THREE_DAYS = "THREE_DAYS"
    TWO_DAYS = "TWO_DAYS"
    ONE_DAY = "ONE_DAY"
    TWENTY_FOUR_HOURS = "TWENTY_FOUR_HOURS"
    SIX_HOURS = "SIX_HOURS"
    THREE_HOURS = "THREE_HOURS"
    ONE_HOUR = "ONE_HOUR"

    @property
    def hours_before(self) -> int:
        return _HOURS_BEFORE[self]

    @property
    def offset(self) -> timedelta:
        return timedelta(hours=self.hours_before)

    @property
    def phrase(self) -> str:
        return _PHRASES[self]


_HOURS_BEFORE = {
    ReminderType.THREE_DAYS: 72,
    ReminderType.TWO_DAYS: 48,
    ReminderType.ONE_DAY: 24,
    ReminderType.TWENTY_FOUR_HOURS: 24,
    ReminderType.SIX_HOURS: 6,
    ReminderType.THREE_HOURS: 3,
    ReminderType.ONE_HOUR: 1,
}

_PHRASES = {
    ReminderType.THREE_DAYS: "That's in 3 days.",
    ReminderType.TWO_DAYS: "That's in 2 days.",
    ReminderType.ONE_DAY: "That's tomorrow!",
    ReminderType.TWENTY_FOUR_HOURS: "That's in 24 hours!",
    ReminderType.SIX_HOURS: "That's in 6 hours!",
    ReminderType.THREE_HOURS: "That's in 3 hours!",
    ReminderType.ONE_HOUR: "That's in 1 hour!",
}
