from .base import Base
from .enums import TrialStatus, ReminderStatus, ReminderType
from .user import User
from .trial import Trial
from .reminder import Reminder

__all__ = ["Base", "TrialStatus", "ReminderStatus", "ReminderType", "User", "Trial", "Reminder"]
