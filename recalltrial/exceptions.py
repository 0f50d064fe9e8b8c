# recalltrial/exceptions.py
from __future__ import annotations


class RecallTrialError(Exception):
    """Base class for domain errors raised by the reminder core."""


class TrialNotFound(RecallTrialError):
    pass


class TrialValidationError(RecallTrialError, ValueError):
    pass


class IllegalTransition(RecallTrialError):
    """A reminder status change outside the allowed lifecycle."""
