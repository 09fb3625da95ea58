"""Exceptions raised by quicknews operations."""

from __future__ import annotations


class QuickNewsError(Exception):
    """Base class for quicknews errors."""


class ValidationError(QuickNewsError, ValueError):
    """A required input field is missing or has the wrong type."""


class MissingQuestionError(ValidationError):
    def __init__(self, message: str = "Missing question") -> None:
        super().__init__(message)


class MissingTargetError(ValidationError):
    def __init__(self, message: str = "Missing redirect target") -> None:
        super().__init__(message)


class LedgerWriteError(QuickNewsError):
    """Persisting the click ledger failed."""


class NotificationDeliveryError(QuickNewsError):
    """The summary could not be handed to the notification sink."""
