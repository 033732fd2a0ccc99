"""
Scheduling errors.

Every failure the booking engine reports is one of these; callers tell them
apart by type. None of them is retried inside the engine.
"""


class SchedulingError(Exception):
    """Base exception for scheduling errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__)

    @property
    def message(self) -> str:
        return str(self)


class NotFoundError(SchedulingError):
    """Referenced record does not exist."""


class InvalidRangeError(SchedulingError):
    """Requested interval violates duration or operating window rules."""


class ConflictError(SchedulingError):
    """Requested interval overlaps an existing booking."""


class InsufficientCreditsError(SchedulingError):
    """Credit balance is too low for this booking."""


class PermissionDeniedError(SchedulingError):
    """Requester is not allowed to perform this action."""


class AlreadyStartedError(SchedulingError):
    """Booking window has already begun."""


class DuplicateEntryError(SchedulingError):
    """Record already exists."""


class AlreadyActionedError(SchedulingError):
    """Credit request is no longer pending."""


class InvalidAmountError(SchedulingError):
    """Credit amount or request details are invalid."""


class StorageError(SchedulingError):
    """Database error while processing the request."""


__all__ = [
    "SchedulingError",
    "NotFoundError",
    "InvalidRangeError",
    "ConflictError",
    "InsufficientCreditsError",
    "PermissionDeniedError",
    "AlreadyStartedError",
    "DuplicateEntryError",
    "AlreadyActionedError",
    "InvalidAmountError",
    "StorageError",
]
