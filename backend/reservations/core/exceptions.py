"""
Custom exceptions for the reservation core.

Every failure surfaced to a caller is a ``ReservationError`` carrying an
``ErrorKind`` so retry policies can tell "retry later" (BUSY) from
"do not retry" (INSUFFICIENT, NOT_ELIGIBLE, ...).
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    INSUFFICIENT = "insufficient"
    NOT_FOUND = "not_found"
    NO_SLOT = "no_slot"
    NOT_ELIGIBLE = "not_eligible"
    BUSY = "busy"
    INVALID = "invalid"
    AUDIT = "audit"


class ReservationError(Exception):
    """Base class for typed failures of the reservation core."""

    kind: ErrorKind = ErrorKind.INVALID
    retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(kind={self.kind.value}, message={self.message!r})>"


class InsufficientStockError(ReservationError):
    """Requested quantity exceeds the available stock."""

    kind = ErrorKind.INSUFFICIENT


class NotFoundError(ReservationError):
    """A referenced resource or record does not exist."""

    kind = ErrorKind.NOT_FOUND


class NoSlotError(NotFoundError):
    """No unbooked slot exists for the doctor at the requested time."""

    kind = ErrorKind.NO_SLOT


class NotEligibleError(ReservationError):
    """The actor is not entitled to perform the write."""

    kind = ErrorKind.NOT_ELIGIBLE


class BusyError(ReservationError):
    """A lock on the resource could not be acquired within the bounded wait."""

    kind = ErrorKind.BUSY
    retryable = True


class InvalidRequestError(ReservationError, ValueError):
    """Malformed input, e.g. a rating outside 1-5 or a non-positive quantity."""

    kind = ErrorKind.INVALID


class InvalidTransitionError(InvalidRequestError):
    """A status change not allowed by the record's lifecycle."""


class AuditError(ReservationError):
    """An audit entry could not be appended (e.g. unknown actor)."""

    kind = ErrorKind.AUDIT
