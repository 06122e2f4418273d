"""Error taxonomy for admission, pricing and season-rate validation.

Every error is recoverable and carries the HTTP status the API reports it
with, plus an optional ``details`` mapping merged into the JSON body.
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for structured, caller-facing errors."""

    status_code = 400

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(reason)
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, **self.details}


class NotFound(BookingError):
    status_code = 404


class InvalidRange(BookingError):
    """Check-out not after check-in, or a season window ending before it starts."""


class InvalidScope(BookingError):
    """Season rate attached to both a room and a property, or to neither."""


class InvalidValue(BookingError):
    pass


class CapacityExceeded(BookingError):
    pass


class Forbidden(BookingError):
    status_code = 403


class InvalidTransition(BookingError):
    """Reservation lifecycle step not allowed from the current status."""

    status_code = 409


class OverlapError(BookingError):
    status_code = 409


class Conflict(BookingError):
    status_code = 409


class Unavailable(Conflict):
    """Requested stay collides with reservations or blocked dates."""

    def __init__(self, result) -> None:
        super().__init__(result.reason, conflictingDates=result.conflicting_dates())
        self.result = result


class ConcurrentWriteConflict(Conflict):
    """Another writer committed an overlapping row between check and insert."""
