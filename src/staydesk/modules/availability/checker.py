"""Room availability check over reservations and manual date blocks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from staydesk.models.availability import DateOverride
from staydesk.models.booking import Reservation
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)

REASON_BOOKED = "Room is already booked for selected dates"
REASON_BLOCKED = "Room is not available for some selected dates"


@dataclass(frozen=True)
class StayRange:
    check_in: date
    check_out: date

    def to_dict(self) -> dict[str, str]:
        return {"checkIn": self.check_in.isoformat(), "checkOut": self.check_out.isoformat()}


@dataclass
class AvailabilityResult:
    available: bool
    reason: str | None = None
    conflicting_stays: list[StayRange] = field(default_factory=list)
    blocked_dates: list[date] = field(default_factory=list)

    def conflicting_dates(self) -> list:
        """Stay ranges for reservation conflicts, else ISO dates for blocks."""
        if self.conflicting_stays:
            return [s.to_dict() for s in self.conflicting_stays]
        return [d.isoformat() for d in self.blocked_dates]

    def to_dict(self) -> dict:
        data: dict = {"available": self.available}
        if not self.available:
            data["reason"] = self.reason
            data["conflictingDates"] = self.conflicting_dates()
        return data


def stays_intersect(a_in: date, a_out: date, b_in: date, b_out: date) -> bool:
    """Half-open [in, out) intersection; a checkout day may be another's check-in."""
    return a_in < b_out and a_out > b_in


def evaluate_availability(
    check_in: date,
    check_out: date,
    reservations: list[Reservation],
    overrides: list[DateOverride],
    exclude_reservation_id: int | None = None,
) -> AvailabilityResult:
    """Decide availability from already-loaded rows.

    ``reservations`` may contain non-occupying or non-intersecting rows; they
    are filtered here so callers can pass a broad snapshot.
    """
    conflicts = [
        r for r in reservations
        if r.occupies_inventory
        and r.id != exclude_reservation_id
        and stays_intersect(r.check_in_date, r.check_out_date, check_in, check_out)
    ]
    if conflicts:
        return AvailabilityResult(
            available=False,
            reason=REASON_BOOKED,
            conflicting_stays=[StayRange(r.check_in_date, r.check_out_date) for r in conflicts],
        )

    blocked = sorted(
        o.date for o in overrides
        if not o.is_available and check_in <= o.date < check_out
    )
    if blocked:
        return AvailabilityResult(available=False, reason=REASON_BLOCKED, blocked_dates=blocked)

    return AvailabilityResult(available=True)


class AvailabilityChecker:
    """Checks whether every night of [check_in, check_out) is free."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def check_availability(
        self,
        room_id: int,
        check_in: date,
        check_out: date,
        exclude_reservation_id: int | None = None,
    ) -> AvailabilityResult:
        # Raises NotFound for an unknown room
        self._store.get_room(room_id)

        reservations = self._store.find_reservations(
            room_id, check_in, check_out, exclude_id=exclude_reservation_id
        )
        overrides = self._store.find_overrides(room_id, check_in, check_out)
        result = evaluate_availability(
            check_in, check_out, reservations, overrides, exclude_reservation_id
        )
        if not result.available:
            logger.info(
                "Room %s unavailable for %s..%s: %s", room_id, check_in, check_out, result.reason
            )
        return result
