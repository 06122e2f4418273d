"""Booking admission: availability check, server-side pricing, reservation insert."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from sqlalchemy.orm import Session

from staydesk.config import booking_settings
from staydesk.database import get_session
from staydesk.errors import (
    CapacityExceeded,
    ConcurrentWriteConflict,
    Conflict,
    InvalidRange,
    NotFound,
    Unavailable,
)
from staydesk.events import Event, EventType, event_bus
from staydesk.locks import ScopeLocks, scope_locks
from staydesk.models.booking import PaymentStatus, Reservation, ReservationStatus
from staydesk.modules.availability.checker import AvailabilityChecker, AvailabilityResult
from staydesk.modules.pricing.engine import PriceBreakdown, PricingEngine
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    guest_id: str
    room_id: int
    property_id: int
    check_in: date
    check_out: date
    guests: int = 1
    guest_email: str | None = None
    guest_name: str | None = None


@dataclass
class Admission:
    reservation: Reservation
    price_breakdown: PriceBreakdown

    def to_dict(self) -> dict:
        return {
            "reservation": self.reservation.to_dict(),
            "priceBreakdown": self.price_breakdown.to_dict(),
        }


@dataclass
class Quote:
    availability: AvailabilityResult
    price_breakdown: PriceBreakdown


def validate_stay_dates(check_in: date, check_out: date, *, today: date | None = None) -> int:
    """Return the number of nights, rejecting empty, inverted or past stays."""
    nights = (check_out - check_in).days
    if nights <= 0:
        raise InvalidRange(
            "Check-out date must be after check-in date",
            checkIn=check_in.isoformat(),
            checkOut=check_out.isoformat(),
        )
    if today is not None and check_in < today:
        raise InvalidRange("Check-in date cannot be in the past", checkIn=check_in.isoformat())
    return nights


class BookingAdmission:
    """Admits reservations so that no two occupying stays on a room overlap.

    Check and insert for one room run inside a per-room critical section
    with the room row locked, and the insert is re-verified before commit.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        locks: ScopeLocks | None = None,
    ) -> None:
        self._session_factory = session_factory or get_session
        self._locks = locks or scope_locks
        self._config = booking_settings()

    def quote(self, room_id: int, check_in: date, check_out: date) -> Quote:
        """Availability and price for a stay, without writing anything."""
        validate_stay_dates(check_in, check_out)
        session = self._session_factory()
        try:
            store = BookingStore(session)
            return Quote(
                availability=AvailabilityChecker(store).check_availability(room_id, check_in, check_out),
                price_breakdown=PricingEngine(store).price_stay(room_id, check_in, check_out),
            )
        finally:
            session.close()

    def admit(self, request: BookingRequest, *, today: date | None = None) -> Admission:
        """Create a PENDING reservation or raise a structured error."""
        if not self._config["allow_past_checkin"]:
            today = today or date.today()
        else:
            today = None
        validate_stay_dates(request.check_in, request.check_out, today=today)

        retries = self._config["conflict_retries"]
        attempt = 0
        while True:
            try:
                admission = self._admit_once(request)
                break
            except ConcurrentWriteConflict:
                attempt += 1
                if attempt > retries:
                    logger.warning(
                        "Giving up on room %s after %d write conflicts", request.room_id, attempt
                    )
                    raise Conflict("Dates no longer available", roomId=request.room_id) from None
                logger.info("Write conflict on room %s, retrying admission", request.room_id)

        reservation = admission.reservation
        logger.info(
            "Booking created: %s by guest %s (room %s, %s..%s, total %d)",
            reservation.id, request.guest_id, request.room_id,
            request.check_in, request.check_out, reservation.total_price,
        )
        event_bus.publish(Event(
            event_type=EventType.BOOKING_CREATED,
            data={"booking_id": reservation.id, "room_id": request.room_id},
        ))
        return admission

    def _admit_once(self, request: BookingRequest) -> Admission:
        with self._locks.hold(("room", request.room_id)):
            session = self._session_factory()
            try:
                store = BookingStore(session)
                room = store.get_room(request.room_id, for_update=True)
                if room.property_id != request.property_id:
                    raise NotFound(
                        "Room not found in property",
                        roomId=request.room_id,
                        propertyId=request.property_id,
                    )
                if request.guests > room.capacity_guests:
                    raise CapacityExceeded(
                        f"Room capacity is {room.capacity_guests} guests",
                        capacity=room.capacity_guests,
                    )

                checker = AvailabilityChecker(store)
                result = checker.check_availability(request.room_id, request.check_in, request.check_out)
                if not result.available:
                    raise Unavailable(result)

                pricing = PricingEngine(store).price_stay(
                    request.room_id, request.check_in, request.check_out
                )

                reservation = Reservation(
                    guest_id=request.guest_id,
                    guest_email=request.guest_email,
                    guest_name=request.guest_name,
                    room_id=room.id,
                    property_id=room.property_id,
                    check_in_date=request.check_in,
                    check_out_date=request.check_out,
                    guests=request.guests,
                    nightly_price=pricing.average_nightly_price,
                    total_price=pricing.total_price,
                    status=ReservationStatus.PENDING.value,
                    payment_status=PaymentStatus.PENDING.value,
                )
                session.add(reservation)
                session.flush()

                # A writer outside this process may have committed since the check
                clashes = store.find_reservations(
                    room.id, request.check_in, request.check_out, exclude_id=reservation.id
                )
                if clashes:
                    raise ConcurrentWriteConflict(
                        "Overlapping reservation committed concurrently",
                        roomId=room.id,
                    )

                session.commit()
                return Admission(reservation=reservation, price_breakdown=pricing)
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
