"""Reservation admission, lifecycle and housekeeping."""

from staydesk.modules.bookings.admission import Admission, BookingAdmission, BookingRequest
from staydesk.modules.bookings.lifecycle import ReservationLifecycle
from staydesk.modules.bookings.sweeper import ReservationSweeper

__all__ = [
    "Admission",
    "BookingAdmission",
    "BookingRequest",
    "ReservationLifecycle",
    "ReservationSweeper",
]
