"""Database models."""

from staydesk.models.availability import DateOverride
from staydesk.models.booking import PaymentStatus, Reservation, ReservationStatus
from staydesk.models.payment import PaymentProof, PaymentTransaction
from staydesk.models.property import Property, Room
from staydesk.models.season_rate import PropertyScope, RateType, RoomScope, SeasonRate

__all__ = [
    "DateOverride",
    "PaymentProof",
    "PaymentStatus",
    "PaymentTransaction",
    "Property",
    "PropertyScope",
    "RateType",
    "Reservation",
    "ReservationStatus",
    "Room",
    "RoomScope",
    "SeasonRate",
]
