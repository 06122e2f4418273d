"""Data access for the booking core.

The checker, pricing engine and validator receive a ``BookingStore`` rather
than opening sessions themselves, so they can be driven from a single
transaction during admission or from a throwaway session in a read path.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from staydesk.errors import NotFound
from staydesk.models.availability import DateOverride
from staydesk.models.booking import OCCUPYING_STATUSES, Reservation
from staydesk.models.property import Property, Room
from staydesk.models.season_rate import PropertyScope, RoomScope, Scope, SeasonRate

logger = logging.getLogger(__name__)


class BookingStore:
    """Query helpers over one SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # --- rooms and properties ---

    def get_room(self, room_id: int, *, for_update: bool = False) -> Room:
        query = self.session.query(Room).filter(Room.id == room_id)
        if for_update:
            query = query.with_for_update()
        room = query.one_or_none()
        if room is None:
            raise NotFound("Room not found", roomId=room_id)
        return room

    def get_property(self, property_id: int, *, for_update: bool = False) -> Property:
        query = self.session.query(Property).filter(Property.id == property_id)
        if for_update:
            query = query.with_for_update()
        prop = query.one_or_none()
        if prop is None:
            raise NotFound("Property not found", propertyId=property_id)
        return prop

    def ensure_scope_exists(self, scope: Scope, *, for_update: bool = False) -> None:
        """Raise NotFound for a missing scope; optionally row-lock it for the transaction."""
        if isinstance(scope, RoomScope):
            self.get_room(scope.room_id, for_update=for_update)
        else:
            self.get_property(scope.property_id, for_update=for_update)

    # --- reservations ---

    def get_reservation(self, reservation_id: int, *, with_proof: bool = False) -> Reservation:
        options = [selectinload(Reservation.payment_proof)] if with_proof else None
        reservation = self.session.get(Reservation, reservation_id, options=options)
        if reservation is None:
            raise NotFound("Booking not found", bookingId=reservation_id)
        return reservation

    def transition(
        self,
        reservation_id: int,
        from_statuses: tuple[str, ...],
        values: dict,
        *,
        from_payment_statuses: tuple[str, ...] | None = None,
    ) -> bool:
        """Write ``values`` only if the stored status is still one of ``from_statuses``.

        Returns False when another writer moved the reservation first, so a
        status read earlier in the transaction is never written back blindly.
        """
        stmt = update(Reservation).where(
            Reservation.id == reservation_id,
            Reservation.status.in_(from_statuses),
        )
        if from_payment_statuses is not None:
            stmt = stmt.where(Reservation.payment_status.in_(from_payment_statuses))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        return self.session.execute(stmt).rowcount == 1

    def reservations_for_guest(self, guest_id: str) -> list[Reservation]:
        return (
            self.session.query(Reservation)
            .options(selectinload(Reservation.payment_proof))
            .filter(Reservation.guest_id == guest_id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .all()
        )

    def reservations_for_tenant(self, tenant_id: str) -> list[Reservation]:
        return (
            self.session.query(Reservation)
            .join(Property, Reservation.property_id == Property.id)
            .options(selectinload(Reservation.payment_proof))
            .filter(Property.tenant_id == tenant_id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .all()
        )

    def find_reservations(
        self,
        room_id: int,
        start: date,
        end: date,
        exclude_id: int | None = None,
    ) -> list[Reservation]:
        """Occupying reservations on a room whose stay intersects [start, end)."""
        query = self.session.query(Reservation).filter(
            Reservation.room_id == room_id,
            Reservation.status.in_(OCCUPYING_STATUSES),
            Reservation.check_in_date < end,
            Reservation.check_out_date > start,
        )
        if exclude_id is not None:
            query = query.filter(Reservation.id != exclude_id)
        return query.order_by(Reservation.check_in_date).all()

    # --- date overrides ---

    def find_overrides(self, room_id: int, start: date, end: date) -> list[DateOverride]:
        """Overrides for dates in the half-open range [start, end)."""
        return (
            self.session.query(DateOverride)
            .filter(
                DateOverride.room_id == room_id,
                DateOverride.date >= start,
                DateOverride.date < end,
            )
            .order_by(DateOverride.date)
            .all()
        )

    def get_override(self, room_id: int, day: date) -> DateOverride | None:
        return (
            self.session.query(DateOverride)
            .filter(DateOverride.room_id == room_id, DateOverride.date == day)
            .one_or_none()
        )

    # --- season rates ---

    def get_rate(self, rate_id: int) -> SeasonRate:
        rate = self.session.get(SeasonRate, rate_id)
        if rate is None:
            raise NotFound("Season rate not found", rateId=rate_id)
        return rate

    def find_rates(
        self,
        scope: Scope,
        start: date | None = None,
        end: date | None = None,
        exclude_id: int | None = None,
    ) -> list[SeasonRate]:
        """Rates attached to a scope, optionally only those touching [start, end]."""
        query = self.session.query(SeasonRate)
        if isinstance(scope, RoomScope):
            query = query.filter(SeasonRate.room_id == scope.room_id)
        elif isinstance(scope, PropertyScope):
            query = query.filter(SeasonRate.property_id == scope.property_id)
        if start is not None:
            query = query.filter(SeasonRate.end_date >= start)
        if end is not None:
            query = query.filter(SeasonRate.start_date <= end)
        if exclude_id is not None:
            query = query.filter(SeasonRate.id != exclude_id)
        return query.order_by(SeasonRate.start_date).all()
