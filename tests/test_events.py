"""Tests for booking events and their subscribers."""

from datetime import date
from unittest.mock import patch

from sqlalchemy.orm import Session

from staydesk.events import Event, EventBus, EventType
from staydesk.models.booking import Reservation
from staydesk.models.property import Room
from staydesk.modules.bookings.admission import BookingAdmission, BookingRequest
from staydesk.modules.bookings.lifecycle import ReservationLifecycle
from staydesk.modules.notifications.mailer import BookingMailer


def _request(room: Room) -> BookingRequest:
    return BookingRequest(
        guest_id="guest-1", room_id=room.id, property_id=room.property_id,
        check_in=date(2030, 8, 1), check_out=date(2030, 8, 3),
        guest_email="guest@example.com",
    )


def test_failing_mailer_leaves_booking_committed(session_factory, db_session: Session, sample_room: Room):
    bus = EventBus()
    mailer = BookingMailer(session_factory=session_factory)
    mailer.setup_event_handlers(bus)
    audit = []
    bus.subscribe(EventType.BOOKING_CREATED, audit.append)

    with (
        patch("staydesk.modules.bookings.admission.event_bus", bus),
        patch.object(mailer, "notify", side_effect=RuntimeError("template missing")),
    ):
        admission = BookingAdmission(session_factory=session_factory).admit(
            _request(sample_room), today=date(2030, 1, 1)
        )

    stored = db_session.get(Reservation, admission.reservation.id)
    assert stored.status == "PENDING"
    assert [e.data["booking_id"] for e in audit] == [stored.id]


def test_failing_subscriber_does_not_undo_cancellation(
    session_factory, db_session: Session, add_reservation
):
    booking = add_reservation(date(2030, 8, 1), date(2030, 8, 3), status="PENDING", guest_id="guest-1")
    bus = EventBus()

    def broken(event: Event):
        raise ValueError("boom")

    bus.subscribe(EventType.BOOKING_CANCELLED, broken)

    with patch("staydesk.modules.bookings.lifecycle.event_bus", bus):
        ReservationLifecycle(session_factory=session_factory).cancel(booking.id, "guest-1")

    db_session.expire_all()
    assert db_session.get(Reservation, booking.id).status == "CANCELLED"


def test_events_only_reach_their_subscribers():
    bus = EventBus()
    received = []
    bus.subscribe(EventType.BOOKING_CONFIRMED, received.append)

    bus.publish(Event(event_type=EventType.BOOKING_REJECTED, data={"booking_id": 1}))
    bus.publish(Event(event_type=EventType.BOOKING_CONFIRMED, data={"booking_id": 2}))

    assert [e.data["booking_id"] for e in received] == [2]
