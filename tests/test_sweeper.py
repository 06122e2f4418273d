"""Tests for scheduled reservation housekeeping."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.orm import Session

from staydesk.events import EventType
from staydesk.models.booking import Reservation
from staydesk.modules.availability.checker import AvailabilityChecker
from staydesk.modules.bookings.lifecycle import ReservationLifecycle
from staydesk.modules.bookings.sweeper import ReservationSweeper
from staydesk.store import BookingStore

CHECK_IN = date(2030, 5, 1)
CHECK_OUT = date(2030, 5, 4)


def test_fresh_pending_booking_is_kept(session_factory, add_reservation):
    add_reservation(CHECK_IN, CHECK_OUT, status="PENDING")

    assert ReservationSweeper(session_factory=session_factory).expire_pending() == []


def test_expired_pending_booking_releases_dates(
    session_factory, db_session: Session, sample_room, add_reservation, event_bus
):
    stale = add_reservation(CHECK_IN, CHECK_OUT, status="PENDING")
    received = []
    event_bus.subscribe(EventType.BOOKING_EXPIRED, received.append)
    later = datetime.now(timezone.utc) + timedelta(hours=3)

    with patch("staydesk.modules.bookings.sweeper.event_bus", event_bus):
        expired = ReservationSweeper(session_factory=session_factory).expire_pending(now=later)

    assert expired == [stale.id]
    db_session.expire_all()
    reloaded = db_session.get(Reservation, stale.id)
    assert reloaded.status == "CANCELLED"
    assert reloaded.payment_status == "REJECTED"
    assert [e.data["booking_id"] for e in received] == [stale.id]

    result = AvailabilityChecker(BookingStore(db_session)).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)
    assert result.available is True


def test_expiry_skips_bookings_awaiting_confirmation(session_factory, add_reservation):
    add_reservation(
        CHECK_IN, CHECK_OUT, status="WAITING_CONFIRMATION", payment_status="WAITING_CONFIRMATION"
    )
    later = datetime.now(timezone.utc) + timedelta(hours=3)

    assert ReservationSweeper(session_factory=session_factory).expire_pending(now=later) == []


def test_expiry_skips_booking_paid_after_selection(session_factory, db_session: Session, add_reservation):
    pending = add_reservation(CHECK_IN, CHECK_OUT, status="PENDING", guest_id="guest-1")
    real_select = ReservationSweeper._stale_pending_ids

    def select_then_guest_pays(self, session, threshold):
        ids = real_select(self, session, threshold)
        ReservationLifecycle(session_factory=session_factory).upload_payment_proof(
            pending.id, "guest-1", "https://cdn.example.com/proof.jpg"
        )
        return ids

    later = datetime.now(timezone.utc) + timedelta(hours=3)
    with patch.object(ReservationSweeper, "_stale_pending_ids", select_then_guest_pays):
        expired = ReservationSweeper(session_factory=session_factory).expire_pending(now=later)

    assert expired == []
    db_session.expire_all()
    reloaded = db_session.get(Reservation, pending.id)
    assert reloaded.status == "WAITING_CONFIRMATION"
    assert reloaded.payment_status == "WAITING_CONFIRMATION"


def test_complete_finished_stays(session_factory, db_session: Session, add_reservation):
    finished = add_reservation(date(2030, 5, 1), date(2030, 5, 4), status="CONFIRMED")
    add_reservation(date(2030, 5, 5), date(2030, 5, 9), status="CONFIRMED")  # checks out today
    add_reservation(date(2030, 4, 1), date(2030, 4, 3), status="CANCELLED")

    completed = ReservationSweeper(session_factory=session_factory).complete_finished(today=date(2030, 5, 9))

    assert completed == [finished.id]
    db_session.expire_all()
    assert db_session.get(Reservation, finished.id).status == "COMPLETED"


def test_checkin_reminders_for_tomorrow(session_factory, add_reservation, event_bus):
    due = add_reservation(date(2030, 5, 2), date(2030, 5, 4), status="CONFIRMED")
    add_reservation(date(2030, 5, 2), date(2030, 5, 4), status="PENDING")
    add_reservation(date(2030, 5, 10), date(2030, 5, 12), status="CONFIRMED")
    received = []
    event_bus.subscribe(EventType.CHECKIN_REMINDER_DUE, received.append)

    with patch("staydesk.modules.bookings.sweeper.event_bus", event_bus):
        reminded = ReservationSweeper(session_factory=session_factory).send_checkin_reminders(
            today=date(2030, 5, 1)
        )

    assert reminded == [due.id]
    assert len(received) == 1
