"""Periodic reservation housekeeping: payment expiry, completion, reminders."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session

from staydesk.config import booking_settings
from staydesk.database import get_session
from staydesk.events import Event, EventType, event_bus
from staydesk.models.booking import PaymentStatus, Reservation, ReservationStatus
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)


class ReservationSweeper:
    """Jobs run by the scheduler; each opens and closes its own session."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or get_session
        self._timeout = timedelta(minutes=booking_settings()["pending_timeout_minutes"])

    def expire_pending(self, now: datetime | None = None) -> list[int]:
        """Cancel unpaid PENDING reservations older than the payment timeout."""
        now = now or datetime.now(timezone.utc)
        # created_at is stored naive UTC
        threshold = (now - self._timeout).replace(tzinfo=None)

        session = self._session_factory()
        try:
            store = BookingStore(session)
            candidates = self._stale_pending_ids(session, threshold)
            if not candidates:
                logger.debug("No expired bookings to cancel")
                return []

            # A guest may upload proof between the select and the write
            expired_ids = [
                reservation_id
                for reservation_id in candidates
                if store.transition(
                    reservation_id,
                    (ReservationStatus.PENDING.value,),
                    {
                        "status": ReservationStatus.CANCELLED.value,
                        "payment_status": PaymentStatus.REJECTED.value,
                    },
                    from_payment_statuses=(PaymentStatus.PENDING.value,),
                )
            ]
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info("Auto-cancelled %d bookings", len(expired_ids))
        for reservation_id in expired_ids:
            event_bus.publish(Event(
                event_type=EventType.BOOKING_EXPIRED,
                data={"booking_id": reservation_id},
            ))
        return expired_ids

    def _stale_pending_ids(self, session: Session, threshold: datetime) -> list[int]:
        rows = (
            session.query(Reservation.id)
            .filter(
                Reservation.status == ReservationStatus.PENDING.value,
                Reservation.payment_status == PaymentStatus.PENDING.value,
                Reservation.created_at < threshold,
            )
            .order_by(Reservation.id)
            .all()
        )
        return [row.id for row in rows]

    def complete_finished(self, today: date | None = None) -> list[int]:
        """Mark CONFIRMED stays whose check-out date has passed as COMPLETED."""
        today = today or date.today()
        session = self._session_factory()
        try:
            store = BookingStore(session)
            finished = (
                session.query(Reservation.id)
                .filter(
                    Reservation.status == ReservationStatus.CONFIRMED.value,
                    Reservation.check_out_date < today,
                )
                .order_by(Reservation.id)
                .all()
            )
            completed_ids = [
                row.id
                for row in finished
                if store.transition(
                    row.id,
                    (ReservationStatus.CONFIRMED.value,),
                    {"status": ReservationStatus.COMPLETED.value},
                )
            ]
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        if completed_ids:
            logger.info("Completed %d finished stays", len(completed_ids))
        for reservation_id in completed_ids:
            event_bus.publish(Event(
                event_type=EventType.BOOKING_COMPLETED,
                data={"booking_id": reservation_id},
            ))
        return completed_ids

    def send_checkin_reminders(self, today: date | None = None) -> list[int]:
        """Publish a reminder for each approved stay checking in tomorrow."""
        tomorrow = (today or date.today()) + timedelta(days=1)
        session = self._session_factory()
        try:
            due = (
                session.query(Reservation.id)
                .filter(
                    Reservation.status == ReservationStatus.CONFIRMED.value,
                    Reservation.payment_status == PaymentStatus.APPROVED.value,
                    Reservation.check_in_date == tomorrow,
                )
                .all()
            )
            due_ids = [row.id for row in due]
        finally:
            session.close()

        logger.info("Sending %d check-in reminders", len(due_ids))
        for reservation_id in due_ids:
            event_bus.publish(Event(
                event_type=EventType.CHECKIN_REMINDER_DUE,
                data={"booking_id": reservation_id},
            ))
        return due_ids
