"""Reservation status transitions after admission, and the reservation read paths."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from staydesk.database import get_session
from staydesk.errors import Forbidden, InvalidTransition
from staydesk.events import Event, EventType, event_bus
from staydesk.models.booking import PaymentStatus, Reservation, ReservationStatus
from staydesk.models.payment import PaymentProof, PaymentTransaction
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)

PENDING = (ReservationStatus.PENDING.value,)
WAITING = (ReservationStatus.WAITING_CONFIRMATION.value,)
CANCELLABLE = PENDING + WAITING


class ReservationLifecycle:
    """Payment proof upload, tenant approval/rejection and guest cancellation.

    Ownership by the tenant is checked by the auth layer; guest ownership is
    checked here because the guest id travels with the request. Every status
    write is conditional on the status the check saw, so a transition that
    lost a race with the expiry sweep or a cancellation fails instead of
    reoccupying released dates.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or get_session

    # --- reads ---

    def get(self, reservation_id: int, user_id: str) -> Reservation:
        """A reservation visible to its guest or to the tenant owning the property."""
        session = self._session_factory()
        try:
            reservation = BookingStore(session).get_reservation(reservation_id, with_proof=True)
            if reservation.guest_id != user_id and reservation.prop.tenant_id != user_id:
                raise Forbidden("Unauthorized to view this booking", bookingId=reservation_id)
            return reservation
        finally:
            session.close()

    def list_for_guest(self, guest_id: str) -> list[Reservation]:
        session = self._session_factory()
        try:
            reservations = BookingStore(session).reservations_for_guest(guest_id)
            logger.debug("Fetched %d bookings for guest %s", len(reservations), guest_id)
            return reservations
        finally:
            session.close()

    def list_for_tenant(self, tenant_id: str) -> list[Reservation]:
        session = self._session_factory()
        try:
            reservations = BookingStore(session).reservations_for_tenant(tenant_id)
            logger.debug("Fetched %d bookings for tenant %s", len(reservations), tenant_id)
            return reservations
        finally:
            session.close()

    # --- transitions ---

    def upload_payment_proof(self, reservation_id: int, guest_id: str, image_url: str) -> Reservation:
        session = self._session_factory()
        try:
            store = BookingStore(session)
            reservation = store.get_reservation(reservation_id)
            self._check_owner(reservation, guest_id)
            if (
                reservation.payment_status != PaymentStatus.PENDING
                or reservation.status != ReservationStatus.PENDING
            ):
                raise InvalidTransition(
                    "Payment proof already uploaded or booking already processed",
                    status=reservation.status,
                    paymentStatus=reservation.payment_status,
                )

            proof = (
                session.query(PaymentProof)
                .filter(PaymentProof.reservation_id == reservation.id)
                .one_or_none()
            )
            if proof is None:
                proof = PaymentProof(reservation_id=reservation.id, image_url=image_url)
                session.add(proof)
            else:
                proof.image_url = image_url
                proof.uploaded_at = datetime.now(timezone.utc)

            moved = store.transition(
                reservation.id,
                PENDING,
                {
                    "status": ReservationStatus.WAITING_CONFIRMATION.value,
                    "payment_status": PaymentStatus.WAITING_CONFIRMATION.value,
                },
                from_payment_statuses=(PaymentStatus.PENDING.value,),
            )
            if not moved:
                self._changed_underneath(reservation.id)
            session.refresh(reservation)
            session.commit()
            logger.info("Payment proof uploaded for booking %s", reservation.id)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        event_bus.publish(Event(
            event_type=EventType.PAYMENT_PROOF_UPLOADED,
            data={"booking_id": reservation.id},
        ))
        return reservation

    def approve(self, reservation_id: int) -> Reservation:
        """Confirm the stay and record the payment transaction."""
        session = self._session_factory()
        try:
            store = BookingStore(session)
            reservation = store.get_reservation(reservation_id)
            self._require_status(reservation, ReservationStatus.WAITING_CONFIRMATION, "approve")

            moved = store.transition(reservation.id, WAITING, {
                "status": ReservationStatus.CONFIRMED.value,
                "payment_status": PaymentStatus.APPROVED.value,
            })
            if not moved:
                self._changed_underneath(reservation.id)

            now = datetime.now(timezone.utc)
            txn = (
                session.query(PaymentTransaction)
                .filter(PaymentTransaction.reservation_id == reservation.id)
                .one_or_none()
            )
            if txn is None:
                session.add(PaymentTransaction(
                    reservation_id=reservation.id, amount=reservation.total_price, paid_at=now,
                ))
            else:
                txn.amount = reservation.total_price
                txn.paid_at = now
            session.refresh(reservation)
            session.commit()
            logger.info("Booking approved: %s", reservation.id)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        event_bus.publish(Event(
            event_type=EventType.BOOKING_CONFIRMED,
            data={"booking_id": reservation.id},
        ))
        return reservation

    def reject(self, reservation_id: int) -> Reservation:
        """Reject the payment proof; the stay's dates are released."""
        session = self._session_factory()
        try:
            store = BookingStore(session)
            reservation = store.get_reservation(reservation_id)
            self._require_status(reservation, ReservationStatus.WAITING_CONFIRMATION, "reject")
            moved = store.transition(reservation.id, WAITING, {
                "status": ReservationStatus.REJECTED.value,
                "payment_status": PaymentStatus.REJECTED.value,
            })
            if not moved:
                self._changed_underneath(reservation.id)
            session.refresh(reservation)
            session.commit()
            logger.info("Payment rejected for booking: %s", reservation.id)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        event_bus.publish(Event(
            event_type=EventType.BOOKING_REJECTED,
            data={"booking_id": reservation.id},
        ))
        return reservation

    def cancel(self, reservation_id: int, guest_id: str) -> Reservation:
        """Guest cancellation, allowed until the tenant confirms."""
        session = self._session_factory()
        try:
            store = BookingStore(session)
            reservation = store.get_reservation(reservation_id)
            self._check_owner(reservation, guest_id)
            if reservation.status not in CANCELLABLE:
                raise InvalidTransition(
                    "Cannot cancel confirmed or closed bookings", status=reservation.status
                )
            moved = store.transition(
                reservation.id, CANCELLABLE, {"status": ReservationStatus.CANCELLED.value}
            )
            if not moved:
                self._changed_underneath(reservation.id)
            session.refresh(reservation)
            session.commit()
            logger.info("Booking cancelled: %s", reservation.id)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        event_bus.publish(Event(
            event_type=EventType.BOOKING_CANCELLED,
            data={"booking_id": reservation.id},
        ))
        return reservation

    @staticmethod
    def _check_owner(reservation: Reservation, guest_id: str) -> None:
        if reservation.guest_id != guest_id:
            raise Forbidden("Unauthorized", bookingId=reservation.id)

    @staticmethod
    def _require_status(reservation: Reservation, expected: ReservationStatus, action: str) -> None:
        if reservation.status != expected:
            raise InvalidTransition(
                f"Cannot {action} a booking in status {reservation.status}",
                status=reservation.status,
            )

    @staticmethod
    def _changed_underneath(reservation_id: int) -> None:
        logger.warning("Booking %s changed status during a transition", reservation_id)
        raise InvalidTransition("Booking status changed, please reload", bookingId=reservation_id)
