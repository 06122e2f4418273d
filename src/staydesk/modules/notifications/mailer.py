"""Guest email notifications rendered from Jinja2 templates and sent over SMTP."""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from pathlib import Path
from typing import Callable

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session

from staydesk.config import get_env, settings
from staydesk.database import get_session
from staydesk.events import Event, EventBus, EventType, event_bus
from staydesk.models.booking import Reservation
from staydesk.models.property import Room

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

# event type -> (template name, subject)
NOTIFICATIONS = {
    EventType.BOOKING_CREATED: ("booking_created", "Booking received - awaiting payment"),
    EventType.BOOKING_CONFIRMED: ("booking_confirmed", "Booking confirmed"),
    EventType.BOOKING_EXPIRED: ("booking_expired", "Booking cancelled - payment timeout"),
    EventType.CHECKIN_REMINDER_DUE: ("checkin_reminder", "Reminder: check-in tomorrow"),
}


class BookingMailer:
    """Sends one email per booking event; failures are logged, never raised to callers."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or get_session
        self._config = settings.get("notifications", {}) or {}
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(default=False),
        )

    def setup_event_handlers(self, bus: EventBus | None = None) -> None:
        """Subscribe to booking events that warrant a guest email."""
        bus = bus or event_bus
        for event_type in NOTIFICATIONS:
            bus.subscribe(event_type, self.on_booking_event)

    def on_booking_event(self, event: Event) -> None:
        if not self._config.get("enabled", True):
            return
        booking_id = event.data.get("booking_id")
        template_name, subject = NOTIFICATIONS[event.event_type]
        if booking_id:
            self.notify(booking_id, template_name, subject)

    def notify(self, booking_id: int, template_name: str, subject: str) -> bool:
        """Render and send a message about one reservation. Returns True if sent."""
        session = self._session_factory()
        try:
            reservation = session.get(Reservation, booking_id)
            if not reservation:
                logger.warning("Booking %s not found, skipping email", booking_id)
                return False
            if not reservation.guest_email:
                logger.debug("No guest email for booking %s", booking_id)
                return False
            room = session.get(Room, reservation.room_id)
            body = self.render(template_name, reservation, room)
            recipient = reservation.guest_email
        finally:
            session.close()

        return self._send_email(recipient, subject, body)

    def render(self, template_name: str, reservation: Reservation, room: Room | None) -> str:
        template = self._jinja_env.get_template(f"{template_name}.txt")
        context = {
            "guest_name": reservation.guest_name or "there",
            "booking_id": reservation.id,
            "room_name": room.name if room else "",
            "property_name": room.prop.name if room and room.prop else "",
            "checkin_date": reservation.check_in_date.strftime("%d %B %Y"),
            "checkout_date": reservation.check_out_date.strftime("%d %B %Y"),
            "nights": reservation.nights,
            "guests": reservation.guests,
            "total_price": f"{reservation.total_price:,}",
        }
        return template.render(**context)

    def _send_email(self, recipient: str, subject: str, body: str) -> bool:
        """Send a plain-text message via SMTP."""
        smtp_host = get_env("SMTP_HOST")
        smtp_port = int(get_env("SMTP_PORT", "587"))
        smtp_user = get_env("SMTP_USER")
        smtp_password = get_env("SMTP_PASSWORD")

        if not all([smtp_host, smtp_user, smtp_password]):
            logger.warning("SMTP not configured, cannot send email")
            return False

        email_msg = MIMEText(body)
        email_msg["Subject"] = f"StayDesk - {subject}"
        email_msg["From"] = self._config.get("from_address", smtp_user)
        email_msg["To"] = recipient

        try:
            with smtplib.SMTP(smtp_host, smtp_port) as server:
                server.starttls()
                server.login(smtp_user, smtp_password)
                server.send_message(email_msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", recipient)
            return False
        logger.info("Email sent to %s", recipient)
        return True
