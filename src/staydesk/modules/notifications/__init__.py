"""Guest notifications."""

from staydesk.modules.notifications.mailer import BookingMailer

__all__ = ["BookingMailer"]
