"""APScheduler setup for periodic tasks."""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from staydesk.config import settings

logger = logging.getLogger(__name__)


def create_scheduler() -> BackgroundScheduler:
    """Create and configure the background scheduler."""
    from staydesk.modules.bookings import ReservationSweeper
    from staydesk.modules.notifications import BookingMailer

    scheduler = BackgroundScheduler()
    sched_config = settings.get("scheduler", {})

    sweeper = ReservationSweeper()
    mailer = BookingMailer()

    # Wire up event handlers
    mailer.setup_event_handlers()

    # Unpaid booking expiry (every 10 min by default)
    scheduler.add_job(
        sweeper.expire_pending,
        "interval",
        minutes=sched_config.get("expiry_sweep_interval", 10),
        id="expire_pending",
        name="Expire Unpaid Bookings",
    )

    # Finished stays (daily)
    scheduler.add_job(
        sweeper.complete_finished,
        "cron",
        hour=sched_config.get("completion_sweep_hour", 1),
        minute=0,
        id="complete_finished",
        name="Complete Finished Stays",
    )

    # Check-in reminders (daily at 9 AM by default)
    scheduler.add_job(
        sweeper.send_checkin_reminders,
        "cron",
        hour=sched_config.get("reminder_hour", 9),
        minute=0,
        id="checkin_reminders",
        name="Check-in Reminders",
    )

    logger.info("Scheduler configured with %d jobs", len(scheduler.get_jobs()))
    return scheduler
