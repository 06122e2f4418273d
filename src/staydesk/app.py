"""FastAPI application exposing booking admission, pricing and season-rate routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from staydesk.database import get_session, init_db
from staydesk.errors import BookingError
from staydesk.modules.availability import OverrideItem, OverrideManager
from staydesk.modules.bookings import BookingAdmission, BookingRequest, ReservationLifecycle
from staydesk.modules.season_rates import SeasonRateManager
from staydesk.scheduler import create_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting StayDesk...")
    init_db()

    scheduler = create_scheduler()
    scheduler.start()
    logger.info("Scheduler started.")

    yield

    scheduler.shutdown()
    logger.info("StayDesk shut down.")


app = FastAPI(title="StayDesk", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.reason)
    body = exc.to_dict()
    body["error"] = type(exc).__name__
    return JSONResponse(status_code=exc.status_code, content=body)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BookingIntentBody(_CamelModel):
    room_id: int = Field(alias="roomId")
    property_id: int = Field(alias="propertyId")
    check_in: date = Field(alias="checkIn")
    check_out: date = Field(alias="checkOut")
    guests: int = Field(default=1, ge=1)
    guest_email: str | None = Field(default=None, alias="guestEmail")
    guest_name: str | None = Field(default=None, alias="guestName")


class PaymentProofBody(_CamelModel):
    image_url: str = Field(alias="imageUrl", min_length=1)


class SeasonRateBody(_CamelModel):
    room_id: int | None = Field(default=None, alias="roomId")
    property_id: int | None = Field(default=None, alias="propertyId")
    type: str
    value: Decimal
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")


class SeasonRateUpdateBody(_CamelModel):
    type: str | None = None
    value: Decimal | None = None
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")


class OverrideBody(_CamelModel):
    room_id: int = Field(alias="roomId")
    day: date = Field(alias="date")
    is_available: bool = Field(alias="isAvailable")
    override_price: Decimal | None = Field(default=None, alias="overridePrice")


class OverrideBatchBody(BaseModel):
    items: list[OverrideBody]


def _override_to_dict(o) -> dict:
    return {
        "id": o.id,
        "roomId": o.room_id,
        "date": o.date.isoformat(),
        "isAvailable": o.is_available,
        "overridePrice": str(o.override_price) if o.override_price is not None else None,
    }


# --- Health ---


@app.get("/health")
async def health():
    return {"status": "ok"}


# --- Availability and pricing ---


@app.get("/rooms/{room_id}/availability")
def room_availability(
    room_id: int,
    check_in: date = Query(alias="checkIn"),
    check_out: date = Query(alias="checkOut"),
):
    """Whether every night of [checkIn, checkOut) is free."""
    quote = BookingAdmission(session_factory=get_session).quote(room_id, check_in, check_out)
    return quote.availability.to_dict()


@app.get("/rooms/{room_id}/price")
def room_price(
    room_id: int,
    check_in: date = Query(alias="checkIn"),
    check_out: date = Query(alias="checkOut"),
):
    """Per-night price breakdown for a stay."""
    quote = BookingAdmission(session_factory=get_session).quote(room_id, check_in, check_out)
    return quote.price_breakdown.to_dict()


# --- Bookings ---


@app.post("/bookings", status_code=201)
def create_booking(body: BookingIntentBody, x_user_id: str = Header()):
    """Booking intent: reserve the room at the server-computed price."""
    admission = BookingAdmission(session_factory=get_session).admit(BookingRequest(
        guest_id=x_user_id,
        room_id=body.room_id,
        property_id=body.property_id,
        check_in=body.check_in,
        check_out=body.check_out,
        guests=body.guests,
        guest_email=body.guest_email,
        guest_name=body.guest_name,
    ))
    return admission.to_dict()


@app.get("/bookings/me")
def my_bookings(x_user_id: str = Header()):
    """The calling guest's reservations, newest first."""
    reservations = ReservationLifecycle(session_factory=get_session).list_for_guest(x_user_id)
    return [r.to_dict(include_proof=True) for r in reservations]


@app.get("/bookings/tenant")
def tenant_bookings(x_user_id: str = Header()):
    """Reservations on properties owned by the calling tenant, newest first."""
    reservations = ReservationLifecycle(session_factory=get_session).list_for_tenant(x_user_id)
    return [r.to_dict(include_proof=True) for r in reservations]


@app.get("/bookings/{booking_id}")
def get_booking(booking_id: int, x_user_id: str = Header()):
    reservation = ReservationLifecycle(session_factory=get_session).get(booking_id, x_user_id)
    return reservation.to_dict(include_proof=True)


@app.post("/bookings/{booking_id}/payment-proof")
def upload_payment_proof(booking_id: int, body: PaymentProofBody, x_user_id: str = Header()):
    lifecycle = ReservationLifecycle(session_factory=get_session)
    reservation = lifecycle.upload_payment_proof(booking_id, x_user_id, body.image_url)
    return {"message": "Payment proof uploaded successfully", "booking": reservation.to_dict()}


@app.post("/bookings/{booking_id}/approve")
def approve_booking(booking_id: int):
    reservation = ReservationLifecycle(session_factory=get_session).approve(booking_id)
    return {"message": "Booking approved successfully", "booking": reservation.to_dict()}


@app.post("/bookings/{booking_id}/reject")
def reject_booking(booking_id: int):
    reservation = ReservationLifecycle(session_factory=get_session).reject(booking_id)
    return {"message": "Payment proof rejected", "booking": reservation.to_dict()}


@app.delete("/bookings/{booking_id}")
def cancel_booking(booking_id: int, x_user_id: str = Header()):
    ReservationLifecycle(session_factory=get_session).cancel(booking_id, x_user_id)
    return {"message": "Booking cancelled successfully"}


# --- Season rates ---


@app.get("/season-rates")
def list_season_rates(
    room_id: int | None = Query(default=None, alias="roomId"),
    property_id: int | None = Query(default=None, alias="propertyId"),
):
    rates = SeasonRateManager(session_factory=get_session).list_rates(room_id, property_id)
    return [r.to_dict() for r in rates]


@app.post("/season-rates", status_code=201)
def create_season_rate(body: SeasonRateBody):
    rate = SeasonRateManager(session_factory=get_session).create(
        rate_type=body.type,
        value=body.value,
        start_date=body.start_date,
        end_date=body.end_date,
        room_id=body.room_id,
        property_id=body.property_id,
    )
    return rate.to_dict()


@app.put("/season-rates/{rate_id}")
def update_season_rate(rate_id: int, body: SeasonRateUpdateBody):
    rate = SeasonRateManager(session_factory=get_session).update(
        rate_id,
        rate_type=body.type,
        value=body.value,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return rate.to_dict()


@app.delete("/season-rates/{rate_id}")
def delete_season_rate(rate_id: int):
    SeasonRateManager(session_factory=get_session).delete(rate_id)
    return {"message": "Season rate deleted successfully"}


# --- Date overrides ---


@app.get("/availability/{room_id}")
def list_overrides(
    room_id: int,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
):
    overrides = OverrideManager(session_factory=get_session).list_overrides(room_id, start_date, end_date)
    return [_override_to_dict(o) for o in overrides]


@app.post("/availability")
def set_overrides(body: OverrideBatchBody):
    items = [
        OverrideItem(
            room_id=i.room_id,
            date=i.day,
            is_available=i.is_available,
            override_price=i.override_price,
        )
        for i in body.items
    ]
    overrides = OverrideManager(session_factory=get_session).set_overrides(items)
    return [_override_to_dict(o) for o in overrides]


@app.delete("/availability/{override_id}")
def delete_override(override_id: int):
    OverrideManager(session_factory=get_session).delete_override(override_id)
    return {"message": "Availability deleted successfully"}


def main() -> None:
    """Entry point for running the app."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db()
    logger.info("Database initialized.")

    uvicorn.run(
        "staydesk.app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
