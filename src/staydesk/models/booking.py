"""Reservation model and lifecycle statuses."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.database import Base


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    WAITING_CONFIRMATION = "WAITING_CONFIRMATION"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    WAITING_PAYMENT = "WAITING_PAYMENT"
    WAITING_CONFIRMATION = "WAITING_CONFIRMATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Statuses that hold the room's inventory for the stay
OCCUPYING_STATUSES = (
    ReservationStatus.PENDING.value,
    ReservationStatus.WAITING_CONFIRMATION.value,
    ReservationStatus.CONFIRMED.value,
)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_reservation_range"),
        Index("ix_reservations_room_dates", "room_id", "check_in_date", "check_out_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guest_id: Mapped[str] = mapped_column(String(100), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id"), nullable=False)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)  # not occupied
    guests: Mapped[int] = mapped_column(Integer, default=1)
    nightly_price: Mapped[int] = mapped_column(Integer, nullable=False)  # average, informational
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=ReservationStatus.PENDING.value)
    payment_status: Mapped[str] = mapped_column(String(30), default=PaymentStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    room: Mapped["Room"] = relationship(back_populates="reservations")  # noqa: F821
    prop: Mapped["Property"] = relationship()  # noqa: F821
    payment_proof: Mapped["PaymentProof | None"] = relationship(back_populates="reservation")  # noqa: F821
    transaction: Mapped["PaymentTransaction | None"] = relationship(back_populates="reservation")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<Reservation id={self.id} room_id={self.room_id} "
            f"{self.check_in_date}..{self.check_out_date} status={self.status}>"
        )

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def occupies_inventory(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    def to_dict(self, include_proof: bool = False) -> dict:
        data = {
            "id": self.id,
            "guestId": self.guest_id,
            "roomId": self.room_id,
            "propertyId": self.property_id,
            "checkIn": self.check_in_date.isoformat(),
            "checkOut": self.check_out_date.isoformat(),
            "guests": self.guests,
            "nightlyPrice": self.nightly_price,
            "totalPrice": self.total_price,
            "status": self.status,
            "paymentStatus": self.payment_status,
        }
        if include_proof:
            proof = self.payment_proof
            data["paymentProof"] = (
                {"imageUrl": proof.image_url, "uploadedAt": proof.uploaded_at.isoformat()}
                if proof else None
            )
        return data
