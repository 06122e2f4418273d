"""Per-date room availability overrides."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.database import Base


class DateOverride(Base):
    """Manual block and/or custom price for one room on one calendar date."""

    __tablename__ = "room_availability"
    __table_args__ = (UniqueConstraint("room_id", "date", name="uq_room_availability_room_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    override_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    room: Mapped["Room"] = relationship(back_populates="overrides")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<DateOverride room_id={self.room_id} date={self.date} "
            f"available={self.is_available} price={self.override_price}>"
        )
