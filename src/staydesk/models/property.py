"""Property and room models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.database import Base


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    tenant_id: Mapped[str | None] = mapped_column(String(100), nullable=True)  # owned by the auth layer
    city: Mapped[str | None] = mapped_column(String(200), nullable=True)

    rooms: Mapped[list["Room"]] = relationship(back_populates="prop")
    season_rates: Mapped[list["SeasonRate"]] = relationship(back_populates="prop")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Property id={self.id} name={self.name!r}>"


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (CheckConstraint("base_price > 0", name="ck_room_base_price_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    capacity_guests: Mapped[int] = mapped_column(Integer, default=2)
    beds: Mapped[int] = mapped_column(Integer, default=1)
    baths: Mapped[int] = mapped_column(Integer, default=1)

    prop: Mapped["Property"] = relationship(back_populates="rooms")
    overrides: Mapped[list["DateOverride"]] = relationship(back_populates="room")  # noqa: F821
    season_rates: Mapped[list["SeasonRate"]] = relationship(back_populates="room")  # noqa: F821
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="room")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Room id={self.id} property_id={self.property_id} base_price={self.base_price}>"
