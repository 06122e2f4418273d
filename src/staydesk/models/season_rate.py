"""Season rate model and its room/property scope."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Union

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.database import Base
from staydesk.errors import InvalidScope


class RateType(str, Enum):
    NOMINAL = "NOMINAL"  # value replaces the base price
    PERCENTAGE = "PERCENTAGE"  # value is a percentage added on top of base


@dataclass(frozen=True)
class RoomScope:
    room_id: int

    @property
    def key(self) -> tuple[str, int]:
        return ("room", self.room_id)


@dataclass(frozen=True)
class PropertyScope:
    property_id: int

    @property
    def key(self) -> tuple[str, int]:
        return ("property", self.property_id)


Scope = Union[RoomScope, PropertyScope]


def scope_from_ids(room_id: int | None, property_id: int | None) -> Scope:
    """Build a scope from raw ids, rejecting both-set and neither-set."""
    if room_id is not None and property_id is not None:
        raise InvalidScope("Provide either propertyId or roomId, not both")
    if room_id is not None:
        return RoomScope(room_id)
    if property_id is not None:
        return PropertyScope(property_id)
    raise InvalidScope("Either propertyId or roomId must be provided")


class SeasonRate(Base):
    __tablename__ = "season_rates"
    __table_args__ = (
        CheckConstraint(
            "(room_id IS NULL) <> (property_id IS NULL)", name="ck_season_rate_one_scope"
        ),
        CheckConstraint("end_date >= start_date", name="ck_season_rate_window"),
        CheckConstraint("value > 0", name="ck_season_rate_value_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[int | None] = mapped_column(ForeignKey("rooms.id"), nullable=True, index=True)
    property_id: Mapped[int | None] = mapped_column(ForeignKey("properties.id"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)  # inclusive

    room: Mapped["Room | None"] = relationship(back_populates="season_rates")  # noqa: F821
    prop: Mapped["Property | None"] = relationship(back_populates="season_rates")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<SeasonRate id={self.id} {self.type} {self.value} "
            f"{self.start_date}..{self.end_date}>"
        )

    @property
    def scope(self) -> Scope:
        return scope_from_ids(self.room_id, self.property_id)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "roomId": self.room_id,
            "propertyId": self.property_id,
            "type": self.type,
            "value": str(self.value),
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }
