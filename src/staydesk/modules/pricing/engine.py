"""Per-night price resolution from overrides, season rates and base price."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator

from staydesk.errors import InvalidRange
from staydesk.models.availability import DateOverride
from staydesk.models.season_rate import PropertyScope, RateType, RoomScope, SeasonRate
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)

SOURCE_CUSTOM = "custom"
SOURCE_PEAK_SEASON = "peak_season"
SOURCE_BASE = "base"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def round_money(amount: Decimal) -> int:
    """Round to whole currency units, halves away from zero."""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_number(amount: Decimal) -> int | float:
    return int(amount) if amount == amount.to_integral_value() else float(amount)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Each occupied date of [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


@dataclass
class DailyPrice:
    date: date
    base_price: Decimal
    seasonal_adjustment: Decimal
    final_price: int
    source: str  # custom, peak_season, base

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "basePrice": _as_number(self.base_price),
            "seasonalAdjustment": _as_number(self.seasonal_adjustment),
            "finalPrice": self.final_price,
            "source": self.source,
        }


@dataclass
class PriceBreakdown:
    daily_prices: list[DailyPrice]
    total_price: int
    average_nightly_price: int
    nights: int

    def to_dict(self) -> dict:
        return {
            "dailyPrices": [d.to_dict() for d in self.daily_prices],
            "totalPrice": self.total_price,
            "averageNightlyPrice": self.average_nightly_price,
            "nights": self.nights,
        }


@dataclass
class PricingSnapshot:
    """Everything needed to price one room over one stay."""

    base_price: Decimal
    overrides: dict[date, DateOverride] = field(default_factory=dict)
    room_rates: list[SeasonRate] = field(default_factory=list)
    property_rates: list[SeasonRate] = field(default_factory=list)


def _find_rate(rates: list[SeasonRate], target_date: date) -> SeasonRate | None:
    # Windows within one scope never overlap, so at most one rate matches
    for rate in rates:
        if rate.covers(target_date):
            return rate
    return None


def apply_rate(base_price: Decimal, rate: SeasonRate) -> tuple[Decimal, Decimal]:
    """Return (final_price, seasonal_adjustment) before rounding."""
    value = Decimal(rate.value)
    if rate.type == RateType.NOMINAL:
        return value, max(_ZERO, value - base_price)
    adjustment = base_price * value / _HUNDRED
    return base_price + adjustment, adjustment


def price_night(snapshot: PricingSnapshot, target_date: date) -> DailyPrice:
    """Resolve one night: override > room rate > property rate > base."""
    base = snapshot.base_price

    override = snapshot.overrides.get(target_date)
    if override is not None and override.override_price is not None:
        return DailyPrice(
            date=target_date,
            base_price=base,
            seasonal_adjustment=_ZERO,
            final_price=round_money(Decimal(override.override_price)),
            source=SOURCE_CUSTOM,
        )

    rate = _find_rate(snapshot.room_rates, target_date) or _find_rate(
        snapshot.property_rates, target_date
    )
    if rate is not None:
        final, adjustment = apply_rate(base, rate)
        return DailyPrice(
            date=target_date,
            base_price=base,
            seasonal_adjustment=adjustment,
            final_price=round_money(final),
            source=SOURCE_PEAK_SEASON,
        )

    return DailyPrice(
        date=target_date,
        base_price=base,
        seasonal_adjustment=_ZERO,
        final_price=round_money(base),
        source=SOURCE_BASE,
    )


def compute_breakdown(snapshot: PricingSnapshot, check_in: date, check_out: date) -> PriceBreakdown:
    """Price every night of [check_in, check_out) from a loaded snapshot."""
    nights = (check_out - check_in).days
    if nights <= 0:
        raise InvalidRange(
            "Check-out date must be after check-in date",
            checkIn=check_in.isoformat(),
            checkOut=check_out.isoformat(),
        )

    daily_prices = [price_night(snapshot, d) for d in iter_nights(check_in, check_out)]
    total = sum(d.final_price for d in daily_prices)
    average = round_money(Decimal(total) / Decimal(nights))
    return PriceBreakdown(
        daily_prices=daily_prices,
        total_price=total,
        average_nightly_price=average,
        nights=nights,
    )


class PricingEngine:
    """Loads pricing data through the store and computes stay prices."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def load_snapshot(self, room_id: int, check_in: date, check_out: date) -> PricingSnapshot:
        room = self._store.get_room(room_id)
        last_night = check_out - timedelta(days=1)
        overrides = self._store.find_overrides(room_id, check_in, check_out)
        return PricingSnapshot(
            base_price=Decimal(room.base_price),
            overrides={o.date: o for o in overrides},
            room_rates=self._store.find_rates(RoomScope(room.id), check_in, last_night),
            property_rates=self._store.find_rates(
                PropertyScope(room.property_id), check_in, last_night
            ),
        )

    def price_stay(self, room_id: int, check_in: date, check_out: date) -> PriceBreakdown:
        """Authoritative server-side price for a stay."""
        if check_out <= check_in:
            raise InvalidRange(
                "Check-out date must be after check-in date",
                checkIn=check_in.isoformat(),
                checkOut=check_out.isoformat(),
            )
        snapshot = self.load_snapshot(room_id, check_in, check_out)
        breakdown = compute_breakdown(snapshot, check_in, check_out)
        logger.debug(
            "Priced room %s %s..%s: %d nights, total %d",
            room_id, check_in, check_out, breakdown.nights, breakdown.total_price,
        )
        return breakdown
