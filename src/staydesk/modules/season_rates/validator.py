"""Season-rate window validation: one scope never holds overlapping windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from staydesk.errors import InvalidRange, OverlapError
from staydesk.models.season_rate import Scope
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateWindow:
    """Inclusive [start_date, end_date] window."""

    start_date: date
    end_date: date

    def validate(self) -> None:
        if self.end_date < self.start_date:
            raise InvalidRange(
                "End date must be after start date",
                startDate=self.start_date.isoformat(),
                endDate=self.end_date.isoformat(),
            )

    def to_dict(self) -> dict[str, str]:
        return {"startDate": self.start_date.isoformat(), "endDate": self.end_date.isoformat()}


def windows_overlap(a: RateWindow, b: RateWindow) -> bool:
    """Inclusive overlap; windows sharing an endpoint overlap."""
    return not (a.end_date < b.start_date or a.start_date > b.end_date)


class RateWindowValidator:
    """Pure date logic; ownership checks belong to the auth layer."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def assert_no_overlap(
        self,
        scope: Scope,
        window: RateWindow,
        exclude_rate_id: int | None = None,
    ) -> None:
        window.validate()
        for rate in self._store.find_rates(scope, exclude_id=exclude_rate_id):
            existing = RateWindow(rate.start_date, rate.end_date)
            if windows_overlap(window, existing):
                logger.info(
                    "Rejected window %s..%s for %s: overlaps rate %s",
                    window.start_date, window.end_date, scope, rate.id,
                )
                raise OverlapError(
                    "Season rate dates overlap with existing entries",
                    conflictingRateId=rate.id,
                    conflictingWindow=existing.to_dict(),
                )
