"""Create, update, delete and list season rates."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from staydesk.database import get_session
from staydesk.errors import InvalidValue
from staydesk.events import Event, EventType, event_bus
from staydesk.locks import scope_locks
from staydesk.models.season_rate import RateType, SeasonRate, scope_from_ids
from staydesk.modules.season_rates.validator import RateWindow, RateWindowValidator
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)


def _check_rate_fields(rate_type: str, value: Decimal) -> str:
    try:
        rate_type = RateType(rate_type).value
    except ValueError:
        raise InvalidValue(f"Invalid rate type: {rate_type}") from None
    if value <= 0:
        raise InvalidValue("Value must be positive")
    return rate_type


class SeasonRateManager:
    """Season-rate writes, serialized per scope and validated before commit."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or get_session

    def create(
        self,
        *,
        rate_type: str,
        value: Decimal,
        start_date: date,
        end_date: date,
        room_id: int | None = None,
        property_id: int | None = None,
    ) -> SeasonRate:
        scope = scope_from_ids(room_id, property_id)
        rate_type = _check_rate_fields(rate_type, value)
        window = RateWindow(start_date, end_date)
        window.validate()

        with scope_locks.hold(scope.key):
            session = self._session_factory()
            try:
                store = BookingStore(session)
                # Row lock on the room or property serializes writers in other processes
                store.ensure_scope_exists(scope, for_update=True)
                validator = RateWindowValidator(store)
                validator.assert_no_overlap(scope, window)

                rate = SeasonRate(
                    room_id=room_id,
                    property_id=property_id,
                    type=rate_type,
                    value=value,
                    start_date=start_date,
                    end_date=end_date,
                )
                session.add(rate)
                session.flush()
                # Re-check with the new row flushed, excluding itself
                validator.assert_no_overlap(scope, window, exclude_rate_id=rate.id)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        logger.info("Season rate created: %s", rate.id)
        event_bus.publish(Event(
            event_type=EventType.SEASON_RATE_CHANGED,
            data={"rate_id": rate.id, "room_id": room_id, "property_id": property_id},
        ))
        return rate

    def update(
        self,
        rate_id: int,
        *,
        rate_type: str | None = None,
        value: Decimal | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SeasonRate:
        """Update fields in place; the scope of a rate never changes."""
        session = self._session_factory()
        try:
            scope = BookingStore(session).get_rate(rate_id).scope
        finally:
            session.close()

        with scope_locks.hold(scope.key):
            session = self._session_factory()
            try:
                store = BookingStore(session)
                store.ensure_scope_exists(scope, for_update=True)
                rate = store.get_rate(rate_id)
                new_type = _check_rate_fields(
                    rate_type if rate_type is not None else rate.type,
                    value if value is not None else Decimal(rate.value),
                )
                window = RateWindow(
                    start_date if start_date is not None else rate.start_date,
                    end_date if end_date is not None else rate.end_date,
                )
                RateWindowValidator(store).assert_no_overlap(scope, window, exclude_rate_id=rate.id)

                rate.type = new_type
                if value is not None:
                    rate.value = value
                rate.start_date = window.start_date
                rate.end_date = window.end_date
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        logger.info("Season rate updated: %s", rate_id)
        event_bus.publish(Event(
            event_type=EventType.SEASON_RATE_CHANGED,
            data={"rate_id": rate_id, "room_id": rate.room_id, "property_id": rate.property_id},
        ))
        return rate

    def delete(self, rate_id: int) -> None:
        session = self._session_factory()
        try:
            rate = BookingStore(session).get_rate(rate_id)
            session.delete(rate)
            session.commit()
            logger.info("Season rate deleted: %s", rate_id)
        finally:
            session.close()

    def list_rates(
        self, room_id: int | None = None, property_id: int | None = None
    ) -> list[SeasonRate]:
        """Rates ordered by start date, filtered by whichever ids are given."""
        session = self._session_factory()
        try:
            query = session.query(SeasonRate)
            if room_id is not None:
                query = query.filter(SeasonRate.room_id == room_id)
            if property_id is not None:
                query = query.filter(SeasonRate.property_id == property_id)
            rates = query.order_by(SeasonRate.start_date).all()
            logger.debug("Fetched %d season rates", len(rates))
            return rates
        finally:
            session.close()
