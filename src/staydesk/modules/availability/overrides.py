"""Tenant-managed per-date blocks and custom prices."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from staydesk.database import get_session
from staydesk.errors import InvalidValue, NotFound
from staydesk.models.availability import DateOverride
from staydesk.store import BookingStore

logger = logging.getLogger(__name__)


@dataclass
class OverrideItem:
    room_id: int
    date: date
    is_available: bool
    override_price: Decimal | None = None


class OverrideManager:
    """Upserts, lists and deletes DateOverride rows."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or get_session

    def set_overrides(self, items: list[OverrideItem]) -> list[DateOverride]:
        """Upsert one override per (room, date); all items commit together."""
        for item in items:
            if item.override_price is not None and item.override_price <= 0:
                raise InvalidValue("Override price must be positive", date=item.date.isoformat())

        session = self._session_factory()
        try:
            store = BookingStore(session)
            results = []
            for item in items:
                store.get_room(item.room_id)
                override = store.get_override(item.room_id, item.date)
                if override is None:
                    override = DateOverride(room_id=item.room_id, date=item.date)
                    session.add(override)
                override.is_available = item.is_available
                override.override_price = item.override_price
                results.append(override)
            session.commit()
            logger.info("%d availability records updated", len(results))
            return results
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_overrides(
        self, room_id: int, start: date | None = None, end: date | None = None
    ) -> list[DateOverride]:
        """Overrides for a room, optionally limited to the inclusive range [start, end]."""
        session = self._session_factory()
        try:
            query = session.query(DateOverride).filter(DateOverride.room_id == room_id)
            if start is not None:
                query = query.filter(DateOverride.date >= start)
            if end is not None:
                query = query.filter(DateOverride.date <= end)
            return query.order_by(DateOverride.date).all()
        finally:
            session.close()

    def delete_override(self, override_id: int) -> None:
        session = self._session_factory()
        try:
            override = session.get(DateOverride, override_id)
            if override is None:
                raise NotFound("Availability record not found", id=override_id)
            session.delete(override)
            session.commit()
            logger.info("Availability deleted: %s", override_id)
        finally:
            session.close()
