"""Shared test fixtures."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"  # In-memory DB for tests

from staydesk.database import Base
from staydesk.events import EventBus
from staydesk.models.availability import DateOverride
from staydesk.models.booking import Reservation
from staydesk.models.property import Property, Room
from staydesk.models.season_rate import SeasonRate

# Import all models to register them
import staydesk.models.payment  # noqa: F401


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite so separate sessions (and threads) share one database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory injected into services under test."""
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Session for seeding and for reading back results."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sample_property(db_session: Session) -> Property:
    prop = Property(name="Villa Kenanga", tenant_id="tenant-1", city="Bandung")
    db_session.add(prop)
    db_session.commit()
    return prop


@pytest.fixture
def sample_room(db_session: Session, sample_property: Property) -> Room:
    """Room priced at 500000 per night for up to 2 guests."""
    room = Room(
        property_id=sample_property.id,
        name="Deluxe",
        base_price=Decimal("500000"),
        capacity_guests=2,
        beds=1,
        baths=1,
    )
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def add_reservation(db_session: Session, sample_room: Room):
    """Insert a reservation directly, bypassing admission."""

    def _add(check_in: date, check_out: date, status: str = "CONFIRMED", **kwargs) -> Reservation:
        fields = dict(
            guest_id="guest-seed",
            room_id=sample_room.id,
            property_id=sample_room.property_id,
            check_in_date=check_in,
            check_out_date=check_out,
            guests=1,
            nightly_price=500000,
            total_price=500000 * (check_out - check_in).days,
            status=status,
            payment_status="APPROVED" if status == "CONFIRMED" else "PENDING",
        )
        fields.update(kwargs)
        reservation = Reservation(**fields)
        db_session.add(reservation)
        db_session.commit()
        return reservation

    return _add


@pytest.fixture
def add_override(db_session: Session, sample_room: Room):
    def _add(day: date, is_available: bool = True, price: Decimal | None = None) -> DateOverride:
        override = DateOverride(
            room_id=sample_room.id, date=day, is_available=is_available, override_price=price
        )
        db_session.add(override)
        db_session.commit()
        return override

    return _add


@pytest.fixture
def add_rate(db_session: Session):
    """Insert a season rate directly, bypassing window validation."""

    def _add(
        start: date,
        end: date,
        rate_type: str = "PERCENTAGE",
        value: str = "20",
        room_id: int | None = None,
        property_id: int | None = None,
    ) -> SeasonRate:
        rate = SeasonRate(
            room_id=room_id,
            property_id=property_id,
            type=rate_type,
            value=Decimal(value),
            start_date=start,
            end_date=end,
        )
        db_session.add(rate)
        db_session.commit()
        return rate

    return _add


@pytest.fixture
def event_bus():
    """Create a fresh event bus for each test."""
    return EventBus()
