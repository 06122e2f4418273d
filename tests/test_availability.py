"""Tests for the availability checker and date overrides."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from staydesk.errors import InvalidValue, NotFound
from staydesk.models.availability import DateOverride
from staydesk.models.property import Room
from staydesk.modules.availability.checker import (
    REASON_BLOCKED,
    REASON_BOOKED,
    AvailabilityChecker,
    stays_intersect,
)
from staydesk.modules.availability.overrides import OverrideItem, OverrideManager
from staydesk.store import BookingStore

CHECK_IN = date(2030, 6, 10)
CHECK_OUT = date(2030, 6, 14)


def _checker(db_session: Session) -> AvailabilityChecker:
    return AvailabilityChecker(BookingStore(db_session))


def test_free_room_is_available(db_session: Session, sample_room: Room):
    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is True
    assert result.reason is None
    assert result.to_dict() == {"available": True}


def test_unknown_room_raises_not_found(db_session: Session):
    with pytest.raises(NotFound):
        _checker(db_session).check_availability(4242, CHECK_IN, CHECK_OUT)


def test_confirmed_overlap_conflicts(db_session: Session, sample_room: Room, add_reservation):
    add_reservation(date(2030, 6, 12), date(2030, 6, 16), status="CONFIRMED")

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is False
    assert result.reason == REASON_BOOKED
    assert result.conflicting_dates() == [{"checkIn": "2030-06-12", "checkOut": "2030-06-16"}]


@pytest.mark.parametrize("status", ["PENDING", "WAITING_CONFIRMATION", "CONFIRMED"])
def test_occupying_statuses_block(db_session: Session, sample_room: Room, add_reservation, status):
    add_reservation(CHECK_IN, CHECK_OUT, status=status)

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is False


@pytest.mark.parametrize("status", ["CANCELLED", "REJECTED", "COMPLETED"])
def test_released_statuses_do_not_block(db_session: Session, sample_room: Room, add_reservation, status):
    add_reservation(CHECK_IN, CHECK_OUT, status=status)

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is True


def test_back_to_back_stays_do_not_conflict(db_session: Session, sample_room: Room, add_reservation):
    # Existing stay checks out the day the new one checks in, and vice versa
    add_reservation(date(2030, 6, 6), CHECK_IN)
    add_reservation(CHECK_OUT, date(2030, 6, 18))

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is True


def test_exclude_reservation_ignores_own_booking(db_session: Session, sample_room: Room, add_reservation):
    existing = add_reservation(CHECK_IN, CHECK_OUT, status="PENDING")

    result = _checker(db_session).check_availability(
        sample_room.id, CHECK_IN, CHECK_OUT, exclude_reservation_id=existing.id
    )

    assert result.available is True


def test_blocked_dates_reported_per_date(db_session: Session, sample_room: Room, add_override):
    add_override(date(2030, 6, 13), is_available=False)
    add_override(date(2030, 6, 11), is_available=False)
    add_override(date(2030, 6, 12), is_available=True, price=Decimal("650000"))
    add_override(CHECK_OUT, is_available=False)  # checkout day is not a night of the stay

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.available is False
    assert result.reason == REASON_BLOCKED
    assert result.blocked_dates == [date(2030, 6, 11), date(2030, 6, 13)]
    assert result.conflicting_dates() == ["2030-06-11", "2030-06-13"]


def test_reservation_conflict_reported_before_blocks(
    db_session: Session, sample_room: Room, add_reservation, add_override
):
    add_reservation(CHECK_IN, date(2030, 6, 11), status="CONFIRMED")
    add_override(date(2030, 6, 12), is_available=False)

    result = _checker(db_session).check_availability(sample_room.id, CHECK_IN, CHECK_OUT)

    assert result.reason == REASON_BOOKED
    assert result.blocked_dates == []


def test_checker_reads_current_status(db_session: Session, sample_room: Room, add_reservation):
    reservation = add_reservation(CHECK_IN, CHECK_OUT, status="PENDING")
    checker = _checker(db_session)
    assert checker.check_availability(sample_room.id, CHECK_IN, CHECK_OUT).available is False

    reservation.status = "CANCELLED"
    db_session.commit()

    assert checker.check_availability(sample_room.id, CHECK_IN, CHECK_OUT).available is True


@pytest.mark.parametrize(
    "other, expected",
    [
        ((date(2030, 1, 1), date(2030, 1, 5)), False),
        ((date(2030, 1, 1), date(2030, 1, 6)), False),  # checks out on our check-in
        ((date(2030, 1, 1), date(2030, 1, 7)), True),
        ((date(2030, 1, 7), date(2030, 1, 8)), True),
        ((date(2030, 1, 9), date(2030, 1, 12)), True),
        ((date(2030, 1, 10), date(2030, 1, 12)), False),  # checks in on our check-out
    ],
)
def test_stays_intersect_half_open(other, expected):
    assert stays_intersect(other[0], other[1], date(2030, 1, 6), date(2030, 1, 10)) is expected


# --- overrides ---


def test_set_overrides_upserts_by_room_and_date(session_factory, db_session: Session, sample_room: Room):
    manager = OverrideManager(session_factory=session_factory)
    day = date(2030, 7, 1)

    manager.set_overrides([OverrideItem(sample_room.id, day, is_available=False)])
    manager.set_overrides([OverrideItem(sample_room.id, day, is_available=True,
                                        override_price=Decimal("750000"))])

    rows = db_session.query(DateOverride).filter(DateOverride.room_id == sample_room.id).all()
    assert len(rows) == 1
    assert rows[0].is_available is True
    assert rows[0].override_price == Decimal("750000")


def test_set_overrides_rejects_non_positive_price(session_factory, sample_room: Room):
    manager = OverrideManager(session_factory=session_factory)

    with pytest.raises(InvalidValue):
        manager.set_overrides([OverrideItem(sample_room.id, date(2030, 7, 1), True, Decimal("0"))])


def test_set_overrides_unknown_room_writes_nothing(session_factory, db_session: Session, sample_room: Room):
    manager = OverrideManager(session_factory=session_factory)

    with pytest.raises(NotFound):
        manager.set_overrides([
            OverrideItem(sample_room.id, date(2030, 7, 1), False),
            OverrideItem(999, date(2030, 7, 2), False),
        ])

    assert db_session.query(DateOverride).count() == 0


def test_list_and_delete_overrides(session_factory, sample_room: Room, add_override):
    first = add_override(date(2030, 8, 3), is_available=False)
    add_override(date(2030, 8, 1), is_available=False)
    add_override(date(2030, 8, 10), is_available=False)
    manager = OverrideManager(session_factory=session_factory)

    listed = manager.list_overrides(sample_room.id, date(2030, 8, 1), date(2030, 8, 3))
    assert [o.date for o in listed] == [date(2030, 8, 1), date(2030, 8, 3)]

    manager.delete_override(first.id)
    assert [o.date for o in manager.list_overrides(sample_room.id)] == [
        date(2030, 8, 1), date(2030, 8, 10)
    ]

    with pytest.raises(NotFound):
        manager.delete_override(first.id)
