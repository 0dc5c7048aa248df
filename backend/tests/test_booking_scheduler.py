import threading
from datetime import timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import DateTime
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from conftest import at
from roombook.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from roombook.db import build_engine, init_db
from roombook.models import Booking, BookingStatus, Room, User
from roombook.services.bookings import propose_booking

CONTENDERS = 8


def _propose(session, room, user, start, end, note=None):
    return propose_booking(
        session,
        room_id=room.id,
        requester_id=user.id,
        starts_at=start,
        ends_at=end,
        note=note,
    )


def test_new_booking_is_pending(session, room, requester):
    booking = _propose(session, room, requester, at(9), at(10), note="standup")

    assert booking.status == BookingStatus.PENDING.value
    assert booking.room_id == room.id
    assert booking.user_id == requester.id
    assert booking.note == "standup"


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (at(9, 30), at(10, 30)),
        (at(8, 30), at(9, 30)),
        (at(9, 15), at(9, 45)),
        (at(8), at(11)),
        (at(9), at(10)),
    ],
)
def test_overlapping_interval_is_rejected(session, room, requester, other_user, start, end):
    _propose(session, room, requester, at(9), at(10))

    with pytest.raises(ConflictError):
        _propose(session, room, other_user, start, end)


def test_approved_booking_also_blocks(session, room, requester, other_user, make_booking):
    make_booking(room, requester, at(9), at(10), BookingStatus.APPROVED)

    with pytest.raises(ConflictError) as exc_info:
        _propose(session, room, other_user, at(9, 30), at(10, 30))

    assert "booking_id" in exc_info.value.details


def test_touching_and_disjoint_intervals_are_accepted(session, room, requester, other_user):
    _propose(session, room, requester, at(9), at(10))
    _propose(session, room, other_user, at(10), at(11))
    _propose(session, room, other_user, at(8), at(9))
    _propose(session, room, requester, at(13), at(14))

    assert len(session.exec(select(Booking)).all()) == 4


def test_same_interval_in_another_room_is_accepted(session, room, other_room, requester):
    _propose(session, room, requester, at(9), at(10))
    booking = _propose(session, other_room, requester, at(9), at(10))

    assert booking.room_id == other_room.id


@pytest.mark.parametrize("status", [BookingStatus.REJECTED, BookingStatus.CANCELLED])
def test_terminal_bookings_free_the_interval(
    session, room, requester, other_user, make_booking, status
):
    make_booking(room, requester, at(9), at(10), status)

    booking = _propose(session, room, other_user, at(9), at(10))

    assert booking.status == BookingStatus.PENDING.value


@pytest.mark.parametrize(("start", "end"), [(at(10), at(10)), (at(11), at(10))])
def test_start_must_precede_end(session, room, requester, start, end):
    with pytest.raises(ValidationError):
        _propose(session, room, requester, start, end)

    assert session.exec(select(Booking)).all() == []


def test_unknown_room_is_not_found(session, requester):
    with pytest.raises(NotFoundError):
        propose_booking(
            session,
            room_id=uuid4(),
            requester_id=requester.id,
            starts_at=at(9),
            ends_at=at(10),
        )


def test_inactive_room_cannot_be_booked(session, room, requester):
    room.is_active = False
    session.add(room)
    session.commit()

    with pytest.raises(NotFoundError):
        _propose(session, room, requester, at(9), at(10))


def test_aware_datetimes_are_stored_as_utc(session, room, requester, other_user):
    plus_three = timezone(timedelta(hours=3))
    booking = _propose(
        session,
        room,
        requester,
        at(12).replace(tzinfo=plus_three),
        at(13).replace(tzinfo=plus_three),
    )

    assert booking.starts_at == at(9)
    assert booking.ends_at == at(10)
    with pytest.raises(ConflictError):
        _propose(session, room, other_user, at(9, 30), at(10, 30))


def test_storage_exclusion_violation_becomes_conflict(session, room, requester, monkeypatch):
    def _reject_commit():
        raise IntegrityError(
            "INSERT INTO bookings",
            {},
            Exception(
                'conflicting key value violates exclusion constraint '
                '"bookings_no_overlap_per_room"'
            ),
        )

    monkeypatch.setattr(session, "commit", _reject_commit)

    with pytest.raises(ConflictError):
        _propose(session, room, requester, at(9), at(10))

    monkeypatch.undo()
    assert session.exec(select(Booking)).all() == []


def test_data_store_failure_is_a_dependency_error(session, room, requester, monkeypatch):
    def _locked():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", _locked)

    with pytest.raises(DependencyError):
        _propose(session, room, requester, at(9), at(10))

    monkeypatch.undo()
    assert session.exec(select(Booking)).all() == []


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("UNIQUE constraint failed: bookings.id", ConflictError),
        ("FOREIGN KEY constraint failed", DependencyError),
    ],
)
def test_other_integrity_errors_are_translated(
    session, room, requester, monkeypatch, message, expected
):
    def _reject_commit():
        raise IntegrityError("INSERT INTO bookings", {}, Exception(message))

    monkeypatch.setattr(session, "commit", _reject_commit)

    with pytest.raises(expected):
        _propose(session, room, requester, at(9), at(10))

    monkeypatch.undo()
    assert session.exec(select(Booking)).all() == []


def test_timestamp_columns_are_naive():
    for model in (Booking, Room, User):
        for column in model.__table__.columns:
            if isinstance(column.type, DateTime):
                assert column.type.timezone is False, f"{model.__name__}.{column.name}"


def test_concurrent_proposals_for_one_interval_admit_a_single_booking(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)
    with Session(engine) as setup:
        room = Room(name="Jupiter", capacity=10)
        users = [
            User(username=f"user{i}", email=f"user{i}@example.com", hashed_password="!")
            for i in range(CONTENDERS)
        ]
        setup.add(room)
        setup.add_all(users)
        setup.commit()
        room_id = room.id
        user_ids = [user.id for user in users]

    barrier = threading.Barrier(CONTENDERS)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def _contend(user_id):
        with Session(engine) as session:
            barrier.wait()
            try:
                propose_booking(
                    session,
                    room_id=room_id,
                    requester_id=user_id,
                    starts_at=at(9),
                    ends_at=at(10),
                )
                outcome = "ok"
            except ConflictError:
                outcome = "conflict"
            except Exception as exc:  # recorded so the assertion shows it
                outcome = repr(exc)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_contend, args=(user_id,)) for user_id in user_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    try:
        assert sorted(outcomes) == ["conflict"] * (CONTENDERS - 1) + ["ok"]
        with Session(engine) as check:
            assert len(check.exec(select(Booking)).all()) == 1
    finally:
        engine.dispose()
