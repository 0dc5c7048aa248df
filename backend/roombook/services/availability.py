"""Which intervals of a room are taken by pending or approved bookings."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Set
from uuid import UUID

from sqlmodel import Session, select

from roombook.models import ACTIVE_STATUSES, Booking, Room


def overlaps(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open intervals [a, b) and [c, d) intersect iff a < d and c < b."""
    return start_a < end_b and start_b < end_a


def lock_room(session: Session, room_id: UUID) -> Optional[Room]:
    """Load a room with a row lock held until the transaction ends.

    Concurrent proposals for the same room queue up here, so the overlap
    read that follows sees every booking committed before it.
    """
    return session.exec(
        select(Room).where(Room.id == room_id).with_for_update()
    ).one_or_none()


def find_conflicting_booking(
    session: Session,
    *,
    room_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
) -> Optional[Booking]:
    """Return the earliest active booking on the room that intersects the interval."""
    return session.exec(
        select(Booking)
        .where(
            Booking.room_id == room_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.starts_at < ends_at,
            Booking.ends_at > starts_at,
        )
        .order_by(Booking.created_at)
    ).first()


def active_bookings_between(
    session: Session,
    *,
    room_id: UUID,
    window_start: datetime,
    window_end: datetime,
) -> List[Booking]:
    statement = (
        select(Booking)
        .where(Booking.room_id == room_id)
        .where(Booking.status.in_(ACTIVE_STATUSES))
        .where(Booking.starts_at < window_end)
        .where(Booking.ends_at > window_start)
        .order_by(Booking.starts_at)
    )
    return list(session.exec(statement).all())


def booked_room_ids(session: Session, at: datetime) -> Set[UUID]:
    """Rooms with an active booking covering the instant ``at``."""
    statement = select(Booking.room_id).where(
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.starts_at <= at,
        Booking.ends_at > at,
    )
    return set(session.exec(statement).all())
