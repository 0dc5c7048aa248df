"""
Booking scheduling and lifecycle.

A booking starts ``pending`` and moves along ``ALLOWED_TRANSITIONS``;
``rejected`` and ``cancelled`` are terminal. Every operation either commits
its full effect or rolls the session back and raises a ``DomainError``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from roombook.core.config import settings
from roombook.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    DomainError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from roombook.models import Booking, BookingStatus, Room, User
from roombook.models.booking import NO_OVERLAP_CONSTRAINT
from roombook.schemas import BookingListItem, BookingRead, RoomRead, UserRead
from roombook.schemas.booking import to_naive_utc
from roombook.services.availability import (
    booked_room_ids,
    find_conflicting_booking,
    lock_room,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {
            BookingStatus.APPROVED.value,
            BookingStatus.REJECTED.value,
            BookingStatus.CANCELLED.value,
        }
    ),
    BookingStatus.APPROVED.value: frozenset({BookingStatus.CANCELLED.value}),
}

ROOM_TAKEN_MESSAGE = "Room already booked for that interval"


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", "") if diag is not None else ""
    return constraint_name == NO_OVERLAP_CONSTRAINT or NO_OVERLAP_CONSTRAINT in str(orig)


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # 23505 is PostgreSQL's unique_violation
    if getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


@contextmanager
def _atomic(session: Session) -> Iterator[None]:
    """Commit on success; on any failure roll back and raise a domain error."""
    try:
        yield
        session.commit()
    except DomainError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        if _is_overlap_violation(exc):
            raise ConflictError(ROOM_TAKEN_MESSAGE) from exc
        logger.error(f"Integrity error during booking operation: {exc}")
        if _is_unique_violation(exc):
            raise ConflictError("Booking conflicts with an existing record") from exc
        raise DependencyError("Data store rejected the change") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Database error during booking operation: {exc}")
        raise DependencyError("Data store is unavailable") from exc


def propose_booking(
    session: Session,
    *,
    room_id: UUID,
    requester_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
    note: Optional[str] = None,
) -> Booking:
    """Create a ``pending`` booking unless the interval collides with an active one."""
    starts_at = to_naive_utc(starts_at)
    ends_at = to_naive_utc(ends_at)
    if starts_at >= ends_at:
        raise ValidationError(
            "Booking start must be before its end",
            details={"starts_at": starts_at.isoformat(), "ends_at": ends_at.isoformat()},
        )

    with _atomic(session):
        room = lock_room(session, room_id)
        if room is None or not room.is_active:
            raise NotFoundError("Meeting room not found", details={"room_id": str(room_id)})
        if session.get(User, requester_id) is None:
            raise NotFoundError("User not found", details={"user_id": str(requester_id)})

        conflict = find_conflicting_booking(
            session, room_id=room_id, starts_at=starts_at, ends_at=ends_at
        )
        if conflict is not None:
            raise ConflictError(
                ROOM_TAKEN_MESSAGE,
                details={
                    "booking_id": str(conflict.id),
                    "starts_at": conflict.starts_at.isoformat(),
                    "ends_at": conflict.ends_at.isoformat(),
                },
            )

        booking = Booking(
            room_id=room_id,
            user_id=requester_id,
            starts_at=starts_at,
            ends_at=ends_at,
            note=note,
        )
        session.add(booking)

    session.refresh(booking)
    logger.info(
        f"Booking {booking.id} proposed for room {room_id} "
        f"[{starts_at.isoformat()}, {ends_at.isoformat()}) by {requester_id}"
    )
    return booking


def _load_for_update(session: Session, booking_id: UUID) -> Booking:
    booking = session.exec(
        select(Booking).where(Booking.id == booking_id).with_for_update()
    ).one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found", details={"booking_id": str(booking_id)})
    return booking


def _apply(booking: Booking, target: BookingStatus) -> None:
    allowed = ALLOWED_TRANSITIONS.get(booking.status, frozenset())
    if target.value not in allowed:
        raise PreconditionError(
            f"Cannot move a {booking.status} booking to {target.value}",
            details={"booking_id": str(booking.id), "status": booking.status},
        )
    booking.status = target.value
    booking.touch()


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can change booking approval state")


def _admin_transition(
    session: Session, booking_id: UUID, actor: User, target: BookingStatus
) -> Booking:
    _require_admin(actor)
    with _atomic(session):
        booking = _load_for_update(session, booking_id)
        previous = booking.status
        _apply(booking, target)
        session.add(booking)
    session.refresh(booking)
    logger.info(
        f"Booking {booking_id} moved {previous} -> {target.value} by admin {actor.id}"
    )
    return booking


def approve_booking(session: Session, booking_id: UUID, actor: User) -> Booking:
    return _admin_transition(session, booking_id, actor, BookingStatus.APPROVED)


def reject_booking(session: Session, booking_id: UUID, actor: User) -> Booking:
    return _admin_transition(session, booking_id, actor, BookingStatus.REJECTED)


def unbind_booking(session: Session, booking_id: UUID, actor: User) -> Booking:
    """Administrative release of a pending or approved booking."""
    return _admin_transition(session, booking_id, actor, BookingStatus.CANCELLED)


def cancel_booking(session: Session, booking_id: UUID, requester_id: UUID) -> Booking:
    """Withdraw one's own booking while it is still pending."""
    with _atomic(session):
        booking = _load_for_update(session, booking_id)
        if booking.user_id != requester_id:
            raise AuthorizationError(
                "Only the requester can cancel this booking",
                details={"booking_id": str(booking_id)},
            )
        if booking.status != BookingStatus.PENDING.value:
            raise PreconditionError(
                "Only pending bookings can be cancelled",
                details={"booking_id": str(booking_id), "status": booking.status},
            )
        _apply(booking, BookingStatus.CANCELLED)
        session.add(booking)
    session.refresh(booking)
    logger.info(f"Booking {booking_id} cancelled by requester {requester_id}")
    return booking


def find_bookings(
    session: Session,
    *,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
    username: Optional[str] = None,
    room_name: Optional[str] = None,
    room_location: Optional[str] = None,
    starts_from: Optional[datetime] = None,
    starts_to: Optional[datetime] = None,
) -> Tuple[List[BookingListItem], int]:
    """Page through bookings, newest interval last.

    ``starts_from``/``starts_to`` bound ``Booking.starts_at`` as
    ``[starts_from, starts_to)``. Without ``starts_to`` the window spans
    ``BOOKING_FILTER_WINDOW_MINUTES``; ``starts_to`` alone is ignored.
    """
    if page < 1:
        raise ValidationError("Page number must be at least 1", details={"page": page})
    if page_size < 1:
        raise ValidationError(
            "Page size must be at least 1", details={"page_size": page_size}
        )

    conditions = []
    if username:
        conditions.append(User.username.contains(username, autoescape=True))
    if room_name:
        conditions.append(Room.name.contains(room_name, autoescape=True))
    if room_location:
        conditions.append(Room.location.contains(room_location, autoescape=True))
    if starts_from:
        starts_from = to_naive_utc(starts_from)
        if starts_to is None:
            starts_to = starts_from + timedelta(
                minutes=settings.BOOKING_FILTER_WINDOW_MINUTES
            )
        conditions.append(Booking.starts_at >= starts_from)
        conditions.append(Booking.starts_at < to_naive_utc(starts_to))

    try:
        total = session.exec(
            select(func.count())
            .select_from(Booking)
            .join(User, User.id == Booking.user_id)
            .join(Room, Room.id == Booking.room_id)
            .where(*conditions)
        ).one()
        rows = session.exec(
            select(Booking, User, Room)
            .join(User, User.id == Booking.user_id)
            .join(Room, Room.id == Booking.room_id)
            .where(*conditions)
            .order_by(Booking.starts_at, Booking.created_at)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        busy_rooms = booked_room_ids(session, datetime.utcnow())
    except SQLAlchemyError as exc:
        logger.error(f"Database error while listing bookings: {exc}")
        raise DependencyError("Data store is unavailable") from exc

    items = [
        BookingListItem(
            **BookingRead.model_validate(booking).model_dump(),
            requester=UserRead.model_validate(user),
            room=RoomRead.model_validate(room).model_copy(
                update={"is_booked": room.id in busy_rooms}
            ),
        )
        for booking, user, room in rows
    ]
    return items, total
