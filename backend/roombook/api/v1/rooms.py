from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlmodel import Session, select

from roombook.api.deps import CurrentAdmin
from roombook.core.exceptions import ConflictError, NotFoundError
from roombook.db import SessionDep
from roombook.models import Booking, Room
from roombook.schemas import BookingRead, RoomCreate, RoomRead, RoomUpdate
from roombook.schemas.booking import to_naive_utc
from roombook.services.availability import active_bookings_between, booked_room_ids

router = APIRouter()


def _get_room_or_404(session: Session, room_id: UUID) -> Room:
    room = session.get(Room, room_id)
    if not room:
        raise NotFoundError("Meeting room not found", details={"room_id": str(room_id)})
    return room


def _ensure_name_free(
    session: Session, name: str, exclude_room_id: Optional[UUID] = None
) -> None:
    statement = select(Room).where(Room.name == name)
    if exclude_room_id:
        statement = statement.where(Room.id != exclude_room_id)
    if session.exec(statement).first():
        raise ConflictError("Meeting room name already exists", details={"name": name})


def _serialize_room(room: Room, busy_rooms: set[UUID]) -> RoomRead:
    return RoomRead.model_validate(room).model_copy(
        update={"is_booked": room.id in busy_rooms}
    )


@router.get("/", response_model=List[RoomRead], summary="List rooms")
def list_rooms(session: SessionDep) -> List[RoomRead]:
    statement = select(Room).where(Room.is_active == True).order_by(Room.name)  # noqa: E712
    busy_rooms = booked_room_ids(session, datetime.utcnow())
    return [_serialize_room(room, busy_rooms) for room in session.exec(statement).all()]


@router.post(
    "/",
    response_model=RoomRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create room",
)
def create_room(payload: RoomCreate, session: SessionDep, admin: CurrentAdmin) -> RoomRead:
    _ensure_name_free(session, payload.name)
    room = Room(**payload.model_dump())
    session.add(room)
    session.commit()
    session.refresh(room)
    return _serialize_room(room, set())


@router.get("/{room_id}", response_model=RoomRead, summary="Get room by id")
def get_room(room_id: UUID, session: SessionDep) -> RoomRead:
    room = _get_room_or_404(session, room_id)
    return _serialize_room(room, booked_room_ids(session, datetime.utcnow()))


@router.get(
    "/{room_id}/availability",
    response_model=List[BookingRead],
    summary="Get room bookings for a date",
)
def get_room_availability(
    room_id: UUID,
    session: SessionDep,
    date: datetime = Query(..., description="Date to check availability (ISO format)"),
) -> List[Booking]:
    """Pending and approved bookings that intersect the given day."""
    _get_room_or_404(session, room_id)
    day_start = to_naive_utc(date).replace(hour=0, minute=0, second=0, microsecond=0)
    return active_bookings_between(
        session,
        room_id=room_id,
        window_start=day_start,
        window_end=day_start + timedelta(days=1),
    )


@router.put("/{room_id}", response_model=RoomRead, summary="Update room")
def update_room(
    room_id: UUID, payload: RoomUpdate, session: SessionDep, admin: CurrentAdmin
) -> RoomRead:
    room = _get_room_or_404(session, room_id)

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] != room.name:
        _ensure_name_free(session, update_data["name"], exclude_room_id=room_id)
    for field, value in update_data.items():
        setattr(room, field, value)
    room.touch()

    session.add(room)
    session.commit()
    session.refresh(room)
    return _serialize_room(room, booked_room_ids(session, datetime.utcnow()))


@router.delete("/{room_id}", status_code=status.HTTP_200_OK, summary="Delete room")
def delete_room(room_id: UUID, session: SessionDep, admin: CurrentAdmin) -> dict[str, str]:
    room = _get_room_or_404(session, room_id)

    # Booking history is kept, so a room that was ever booked is deactivated instead
    has_bookings = session.exec(
        select(Booking.id).where(Booking.room_id == room_id)
    ).first()
    if has_bookings:
        raise ConflictError(
            "Meeting room has bookings; deactivate it instead",
            details={"room_id": str(room_id)},
        )

    session.delete(room)
    session.commit()
    return {"status": "deleted"}
