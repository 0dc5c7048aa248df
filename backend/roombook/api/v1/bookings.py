from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from roombook.api.deps import CacheDep, CurrentUser, EmailSenderDep
from roombook.core.config import settings
from roombook.db import SessionDep
from roombook.models import Booking
from roombook.schemas import (
    BookingCreate,
    BookingListItem,
    BookingRead,
    PaginatedResponse,
    UrgeResult,
)
from roombook.services import bookings as booking_service
from roombook.services.urge import urge_booking

router = APIRouter()


@router.get(
    "/",
    response_model=PaginatedResponse[BookingListItem],
    summary="List bookings",
)
def list_bookings(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, description="Page number, starting at 1"),
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, le=100),
    username: Optional[str] = None,
    room_name: Optional[str] = None,
    room_location: Optional[str] = None,
    starts_from: Optional[datetime] = Query(
        default=None, alias="from", description="Bookings starting at or after"
    ),
    starts_to: Optional[datetime] = Query(
        default=None, alias="to", description="Bookings starting before"
    ),
) -> PaginatedResponse[BookingListItem]:
    items, total = booking_service.find_bookings(
        session,
        page=page,
        page_size=page_size,
        username=username,
        room_name=room_name,
        room_location=room_location,
        starts_from=starts_from,
        starts_to=starts_to,
    )
    return PaginatedResponse[BookingListItem].create(
        items=items, total=total, page=page, page_size=page_size
    )


@router.post(
    "/",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
)
def create_booking(
    payload: BookingCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> Booking:
    return booking_service.propose_booking(
        session,
        room_id=payload.room_id,
        requester_id=current_user.id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        note=payload.note,
    )


@router.post("/{booking_id}/approve", response_model=BookingRead, summary="Approve booking")
def approve_booking(
    booking_id: UUID, session: SessionDep, current_user: CurrentUser
) -> Booking:
    return booking_service.approve_booking(session, booking_id, current_user)


@router.post("/{booking_id}/reject", response_model=BookingRead, summary="Reject booking")
def reject_booking(
    booking_id: UUID, session: SessionDep, current_user: CurrentUser
) -> Booking:
    return booking_service.reject_booking(session, booking_id, current_user)


@router.post(
    "/{booking_id}/unbind",
    response_model=BookingRead,
    summary="Release a booking (administrators)",
)
def unbind_booking(
    booking_id: UUID, session: SessionDep, current_user: CurrentUser
) -> Booking:
    return booking_service.unbind_booking(session, booking_id, current_user)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingRead,
    summary="Cancel own pending booking",
)
def cancel_booking(
    booking_id: UUID, session: SessionDep, current_user: CurrentUser
) -> Booking:
    return booking_service.cancel_booking(session, booking_id, current_user.id)


@router.post(
    "/{booking_id}/urge",
    response_model=UrgeResult,
    summary="Remind the administrator about a pending booking",
)
def urge(
    booking_id: UUID,
    session: SessionDep,
    current_user: CurrentUser,
    cache: CacheDep,
    email_sender: EmailSenderDep,
) -> UrgeResult:
    return urge_booking(session, booking_id, cache=cache, email_sender=email_sender)
