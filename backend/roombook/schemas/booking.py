from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .room import RoomRead
from .user import UserRead


def to_naive_utc(value: datetime) -> datetime:
    """Bookings are stored as naive UTC; aware inputs are converted."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BookingCreate(BaseModel):
    room_id: UUID
    starts_at: datetime
    ends_at: datetime
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class BookingRead(BaseModel):
    id: UUID
    room_id: UUID
    user_id: UUID
    starts_at: datetime
    ends_at: datetime
    status: str
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingListItem(BookingRead):
    """Booking with its requester and room resolved for listings."""

    requester: UserRead
    room: RoomRead


class UrgeResult(BaseModel):
    status: Literal["sent", "throttled"]
    message: str
