from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DDL, DateTime, Index, event
from sqlmodel import Field, SQLModel


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Bookings in these states occupy the room
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.APPROVED.value)

NO_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_room"


class Booking(SQLModel, table=True):
    """Reservation of a room for the half-open interval [starts_at, ends_at)."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_room_time", "room_id", "starts_at", "ends_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    room_id: UUID = Field(foreign_key="rooms.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    # Timestamps are naive UTC
    starts_at: datetime = Field(sa_type=DateTime(), nullable=False, index=True)
    ends_at: datetime = Field(sa_type=DateTime(), nullable=False)
    status: str = Field(
        default=BookingStatus.PENDING.value, max_length=20, index=True
    )
    note: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_type=DateTime(), nullable=False
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_type=DateTime(), nullable=False
    )

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


# PostgreSQL enforces the no-overlap rule itself; the check in the scheduler
# only rejects early. Other dialects rely on the scheduler's locking.
event.listen(
    Booking.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE bookings ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (room_id WITH =, tsrange(starts_at, ends_at) WITH &&) "
        "WHERE (status IN ('pending', 'approved'))"
    ).execute_if(dialect="postgresql"),
)
