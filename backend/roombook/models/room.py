from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Room(SQLModel, table=True):
    """Meeting rooms available for booking."""

    __tablename__ = "rooms"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(max_length=255, unique=True, index=True)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: int = Field(default=1, ge=1)
    location: Optional[str] = Field(default=None, max_length=255)
    equipment: Optional[str] = Field(
        default=None, max_length=1000
    )  # comma-separated
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_type=DateTime(), nullable=False
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_type=DateTime(), nullable=False
    )

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
