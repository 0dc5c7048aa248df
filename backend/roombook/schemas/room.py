from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RoomBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: int = Field(default=1, ge=1)
    location: Optional[str] = Field(default=None, max_length=255)
    equipment: Optional[str] = Field(default=None, max_length=1000)
    is_active: bool = Field(default=True)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = Field(default=None, max_length=255)
    equipment: Optional[str] = Field(default=None, max_length=1000)
    is_active: Optional[bool] = None


class RoomRead(RoomBase):
    id: UUID
    is_booked: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
