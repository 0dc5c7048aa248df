from .booking import (
    BookingCreate,
    BookingListItem,
    BookingRead,
    UrgeResult,
)
from .pagination import PaginatedResponse
from .room import RoomCreate, RoomRead, RoomUpdate
from .user import (
    PasswordUpdate,
    RefreshTokenRequest,
    TokenPair,
    UserBase,
    UserCreate,
    UserLogin,
    UserRead,
    UserUpdate,
)

__all__ = [
    "BookingCreate",
    "BookingListItem",
    "BookingRead",
    "PaginatedResponse",
    "PasswordUpdate",
    "RefreshTokenRequest",
    "RoomCreate",
    "RoomRead",
    "RoomUpdate",
    "TokenPair",
    "UrgeResult",
    "UserBase",
    "UserCreate",
    "UserLogin",
    "UserRead",
    "UserUpdate",
]
