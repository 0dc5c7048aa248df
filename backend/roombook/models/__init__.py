from .booking import ACTIVE_STATUSES, Booking, BookingStatus
from .room import Room
from .user import User

__all__ = [
    "ACTIVE_STATUSES",
    "Booking",
    "BookingStatus",
    "Room",
    "User",
]
