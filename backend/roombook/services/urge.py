"""
Reminder mails asking an administrator to review a pending booking.

At most one reminder per booking is sent per ``URGE_COOLDOWN_SECONDS``. Two
requests arriving before the first one sets its marker can both send; the
window is small and a duplicate reminder is harmless, so no lock is taken.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from roombook.core.cache import RedisCache
from roombook.core.config import settings
from roombook.core.exceptions import DependencyError, NotFoundError
from roombook.models import Booking, User
from roombook.schemas import UrgeResult

logger = logging.getLogger(__name__)

THROTTLED_MESSAGE = (
    f"A reminder can only be sent once every "
    f"{settings.URGE_COOLDOWN_SECONDS // 60} minutes, please wait"
)
SENT_MESSAGE = "Reminder sent to the administrator"


class EmailSender(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


def throttle_key(booking_id: UUID) -> str:
    return f"urge_{booking_id}"


def resolve_admin_email(session: Session, cache: RedisCache) -> str:
    """Cached administrator address, looked up from the users table on a miss."""
    email = cache.get(settings.ADMIN_EMAIL_CACHE_KEY)
    if email:
        return str(email)

    try:
        email = session.exec(
            select(User.email)
            .where(User.is_admin == True)  # noqa: E712
            .order_by(User.created_at)
        ).first()
    except SQLAlchemyError as exc:
        raise DependencyError("Data store is unavailable") from exc
    if not email:
        raise NotFoundError("No administrator account is configured")

    cache.set(settings.ADMIN_EMAIL_CACHE_KEY, email)
    return email


def urge_booking(
    session: Session,
    booking_id: UUID,
    *,
    cache: RedisCache,
    email_sender: EmailSender,
) -> UrgeResult:
    try:
        booking = session.get(Booking, booking_id)
    except SQLAlchemyError as exc:
        raise DependencyError("Data store is unavailable") from exc
    if booking is None:
        raise NotFoundError("Booking not found", details={"booking_id": str(booking_id)})

    key = throttle_key(booking_id)
    if cache.get(key):
        logger.info(f"Reminder for booking {booking_id} throttled")
        return UrgeResult(status="throttled", message=THROTTLED_MESSAGE)

    admin_email = resolve_admin_email(session, cache)
    email_sender.send(
        to=admin_email,
        subject="Booking approval reminder",
        body=f"Booking {booking_id} is waiting for approval",
    )
    cache.set(key, 1, ttl=settings.URGE_COOLDOWN_SECONDS)
    logger.info(f"Reminder for booking {booking_id} sent to {admin_email}")
    return UrgeResult(status="sent", message=SENT_MESSAGE)
