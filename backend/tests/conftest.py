"""Shared fixtures: in-memory database, cache, mail sender and API client."""

import os

# Settings are read at import time; point them at throwaway resources first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from roombook.core.cache import InMemoryCache, RedisCache, get_cache
from roombook.core.security import create_access_token
from roombook.db import build_engine, get_session, init_db
from roombook.main import app
from roombook.models import Booking, BookingStatus, Room, User
from roombook.services.email import get_email_sender

# Not a valid bcrypt hash; these users never log in with a password
UNUSABLE_PASSWORD = "!"

JAN_1 = datetime(2030, 1, 1)


def at(hour: int, minute: int = 0, day: datetime = JAN_1) -> datetime:
    return day.replace(hour=hour, minute=minute)


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEmailSender:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_with: Exception | None = None

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((to, subject, body))


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _make_user(session: Session, username: str, *, is_admin: bool = False) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        hashed_password=UNUSABLE_PASSWORD,
        is_admin=is_admin,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def requester(session) -> User:
    return _make_user(session, "alice")


@pytest.fixture
def other_user(session) -> User:
    return _make_user(session, "bob")


@pytest.fixture
def admin(session) -> User:
    return _make_user(session, "root", is_admin=True)


@pytest.fixture
def room(session) -> Room:
    room = Room(name="Jupiter", capacity=10, location="1F West", equipment="Whiteboard")
    session.add(room)
    session.commit()
    session.refresh(room)
    return room


@pytest.fixture
def other_room(session) -> Room:
    room = Room(name="Venus", capacity=5, location="2F East")
    session.add(room)
    session.commit()
    session.refresh(room)
    return room


@pytest.fixture
def make_booking(session):
    """Insert a booking row directly, bypassing the scheduler."""

    def _make(
        room: Room,
        user: User,
        starts_at: datetime,
        ends_at: datetime,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> Booking:
        booking = Booking(
            room_id=room.id,
            user_id=user.id,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status.value,
        )
        session.add(booking)
        session.commit()
        session.refresh(booking)
        return booking

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> RedisCache:
    return RedisCache(InMemoryCache(clock=clock))


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def client(session, cache, email_sender):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def now_interval() -> tuple[datetime, datetime]:
    now = datetime.utcnow()
    return now - timedelta(hours=1), now + timedelta(hours=1)
