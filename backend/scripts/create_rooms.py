"""
Seed the default meeting rooms.

Usage:
    python scripts/create_rooms.py
"""

import logging
import sys
from pathlib import Path

# Make the backend directory importable when run as a script
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from sqlmodel import Session, select

from roombook.db import engine, init_db
from roombook.models import Room

logger = logging.getLogger("create_rooms")

DEFAULT_ROOMS = [
    {"name": "Jupiter", "capacity": 10, "location": "1F West", "equipment": "Whiteboard"},
    {"name": "Venus", "capacity": 5, "location": "2F East", "equipment": ""},
    {
        "name": "Uranus",
        "capacity": 30,
        "location": "3F East",
        "equipment": "Whiteboard, TV",
    },
]


def create_rooms() -> int:
    """Create the default rooms that do not exist yet; return how many were added."""
    init_db()
    with Session(engine) as session:
        existing = set(session.exec(select(Room.name)).all())
        created = 0
        for room_data in DEFAULT_ROOMS:
            if room_data["name"] in existing:
                logger.info(f"Room {room_data['name']} already exists, skipping")
                continue
            session.add(Room(**room_data))
            created += 1
            logger.info(f"Room {room_data['name']} created")
        session.commit()
        return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    count = create_rooms()
    logger.info(f"Done, {count} room(s) created")
