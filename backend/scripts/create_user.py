#!/usr/bin/env python3
"""Create or update a user, optionally as an administrator."""

import sys
from getpass import getpass
from pathlib import Path

# Make the backend directory importable when run as a script
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from sqlmodel import Session, select

from roombook.core.security import get_password_hash
from roombook.db import engine, init_db
from roombook.models import User


def create_user() -> None:
    print("=" * 60)
    print("Create user")
    print("=" * 60)

    username = input("Username: ").strip()
    email = input("Email: ").strip().lower()
    if not username or not email:
        print("Error: username and email are required")
        return

    full_name = input("Full name (optional): ").strip() or None
    password = getpass("Password: ").strip()
    if not password:
        print("Error: password is required")
        return
    is_admin = input("Administrator? (y/n, default n): ").strip().lower() == "y"

    init_db()
    with Session(engine) as session:
        existing = session.exec(
            select(User).where(User.username == username)
        ).first()

        if existing:
            response = input(f"User {username} exists. Update it? (y/n): ").strip().lower()
            if response != "y":
                print("Cancelled")
                return
            user = existing
            user.email = email
            user.full_name = full_name
            user.hashed_password = get_password_hash(password)
            user.is_admin = is_admin
        else:
            user = User(
                username=username,
                email=email,
                full_name=full_name,
                hashed_password=get_password_hash(password),
                is_admin=is_admin,
            )
        session.add(user)
        session.commit()
        session.refresh(user)

        print(f"\nUser {'updated' if existing else 'created'}")
        print(f"  ID: {user.id}")
        print(f"  Username: {user.username}")
        print(f"  Email: {user.email}")
        print(f"  Administrator: {'yes' if user.is_admin else 'no'}")
        print("=" * 60)


if __name__ == "__main__":
    try:
        create_user()
    except KeyboardInterrupt:
        print("\n\nCancelled by user")
