from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from roombook.api.deps import CurrentAdmin, CurrentUser
from roombook.core.security import get_password_hash, verify_password
from roombook.db import SessionDep
from roombook.models import User
from roombook.schemas import PasswordUpdate, UserRead, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserRead, summary="Current user profile")
def read_current_user(current_user: CurrentUser) -> User:
    return current_user


@router.patch("/me", response_model=UserRead, summary="Update current user profile")
def update_current_user(
    payload: UserUpdate, session: SessionDep, current_user: CurrentUser
) -> User:
    # Update only provided fields (partial update)
    payload_dict = payload.model_dump(exclude_unset=True)

    if "email" in payload_dict and payload_dict["email"] is not None:
        email = payload_dict["email"].lower()
        taken = session.exec(
            select(User).where(User.email == email, User.id != current_user.id)
        ).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email is already registered",
            )
        current_user.email = email
    if "full_name" in payload_dict:
        current_user.full_name = payload_dict["full_name"]
    if "phone" in payload_dict:
        current_user.phone = payload_dict["phone"]

    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user


@router.post("/me/password", response_model=UserRead, summary="Change own password")
def change_password(
    payload: PasswordUpdate, session: SessionDep, current_user: CurrentUser
) -> User:
    if not verify_password(payload.old_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Old password is incorrect",
        )

    current_user.hashed_password = get_password_hash(payload.new_password)
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    logger.info(f"User {current_user.username} changed their password")
    return current_user


@router.post("/{user_id}/freeze", response_model=UserRead, summary="Freeze a user")
def freeze_user(user_id: UUID, session: SessionDep, admin: CurrentAdmin) -> User:
    """Frozen users can neither log in nor use existing tokens."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Administrators cannot freeze themselves",
        )
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    user.is_active = False
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"User {user.username} frozen by {admin.username}")
    return user
