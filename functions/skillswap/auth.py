"""
Identity and session guard.

Sessions are Starlette cookie sessions holding nothing but the user id; the
user record itself is re-read from storage on every request.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from skillswap.db import DbClient, UserRecord
from skillswap.dependencies import get_db_client
from skillswap.errors import Conflict, InvalidCredentials, Unauthorized
from skillswap.security import hash_password, verify_password

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def register(
    db: DbClient,
    *,
    username: str,
    password: str,
    email: str,
    full_name: str,
    avatar: Optional[str] = None,
    bio: Optional[str] = None,
) -> UserRecord:
    if db.get_user_by_username(username):
        raise Conflict("Username already exists")
    if db.get_user_by_email(email):
        raise Conflict("Email already exists")
    user = db.create_user(
        username=username,
        password=hash_password(password),
        email=email,
        full_name=full_name,
        avatar=avatar,
        bio=bio,
    )
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


def authenticate(db: DbClient, username: str, password: str) -> UserRecord:
    user = db.get_user_by_username(username)
    if not user or not verify_password(password, user.password):
        logger.info("Failed login for %r", username)
        raise InvalidCredentials()
    return user


def establish_session(request: Request, user: UserRecord) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def current_user(request: Request, db: DbClient) -> Optional[UserRecord]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = db.get_user(user_id)
    if user is None:
        # Stale session for a user that no longer resolves.
        request.session.clear()
    return user


def end_session(request: Request) -> None:
    request.session.clear()


def get_optional_user(
    request: Request, db: DbClient = Depends(get_db_client)
) -> Optional[UserRecord]:
    return current_user(request, db)


def require_user(
    user: Optional[UserRecord] = Depends(get_optional_user),
) -> UserRecord:
    if user is None:
        raise Unauthorized()
    return user
