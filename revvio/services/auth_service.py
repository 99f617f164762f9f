from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from revvio.config import settings
from revvio.errors import AuthenticationError
from revvio.models.user import User
from revvio.schemas.user import TokenData, UserCreate
from revvio.utils.jwt_handler import create_access_token, decode_access_token
from revvio.utils.password_hash import hash_password, verify_password


logger = logging.getLogger(__name__)


class EmailAlreadyRegisteredError(ValueError):
    pass


def register_user(db: Session, user_in: UserCreate) -> User:
    existing = db.query(User).filter(User.email == user_in.email).first()
    if existing:
        raise EmailAlreadyRegisteredError(user_in.email)
    user = User(
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        name=user_in.name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user id=%s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = (
        db.query(User)
        .filter(User.email == email)
        .filter(User.deleted_at.is_(None))
        .first()
    )
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def issue_session_token(user: User) -> str:
    expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return create_access_token({"sub": str(user.id)}, expires_delta)


def resolve_session_user_id(token: str | None) -> int | None:
    """Map a session token to a user id, or None when there is no usable session.

    Never touches the database.
    """
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except AuthenticationError:
        return None
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return TokenData(user_id=int(subject)).user_id
    except ValueError:
        return None


def get_active_user(db: Session, user_id: int) -> User | None:
    return (
        db.query(User)
        .filter(User.id == user_id)
        .filter(User.deleted_at.is_(None))
        .first()
    )
