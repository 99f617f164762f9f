# dependencies.py
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from revvio.config import settings
from revvio.database import get_db
from revvio.errors import AuthenticationError
from revvio.services.auth_service import get_active_user, resolve_session_user_id


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_session_token(request: Request, bearer: str | None = Depends(oauth2_scheme)) -> str | None:
    # Bearer header wins over the browser session cookie.
    return bearer or request.cookies.get(settings.session_cookie_name)


def get_optional_user_id(token: str | None = Depends(get_session_token)) -> int | None:
    return resolve_session_user_id(token)


def get_current_user_id(
    user_id: int | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
) -> int:
    if user_id is None:
        raise AuthenticationError("Not authenticated")
    if get_active_user(db, user_id) is None:
        raise AuthenticationError("User not found")
    return user_id
