from dataclasses import dataclass
from typing import Optional

import bcrypt
from fastapi import Request
from fastapi.responses import Response
from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import SESSION_COOKIE_NAME, SESSION_MAX_AGE, SESSION_SECRET
from models import Reservation, User

serializer = URLSafeTimedSerializer(SESSION_SECRET, salt="session")


@dataclass(frozen=True)
class Principal:
    """The caller as carried by the session token."""

    id: int
    is_admin: bool = False


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed hash in the store.
        return False


def issue_session_token(user) -> str:
    return serializer.dumps({"id": user.id, "is_admin": bool(user.is_admin)})


def read_session_token(token: Optional[str]) -> Optional[Principal]:
    """Return the principal for a valid token, None when missing, tampered or expired."""
    if not token:
        return None
    try:
        data = serializer.loads(token, max_age=SESSION_MAX_AGE)
    except BadSignature:
        return None
    user_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    return Principal(id=user_id, is_admin=bool(data.get("is_admin", False)))


def login_user(response: Response, user: User) -> str:
    """Sets a session cookie to log the user in and returns the token."""
    token = issue_session_token(user)
    response.set_cookie(
        key=SESSION_COOKIE_NAME, value=token, httponly=True, max_age=SESSION_MAX_AGE
    )
    return token


def logout_user(response: Response):
    """Clears the session cookie to log the user out."""
    response.delete_cookie(key=SESSION_COOKIE_NAME)


def get_current_user(request: Request) -> Optional[Principal]:
    """Dependency resolving the caller from a bearer token or the session cookie."""
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return read_session_token(credentials.strip())
    return read_session_token(request.cookies.get(SESSION_COOKIE_NAME))


def is_authenticated(user: Optional[Principal]) -> bool:
    return user is not None


def is_admin(user: Optional[Principal]) -> bool:
    return user is not None and user.is_admin


def is_owner(reservation: Reservation, user: Optional[Principal]) -> bool:
    return user is not None and reservation.user_id == user.id
