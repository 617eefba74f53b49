"""
Session handling.

Browsers carry the session in a single cookie holding URL-encoded JSON
``{"userId", "email", "name", "role"}``. The cookie is httpOnly with a 7 day
lifetime but is NOT signed or encrypted yet; it is a placeholder until real
session storage lands. API clients can present the same claims as a bearer
JWT instead.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote, unquote
import json
import uuid

import jwt
from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import Response

from retrade.core_settings import get_settings
from retrade.domain.models import User, UserType

settings = get_settings()

BEARER_PREFIX = "Bearer "

class SessionData(BaseModel):
    user_id: uuid.UUID
    email: str
    name: str
    role: UserType

    @property
    def is_logged_in(self) -> bool:
        return bool(self.user_id and self.email and self.role)

    def has_role(self, role: UserType) -> bool:
        return self.is_logged_in and self.role == role

    @classmethod
    def for_user(cls, user: User) -> "SessionData":
        return cls(user_id=user.id, email=user.email, name=user.name, role=user.user_type)

    def to_claims(self) -> dict:
        return {
            "userId": str(self.user_id),
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
        }

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["SessionData"]:
        try:
            return cls(
                user_id=claims["userId"],
                email=claims["email"],
                name=claims["name"],
                role=claims["role"],
            )
        except (KeyError, TypeError, ValidationError):
            return None

def redirect_path_for(role: UserType) -> str:
    return "/seller/" if role == UserType.seller else "/buyer/"

def encode_session(data: SessionData) -> str:
    return quote(json.dumps(data.to_claims()))

def decode_session(raw: Optional[str]) -> Optional[SessionData]:
    if not raw:
        return None
    try:
        claims = json.loads(unquote(raw))
    except ValueError:
        return None
    if not isinstance(claims, dict):
        return None
    return SessionData.from_claims(claims)

def set_session_cookie(response: Response, data: SessionData) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        encode_session(data),
        max_age=settings.SESSION_MAX_AGE_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )

def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")

def create_access_token(data: SessionData) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **data.to_claims(),
        "sub": str(data.user_id),
        "iat": now,
        "exp": now + timedelta(days=settings.SESSION_MAX_AGE_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_access_token(token: str) -> Optional[SessionData]:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.PyJWTError:
        return None
    return SessionData.from_claims(claims)

def read_session(request: Request) -> Optional[SessionData]:
    """Session from the cookie, falling back to a bearer token."""
    session = decode_session(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if session:
        return session
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        return decode_access_token(auth_header[len(BEARER_PREFIX):].strip())
    return None

def session_user_id(request: Request) -> Optional[str]:
    session = read_session(request)
    return str(session.user_id) if session else None
