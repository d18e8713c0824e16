from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal, TypedDict

from jose import JWTError, jwt

from .config import JwtSettings, get_settings

Role = Literal["USER", "ADMIN"]


class TokenPayload(TypedDict):
    sub: str
    type: Literal["access"]
    role: Role
    exp: int


def create_access_token(
    subject: str,
    role: Role = "USER",
    expires_delta: timedelta | None = None,
    settings: JwtSettings | None = None,
) -> str:
    """Issue an access token. Only tests and operator scripts mint tokens here."""
    settings = settings or get_settings().jwt()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_expires_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode: dict[str, Any] = {"sub": subject, "type": "access", "role": role, "exp": int(expire.timestamp())}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str, settings: JwtSettings | None = None) -> TokenPayload:
    settings = settings or get_settings().jwt()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc

    if payload.get("type") != "access":
        raise ValueError("Invalid token type")

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise ValueError("Invalid token payload")

    exp = payload.get("exp")
    if exp is None:
        raise ValueError("Invalid token expiry")

    role = payload.get("role", "USER")
    if role not in ("USER", "ADMIN"):
        raise ValueError("Invalid token role")

    return TokenPayload(sub=str(subject), type="access", role=role, exp=int(exp))
