from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .security import Role, decode_token

if TYPE_CHECKING:
    from ..app import AppState

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Owner:
    """Caller identity as decoded from the bearer token."""

    id: int
    role: Role = "USER"

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


def get_app_state(request: Request) -> "AppState":
    return request.app.state.container


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async for session in get_app_state(request).database.session():
        yield session


async def get_current_owner(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Owner:
    # The identity is trusted as decoded; no user-store lookup happens here.
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    jwt_settings = get_app_state(request).settings.jwt()
    try:
        payload = decode_token(credentials.credentials, settings=jwt_settings)
    except ValueError as exc:
        logger.warning(f"[auth] Rejected bearer token: {exc}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")

    return Owner(id=int(payload["sub"]), role=payload["role"])
