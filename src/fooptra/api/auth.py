"""Bearer-token authentication for API routes."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Header, HTTPException, Request, status

if TYPE_CHECKING:
    from fooptra.containers import AppContainer

_BEARER_PREFIX = "bearer "


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID:
    """Resolve the signed-in user or reject the request."""
    container: AppContainer = request.app.state.container
    token = bearer_token(authorization)
    user_id = container.identity_provider.current_user_id(token) if token else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
