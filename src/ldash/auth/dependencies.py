"""FastAPI authentication dependencies."""

from __future__ import annotations

from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ldash.auth.session import AuthUser, decode_access_token
from ldash.exceptions import NotAuthenticated

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> AuthUser:
    """Resolve the bearer token to the session user, or fail with NotAuthenticated."""
    if credentials is None:
        raise NotAuthenticated()
    return decode_access_token(credentials.credentials)
