"""Access-token verification.

The platform's auth provider issues HS256 JWTs whose ``sub`` is the user's
UUID and whose ``user_metadata.role`` carries the dashboard role.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ldash.config import get_settings
from ldash.exceptions import NotAuthenticated

VALID_ROLES = frozenset({"student", "instructor", "admin"})
DEFAULT_ROLE = "student"


@dataclass(frozen=True)
class AuthUser:
    """The authenticated caller."""

    id: uuid.UUID
    email: str | None = None
    role: str = DEFAULT_ROLE


def decode_access_token(token: str) -> AuthUser:
    """Verify a bearer token and return the session user.

    Raises NotAuthenticated for expired, malformed or wrongly-signed tokens.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
        user_id = uuid.UUID(str(payload["sub"]))
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise NotAuthenticated(f"Invalid access token: {e}") from e

    metadata = payload.get("user_metadata") or {}
    role = metadata.get("role", DEFAULT_ROLE)
    if role not in VALID_ROLES:
        role = DEFAULT_ROLE

    return AuthUser(id=user_id, email=payload.get("email"), role=role)


def create_access_token(
    user_id: uuid.UUID,
    email: str | None = None,
    role: str = DEFAULT_ROLE,
    expires_minutes: int = 60,
) -> str:
    """Issue a token in the provider's format (local development and tests)."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
        "user_metadata": {"role": role},
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
