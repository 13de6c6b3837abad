"""Caller identity from identity-provider JWTs.

Tokens are issued elsewhere; this service only verifies them and reads the
subject (user id) and role claims.
"""

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from sportbook.core.config import settings


class Role(enum.StrEnum):
    CUSTOMER = "customer"
    OWNER = "owner"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """The already-authenticated user making a request."""

    id: int
    role: Role = Role.CUSTOMER


def create_access_token(subject: str, extra: dict | None = None) -> str:
    """Mint a token the way the identity provider does. Used by dev scripts and tests."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "exp": expire, "type": "access"}
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def caller_from_token(token: str) -> Caller:
    """Build a Caller from an access token. Raises JWTError if the token is unusable."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    try:
        return Caller(id=int(payload["sub"]), role=Role(payload.get("role", Role.CUSTOMER)))
    except (KeyError, ValueError) as exc:
        raise JWTError("Malformed token claims") from exc
