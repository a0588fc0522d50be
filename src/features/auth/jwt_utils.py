"""JWT utilities for authentication.

Access tokens are stateless HS256 JWTs. Refresh tokens are opaque random
strings; only their SHA-256 digest is ever stored.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from src.config.settings import settings
from src.features.user.models import User, UserRole, normalize_role

from .exceptions import InvalidTokenException, TokenExpiredException

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 32


@dataclass(frozen=True)
class AuthTokenPayload:
    """Decoded view of an access token, attached to authenticated requests."""

    user_id: UUID
    email: str
    role: UserRole
    issued_at: datetime | None = None
    expires_at: datetime | None = None


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for ``user``.

    Args:
        user: User the token identifies
        expires_delta: Optional expiration time delta (defaults to ``JWT_EXPIRES_IN``)

    Returns:
        Encoded JWT token string

    """
    now = datetime.now(UTC)
    expire = now + (expires_delta if expires_delta is not None else settings.access_token_ttl)

    to_encode: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": normalize_role(user.role).value,
        "iat": now,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthTokenPayload:
    """Decode and verify a JWT access token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredException: If the token's expiry has elapsed
        InvalidTokenException: For any other verification failure

    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except ExpiredSignatureError as err:
        raise TokenExpiredException() from err
    except InvalidTokenError as err:
        raise InvalidTokenException() from err

    # Tokens without a type claim predate typed tokens and are accepted as access tokens
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise InvalidTokenException("Invalid token type")

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError as err:
        raise InvalidTokenException("Invalid token payload") from err

    return AuthTokenPayload(
        user_id=user_id,
        email=str(payload.get("email", "")),
        role=normalize_role(payload.get("role")),
        issued_at=_timestamp(payload.get("iat")),
        expires_at=_timestamp(payload.get("exp")),
    )


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), UTC)


def generate_refresh_token() -> str:
    """Return a new opaque refresh token (32 random bytes, hex-encoded)."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest used to store and look up refresh and one-time tokens."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
