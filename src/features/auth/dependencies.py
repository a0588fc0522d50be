"""Authentication dependencies for FastAPI."""

import logging
from dataclasses import dataclass
from enum import StrEnum

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.user.models import User, UserRole
from src.features.user.repository import UserRepository
from src.shared.audit.context import set_current_identity
from src.shared.rate_limit.limiter import get_client_ip

from .cookies import get_access_cookie
from .exceptions import (
    ForbiddenException,
    InvalidTokenException,
    NotAuthenticatedException,
    TokenExpiredException,
    UserNotFoundException,
)
from .jwt_utils import AuthTokenPayload, decode_access_token
from .repository import SessionRepository
from .service import BEARER_PREFIX, AuthService

logger = logging.getLogger(__name__)


class UnauthenticatedReason(StrEnum):
    MISSING = "missing"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class Unauthenticated:
    """Outcome of a request that carries no usable access token.

    Distinct from an exception: being logged out is a normal result here,
    while storage or programming errors still propagate.
    """

    reason: UnauthenticatedReason


def extract_access_token(request: Request) -> str | None:
    """Bearer header first, then the httpOnly access-token cookie."""
    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX) :].strip()
        if token:
            return token
    return get_access_cookie(request)


def authenticate_request(request: Request) -> AuthTokenPayload | Unauthenticated:
    """Resolve the caller's identity once per request.

    The verified payload is cached on ``request.state.user`` so later guards
    do not verify the token again.
    """
    cached = getattr(request.state, "user", None)
    if isinstance(cached, AuthTokenPayload):
        return cached

    token = extract_access_token(request)
    if token is None:
        return Unauthenticated(UnauthenticatedReason.MISSING)

    try:
        payload = decode_access_token(token)
    except TokenExpiredException:
        return Unauthenticated(UnauthenticatedReason.EXPIRED)
    except InvalidTokenException:
        return Unauthenticated(UnauthenticatedReason.INVALID)

    request.state.user = payload
    set_current_identity(payload)
    return payload


def get_auth_user(request: Request) -> AuthTokenPayload | None:
    """Identity if the request is authenticated, otherwise ``None``."""
    outcome = authenticate_request(request)
    return outcome if isinstance(outcome, AuthTokenPayload) else None


async def get_current_user(request: Request) -> AuthTokenPayload:
    """Require a valid access token.

    Raises:
        NotAuthenticatedException: If no token was sent
        TokenExpiredException: If the token has expired
        InvalidTokenException: If the token failed verification

    """
    outcome = authenticate_request(request)
    if isinstance(outcome, AuthTokenPayload):
        return outcome

    if outcome.reason is UnauthenticatedReason.EXPIRED:
        raise TokenExpiredException()
    if outcome.reason is UnauthenticatedReason.INVALID:
        raise InvalidTokenException()
    raise NotAuthenticatedException()


async def get_optional_user(request: Request) -> AuthTokenPayload | None:
    """Get the current identity if a valid token is provided, otherwise ``None``.

    Useful for endpoints that work with or without authentication.
    """
    return get_auth_user(request)


async def get_current_user_record(
    identity: AuthTokenPayload = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Load the database row behind the current identity."""
    user = await UserRepository(session).find_by_id(identity.user_id)
    if user is None:
        raise UserNotFoundException()
    return user


def require_role(*required_roles: UserRole):
    """Dependency factory to require specific roles.

    Usage:
        # For single role
        Depends(require_role(UserRole.OWNER))

        # For multiple roles (OR logic - user needs ANY of these)
        Depends(require_role(UserRole.OWNER, UserRole.COLLABORATOR))
    """

    async def role_checker(identity: AuthTokenPayload = Depends(get_current_user)) -> AuthTokenPayload:
        if identity.role not in required_roles:
            logger.warning(f"Role {identity.role} denied; requires {', '.join(required_roles)}")
            raise ForbiddenException()
        return identity

    return role_checker


async def get_auth_service(request: Request, session: AsyncSession = Depends(get_db_session)) -> AuthService:
    """AuthService wired to the request's database session and client details."""
    return AuthService(
        users=UserRepository(session),
        sessions=SessionRepository(session),
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
