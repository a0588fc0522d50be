"""Shared-secret authentication for automation (webhook) callers.

Automation workflows act as one designated service user without holding user
credentials. Routes that accept them use :func:`service_or_user_auth`.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.user.models import UserRole
from src.features.user.repository import UserRepository
from src.shared.rate_limit.limiter import get_client_ip

from .dependencies import get_auth_user
from .exceptions import ForbiddenException, NotAuthenticatedException, ServiceUserMisconfiguredException
from .jwt_utils import AuthTokenPayload

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = "x-cronostudio-webhook-secret"


def has_valid_service_secret(request: Request) -> bool:
    """Compare the secret header with the configured secret in constant time.

    Both sides are hashed first so the comparison time leaks neither content nor length.
    """
    expected = settings.webhook_secret
    provided = request.headers.get(WEBHOOK_SECRET_HEADER)
    if not expected or not provided:
        return False
    return hmac.compare_digest(
        hashlib.sha256(provided.encode("utf-8")).digest(),
        hashlib.sha256(expected.encode("utf-8")).digest(),
    )


def log_service_auth_attempt(request: Request, status_code: int) -> None:
    request_id = getattr(request.state, "request_id", None) or "-"
    message = (
        f"service_auth.attempt request_id={request_id} ip={get_client_ip(request)} "
        f"path={request.url.path} status={status_code}"
    )
    if status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)


def require_service_secret(request: Request, has_auth_user: bool) -> bool:
    """Decide whether the request came through the service secret.

    Returns ``True`` when the secret matches and ``False`` when it does not but
    the caller already holds a user session (normal auth applies).

    Raises:
        NotAuthenticatedException: If neither the secret nor a user session is present

    """
    if has_valid_service_secret(request):
        log_service_auth_attempt(request, 200)
        return True
    if has_auth_user:
        return False
    log_service_auth_attempt(request, 401)
    raise NotAuthenticatedException()


async def resolve_service_user_id(users: UserRepository) -> UUID | None:
    """Configured service user id, else the id of the configured service user email."""
    if settings.service_user_id:
        try:
            return UUID(settings.service_user_id)
        except ValueError:
            logger.error("service_user.resolve.invalid_id")
            return None

    if settings.service_user_email:
        user = await users.find_by_email(settings.service_user_email)
        if user is not None:
            return user.id
        logger.error("service_user.resolve.not_found")

    return None


@dataclass(frozen=True)
class ServiceAuthContext:
    """Who a service-or-user route acts for."""

    user_id: UUID
    via: Literal["user", "service"]
    auth_user: AuthTokenPayload | None = None


def service_or_user_auth(owner_only: bool):
    """Dependency factory for routes open to users and to trusted automation.

    With ``owner_only`` a logged-in collaborator is refused unless the request
    also carries the service secret.
    """

    async def guard(request: Request, session: AsyncSession = Depends(get_db_session)) -> ServiceAuthContext:
        auth_user = get_auth_user(request)
        via_service = require_service_secret(request, has_auth_user=auth_user is not None)

        if owner_only and auth_user is not None and auth_user.role != UserRole.OWNER and not via_service:
            log_service_auth_attempt(request, 403)
            raise ForbiddenException()

        if via_service:
            service_user_id = await resolve_service_user_id(UserRepository(session))
            if service_user_id is None:
                logger.error(f"service_auth.resolve_user_failed path={request.url.path}")
                raise ServiceUserMisconfiguredException()
            return ServiceAuthContext(user_id=service_user_id, via="service", auth_user=auth_user)

        if auth_user is None:
            raise NotAuthenticatedException()
        return ServiceAuthContext(user_id=auth_user.user_id, via="user", auth_user=auth_user)

    return guard


require_service_or_owner = service_or_user_auth(owner_only=True)
require_service_or_user = service_or_user_auth(owner_only=False)
