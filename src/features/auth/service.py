"""Authentication service layer."""

import logging
import secrets
from dataclasses import dataclass
from uuid import UUID

from src.config.settings import settings
from src.database.base import utcnow
from src.features.user.models import DEFAULT_ROLE, User, UserRole
from src.features.user.repository import UserRepository
from src.shared.audit.context import get_request_id
from src.shared.observability.metrics import emit_metric

from .exceptions import (
    AuthError,
    EmailAlreadyExists,
    EmailNotVerifiedException,
    IncorrectPassword,
    InvalidCredentialsException,
    InvalidRefreshTokenException,
    ProfileNoChangesException,
    SessionRepositoryMissingException,
    UserNotFoundException,
)
from .jwt_utils import create_access_token, decode_access_token, generate_refresh_token, hash_token
from .repository import SessionRepository

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class AuthResult:
    """Outcome of a successful register/login/refresh."""

    user: User
    access_token: str
    refresh_token: str
    expires_in: int  # seconds


class AuthService:
    """Orchestrates users, sessions and tokens.

    Every terminal outcome emits an ``auth.*`` metric. Operations that issue
    refresh tokens require a session repository.
    """

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ):
        self.users = users
        self.sessions = sessions
        self.ip_address = ip_address
        self.user_agent = user_agent

    def _require_sessions(self) -> SessionRepository:
        if self.sessions is None:
            raise SessionRepositoryMissingException()
        return self.sessions

    async def _issue_tokens(self, user: User) -> AuthResult:
        """Create a new session and access token for ``user``."""
        sessions = self._require_sessions()
        refresh_token = generate_refresh_token()
        await sessions.create(
            user_id=user.id,
            refresh_token_hash=hash_token(refresh_token),
            expires_at=utcnow() + settings.refresh_token_ttl,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )
        return AuthResult(
            user=user,
            access_token=create_access_token(user),
            refresh_token=refresh_token,
            expires_in=int(settings.access_token_ttl.total_seconds()),
        )

    async def register(self, email: str, name: str, password: str, role: UserRole = DEFAULT_ROLE) -> AuthResult:
        """Register a new user and open a session.

        Raises:
            EmailAlreadyExists: If the email is taken (case-insensitive)

        """
        self._require_sessions()
        user = await self._create_user(email, name, password, role)
        result = await self._issue_tokens(user)
        emit_metric("auth.register.success")
        logger.info(f"User registered: {user.id}")
        return result

    async def register_without_session(
        self, email: str, name: str, password: str, role: UserRole = DEFAULT_ROLE
    ) -> User:
        """Register a new user without issuing tokens (login waits for email verification)."""
        user = await self._create_user(email, name, password, role)
        emit_metric("auth.register.success", "pending_verification")
        logger.info(f"User registered pending verification: {user.id}")
        return user

    async def _create_user(self, email: str, name: str, password: str, role: UserRole) -> User:
        if await self.users.email_exists(email):
            emit_metric("auth.register.failure", "EMAIL_EXISTS")
            raise EmailAlreadyExists()
        return await self.users.create(
            email=email,
            name=name,
            password_hash=User.hash_password(password),
            role=role,
        )

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password.

        Unknown email and wrong password fail identically to avoid account enumeration.

        Raises:
            InvalidCredentialsException: If the user is unknown or the password mismatches
            EmailNotVerifiedException: If verification is required and still pending

        """
        self._require_sessions()
        user = await self.users.find_by_email(email)
        if user is None or not user.verify_password(password):
            emit_metric("auth.login.failure", "INVALID_CREDENTIALS")
            logger.warning(f"Failed login attempt (request {get_request_id() or '-'})")
            raise InvalidCredentialsException()

        if settings.require_email_verification and not user.is_email_verified:
            emit_metric("auth.login.failure", "EMAIL_NOT_VERIFIED")
            raise EmailNotVerifiedException()

        result = await self._issue_tokens(user)
        emit_metric("auth.login.success")
        logger.info(f"User logged in: {user.id}")
        return result

    async def login_with_provider(self, email: str, name: str | None = None) -> AuthResult:
        """Log in a user vouched for by an identity provider, creating the account on first use.

        New accounts get an unusable random password and are considered verified.
        """
        self._require_sessions()
        user = await self.users.find_by_email(email)
        if user is None:
            display_name = (name or "").strip() or email.split("@")[0]
            user = await self.users.create(
                email=email,
                name=display_name[:100],
                password_hash=User.hash_password(secrets.token_hex(32)),
                role=DEFAULT_ROLE,
                email_verified_at=utcnow(),
            )
            logger.info(f"User created via identity provider: {user.id}")
        else:
            await self.users.mark_email_verified(user)

        result = await self._issue_tokens(user)
        emit_metric("auth.google.success")
        return result

    async def refresh(self, raw_refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new token pair (rotate-on-use).

        The consumed session is revoked atomically, so a replayed token fails.

        Raises:
            InvalidRefreshTokenException: If no valid session matches the token
            UserNotFoundException: If the session's user no longer exists

        """
        sessions = self._require_sessions()
        user_id = await sessions.consume_valid_by_token_hash(hash_token(raw_refresh_token))
        if user_id is None:
            emit_metric("auth.refresh.failure", "INVALID_REFRESH_TOKEN")
            raise InvalidRefreshTokenException()

        user = await self.users.find_by_id(user_id)
        if user is None:
            emit_metric("auth.refresh.failure", "USER_NOT_FOUND")
            raise UserNotFoundException()

        result = await self._issue_tokens(user)
        emit_metric("auth.refresh.success")
        return result

    async def logout(self, raw_refresh_token: str | None) -> None:
        """Revoke the session behind ``raw_refresh_token``; unknown or revoked tokens are a no-op."""
        sessions = self._require_sessions()
        if raw_refresh_token:
            await sessions.revoke_by_token_hash(hash_token(raw_refresh_token))
        emit_metric("auth.logout.success")

    async def get_profile(self, user_id: UUID) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundException()
        return user

    async def update_profile(self, user_id: UUID, name: str | None = None, email: str | None = None) -> User:
        """Update name and/or email.

        Raises:
            UserNotFoundException: If the user does not exist
            ProfileNoChangesException: If no field was supplied or nothing differs
            EmailAlreadyExists: If the new email belongs to another account

        """
        user = await self.get_profile(user_id)

        new_name = name if name is not None and name != user.name else None
        new_email = email.strip().lower() if email is not None else None
        if new_email == user.email:
            new_email = None

        if new_name is None and new_email is None:
            raise ProfileNoChangesException()

        if new_email is not None and await self.users.email_exists(new_email):
            raise EmailAlreadyExists()

        return await self.users.update(user, name=new_name, email=new_email)

    async def change_password(self, user_id: UUID, current_password: str, new_password: str) -> None:
        """Replace the password after checking the current one.

        Raises:
            UserNotFoundException: If the user does not exist
            IncorrectPassword: If ``current_password`` does not match

        """
        user = await self.get_profile(user_id)
        if not user.verify_password(current_password):
            emit_metric("auth.password_change.failure", "INVALID_PASSWORD")
            raise IncorrectPassword()

        await self.users.update_password(user, User.hash_password(new_password))
        emit_metric("auth.password_change.success")
        logger.info(f"Password changed for user: {user.id}")

    async def delete_account(self, user_id: UUID) -> None:
        """Delete the user; its sessions are removed first so none outlive it."""
        sessions = self._require_sessions()
        user = await self.get_profile(user_id)
        await sessions.delete_by_user_id(user.id)
        await self.users.delete(user)
        emit_metric("auth.account_delete.success")
        logger.info(f"Account deleted: {user_id}")

    @staticmethod
    def extract_user_id_from_header(authorization: str | None) -> UUID | None:
        """Return the user id from a ``Bearer <token>`` header, or ``None`` if it is unusable."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None
        try:
            return decode_access_token(authorization[len(BEARER_PREFIX) :].strip()).user_id
        except AuthError:
            return None
