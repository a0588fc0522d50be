"""Email verification and password reset."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.base import utcnow
from src.features.user.models import User
from src.features.user.repository import UserRepository
from src.shared.email.email_service import EmailService
from src.shared.observability.metrics import emit_metric

from .exceptions import InvalidOneTimeTokenException, OneTimeTokenExpiredException
from .jwt_utils import generate_refresh_token, hash_token
from .models import EmailVerificationToken, OneTimeTokenMixin, PasswordResetToken
from .repository import SessionRepository

logger = logging.getLogger(__name__)

EMAIL_VERIFICATION_TTL = timedelta(hours=24)
PASSWORD_RESET_TTL = timedelta(hours=1)


class AccountRecoveryService:
    """Single-use, hashed tokens delivered by email."""

    def __init__(self, session: AsyncSession, email_service: EmailService):
        self.session = session
        self.users = UserRepository(session)
        self.sessions = SessionRepository(session)
        self.email_service = email_service

    async def _issue(self, model: type[OneTimeTokenMixin], user: User, ttl: timedelta) -> str:
        raw_token = generate_refresh_token()
        self.session.add(model(user_id=user.id, token_hash=hash_token(raw_token), expires_at=utcnow() + ttl))
        await self.session.flush()
        return raw_token

    async def _consume(self, model: type[OneTimeTokenMixin], raw_token: str) -> OneTimeTokenMixin:
        """Mark a token used.

        Raises:
            InvalidOneTimeTokenException: If no such token exists
            OneTimeTokenExpiredException: If it was used already or has expired

        """
        result = await self.session.execute(select(model).where(model.token_hash == hash_token(raw_token)).limit(1))
        record = result.scalar_one_or_none()
        if record is None:
            raise InvalidOneTimeTokenException()
        if not record.is_usable():
            raise OneTimeTokenExpiredException()
        record.used_at = utcnow()
        return record

    # Email verification

    async def send_verification(self, user: User) -> bool:
        raw_token = await self._issue(EmailVerificationToken, user, EMAIL_VERIFICATION_TTL)
        verify_url = f"{settings.app_base_url}/verify-email?token={raw_token}"
        return await self.email_service.send_email_verification(user.email, verify_url)

    async def resend_verification(self, email: str) -> None:
        """Send a fresh link to an unverified account; silent for unknown or verified emails."""
        user = await self.users.find_by_email(email)
        if user is None or user.is_email_verified:
            return
        await self.send_verification(user)

    async def verify_email(self, raw_token: str) -> User:
        record = await self._consume(EmailVerificationToken, raw_token)
        user = await self.users.find_by_id(record.user_id)
        if user is None:
            raise InvalidOneTimeTokenException()
        await self.users.mark_email_verified(user)
        emit_metric("auth.email_verify.success")
        logger.info(f"Email verified for user: {user.id}")
        return user

    # Password reset

    async def request_password_reset(self, email: str) -> str | None:
        """Email a reset link to a known account.

        Returns the link itself only outside production when it could not be
        delivered, so local setups without SMTP can still finish the flow.
        """
        user = await self.users.find_by_email(email)
        if user is None:
            return None

        raw_token = await self._issue(PasswordResetToken, user, PASSWORD_RESET_TTL)
        reset_url = f"{settings.app_base_url}/reset-password?token={raw_token}"
        sent = await self.email_service.send_password_reset(user.email, reset_url)
        emit_metric("auth.password_reset.request")
        if not sent and not settings.is_production:
            return reset_url
        return None

    async def reset_password(self, raw_token: str, new_password: str) -> None:
        """Set a new password and revoke every live session of the account."""
        record = await self._consume(PasswordResetToken, raw_token)
        user = await self.users.find_by_id(record.user_id)
        if user is None:
            raise InvalidOneTimeTokenException()
        await self.users.update_password(user, User.hash_password(new_password))
        revoked = await self.sessions.revoke_all_for_user(user.id)
        emit_metric("auth.password_reset.success")
        logger.info(f"Password reset for user {user.id}; {revoked} session(s) revoked")
