"""Authentication models (sessions and one-time tokens)."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, UUIDPrimaryKeyMixin, as_utc, utcnow


class AuthSession(Base, UUIDPrimaryKeyMixin):
    """Refresh-token session.

    Only the SHA-256 hash of the refresh token is stored. A session is valid
    while ``revoked_at`` is null and ``expires_at`` lies in the future.
    """

    __tablename__ = "auth_sessions"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    refresh_token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Audit trail
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length is 45
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.revoked_at is None and as_utc(self.expires_at) > now


class OneTimeTokenMixin:
    """Hashed single-use token with an expiry, used for email verification and password reset."""

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def is_usable(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.used_at is None and as_utc(self.expires_at) > now


class EmailVerificationToken(Base, UUIDPrimaryKeyMixin, OneTimeTokenMixin):
    __tablename__ = "email_verification_tokens"


class PasswordResetToken(Base, UUIDPrimaryKeyMixin, OneTimeTokenMixin):
    __tablename__ = "password_reset_tokens"
