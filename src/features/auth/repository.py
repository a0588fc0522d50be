"""Session Store: persistence for refresh-token sessions."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow

from .models import AuthSession


def _valid_session_criteria(token_hash: str, now: datetime):
    return (
        AuthSession.refresh_token_hash == token_hash,
        AuthSession.revoked_at.is_(None),
        AuthSession.expires_at > now,
    )


class SessionRepository:
    """Async data access for :class:`AuthSession`.

    The store is the only source of truth for refresh-token validity.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: UUID,
        refresh_token_hash: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthSession:
        record = AuthSession(
            user_id=user_id,
            refresh_token_hash=refresh_token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def find_valid_by_token_hash(self, token_hash: str) -> AuthSession | None:
        stmt = select(AuthSession).where(*_valid_session_criteria(token_hash, utcnow())).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def consume_valid_by_token_hash(self, token_hash: str) -> UUID | None:
        """Revoke the session iff it is currently valid and return its user id.

        A single conditional UPDATE, so two concurrent refreshes with the same
        token cannot both succeed: the loser matches no row and gets ``None``.
        """
        now = utcnow()
        stmt = (
            update(AuthSession)
            .where(*_valid_session_criteria(token_hash, now))
            .values(revoked_at=now)
            .returning(AuthSession.user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_by_token_hash(self, token_hash: str) -> bool:
        """Revoke a live session; revoking an unknown or already revoked token is a no-op."""
        stmt = (
            update(AuthSession)
            .where(AuthSession.refresh_token_hash == token_hash, AuthSession.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        stmt = (
            update(AuthSession)
            .where(AuthSession.user_id == user_id, AuthSession.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_by_user_id(self, user_id: UUID) -> None:
        await self.session.execute(
            delete(AuthSession).where(AuthSession.user_id == user_id).execution_options(synchronize_session=False)
        )
