"""User Store: persistence for user records."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow

from .models import DEFAULT_ROLE, User, UserRole, normalize_email


class UserRepository:
    """Async data access for :class:`User`.

    Lookups by email are case-insensitive because emails are lower-cased on the way in.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, user_id: UUID) -> User | None:
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == normalize_email(email))
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: UserRole = DEFAULT_ROLE,
        email_verified_at: datetime | None = None,
    ) -> User:
        user = User(
            email=email,
            name=name,
            password_hash=password_hash,
            role=role.value,
            email_verified_at=email_verified_at,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def update(self, user: User, name: str | None = None, email: str | None = None) -> User:
        """Apply the given profile fields; ``None`` leaves a field untouched."""
        if name is not None:
            user.name = name
        if email is not None:
            user.email = email
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def update_password(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        await self.session.flush()

    async def mark_email_verified(self, user: User) -> None:
        if user.email_verified_at is None:
            user.email_verified_at = utcnow()
            await self.session.flush()

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.flush()
