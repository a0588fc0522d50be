"""User domain models."""

from datetime import datetime
from enum import StrEnum

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher
from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

BCRYPT_ROUNDS = 12


class UserRole(StrEnum):
    """User roles for RBAC.

    OWNER: The creator who owns the channels and productions.
           Full access, including owner-only automation endpoints.

    COLLABORATOR: Helps with production work. Can read shared resources
                  but cannot use owner-only automation endpoints.

    AUTOMATION: Account that automation workflows act as (service user).
    """

    OWNER = "owner"
    COLLABORATOR = "collaborator"
    AUTOMATION = "automation"


DEFAULT_ROLE = UserRole.OWNER


def normalize_role(role: str | None) -> UserRole:
    """Map a stored or decoded role claim onto a known role.

    Tokens issued before roles existed carry no claim; they are treated as owners.
    """
    if role is None:
        return DEFAULT_ROLE
    try:
        return UserRole(role)
    except ValueError:
        return DEFAULT_ROLE


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store and look them up lower-cased."""
    return email.strip().lower()


pwd_hasher = PasswordHash((BcryptHasher(rounds=BCRYPT_ROUNDS),))


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    # Identity
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Authentication
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Authorization
    role: Mapped[str] = mapped_column(
        Enum(UserRole, native_enum=False, length=50, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=DEFAULT_ROLE.value,
        server_default=DEFAULT_ROLE.value,
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return normalize_email(value)

    @property
    def is_email_verified(self) -> bool:
        return self.email_verified_at is not None

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the stored bcrypt hash.

        A malformed or foreign hash, or input bcrypt refuses (over 72 bytes), counts as a mismatch.
        """
        try:
            return pwd_hasher.verify(plain_password, self.password_hash)
        except (UnknownHashError, ValueError):
            return False

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password with bcrypt (cost 12); the salt is embedded in the result."""
        return pwd_hasher.hash(password)

    def has_role(self, role: UserRole) -> bool:
        return normalize_role(self.role) == role
