"""Authentication schemas (DTOs)."""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from src.features.user.schemas import UserResponse
from src.shared.validators.password import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    validate_display_name,
    validate_password_strength,
)


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class EmailField(BaseModel):
    """Mixin normalizing ``email`` before EmailStr validation (trimmed, lower-cased, max 255 chars)."""

    email: EmailStr = Field(..., max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value


# Request schemas
class RegisterRequest(EmailField):
    """User registration request.

    Note: Uses email-validator library via Pydantic's EmailStr for RFC 5322 compliant email validation.
    """

    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="Password (8-100 characters, must include an uppercase letter and a digit)",
    )

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_display_name(value)


class LoginRequest(EmailField):
    """Login request; the password is only checked against the stored hash."""

    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RefreshTokenRequest(BaseModel):
    """Refresh token request (the refresh cookie is used when the body omits it)."""

    refresh_token: str | None = None


class ProfileUpdateRequest(BaseModel):
    """Profile update: at least one of name or email."""

    name: str | None = Field(None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    email: EmailStr | None = Field(None, max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        return validate_display_name(value) if value is not None else value

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.name is None and self.email is None:
            raise ValueError("Send at least one field to update")
        return self


class PasswordChangeRequest(BaseModel):
    """Password change request."""

    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value):
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


class GoogleLoginRequest(BaseModel):
    credential: str | None = None


class TokenRequest(BaseModel):
    """Body carrying a one-time token (email verification)."""

    token: str = Field(..., min_length=1, max_length=256)


class EmailRequest(EmailField):
    """Body carrying only an email (resend verification, request password reset)."""


class PasswordResetRequest(TokenRequest):
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value):
        return validate_password_strength(value)


# Response schemas
class AuthResponse(BaseModel):
    """Authenticated session: user plus tokens (also set as httpOnly cookies)."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class RegisterPendingResponse(BaseModel):
    """Registration accepted; login waits for email verification."""

    user: UserResponse
    message: str
    verification_sent: bool


class UserEnvelope(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class PasswordResetRequestResponse(MessageResponse):
    manual_link: str | None = None
