"""Authentication router (registration, sessions, profile and account recovery)."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.user.models import User
from src.features.user.schemas import UserResponse, UserSummary
from src.shared.email.email_service import EmailService, get_email_service
from src.shared.rate_limit.limiter import LOGIN_RATE_LIMIT, limiter

from . import google
from .cookies import clear_auth_cookies, get_refresh_cookie, set_auth_cookies
from .dependencies import get_auth_service, get_current_user, get_current_user_record
from .exceptions import GoogleAuthNotConfiguredException, InvalidGoogleTokenException, InvalidRefreshTokenException
from .jwt_utils import AuthTokenPayload
from .recovery import AccountRecoveryService
from .schemas import (
    AuthResponse,
    EmailRequest,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    PasswordResetRequest,
    PasswordResetRequestResponse,
    ProfileUpdateRequest,
    RefreshTokenRequest,
    RegisterPendingResponse,
    RegisterRequest,
    TokenRequest,
    UserEnvelope,
)
from .service import AuthResult, AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

NEUTRAL_EMAIL_MESSAGE = "If the email exists, a link will be sent"


def get_recovery_service(
    session: AsyncSession = Depends(get_db_session),
    email_service: EmailService = Depends(get_email_service),
) -> AccountRecoveryService:
    return AccountRecoveryService(session, email_service)


def _auth_response(response: Response, result: AuthResult) -> AuthResponse:
    set_auth_cookies(response, result.access_token, result.refresh_token)
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
    )


@router.post(
    "/register",
    response_model=AuthResponse | RegisterPendingResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(LOGIN_RATE_LIMIT)
async def register(
    data: RegisterRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    recovery: AccountRecoveryService = Depends(get_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Register a new user.

    - **email**: Unique email (case-insensitive)
    - **name**: Display name (2-100 characters)
    - **password**: 8-100 characters, with an uppercase letter and a digit

    When email verification is required no session is opened; a verification
    email is sent instead.
    """
    if settings.require_email_verification:
        user = await auth_service.register_without_session(data.email, data.name, data.password)
        sent = await recovery.send_verification(user)
        await session.commit()
        return RegisterPendingResponse(
            user=UserResponse.model_validate(user),
            message="Check your email to verify your account",
            verification_sent=sent,
        )

    result = await auth_service.register(data.email, data.name, data.password)
    await session.commit()
    return _auth_response(response, result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Login and get tokens (also set as ``access_token``/``refresh_token`` cookies)."""
    result = await auth_service.login(data.email, data.password)
    await session.commit()
    return _auth_response(response, result)


@router.post("/refresh", response_model=AuthResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def refresh_token(
    request: Request,
    response: Response,
    data: RefreshTokenRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Rotate the refresh token (from the JSON body or the refresh cookie).

    The presented token is consumed; replaying it fails with ``INVALID_REFRESH_TOKEN``.
    """
    raw_token = (data.refresh_token if data else None) or get_refresh_cookie(request)
    if not raw_token:
        raise InvalidRefreshTokenException()

    result = await auth_service.refresh(raw_token)
    await session.commit()
    return _auth_response(response, result)


@router.post("/logout", response_model=MessageResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def logout(
    request: Request,
    response: Response,
    data: RefreshTokenRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Revoke the refresh token and clear both cookies. Always succeeds."""
    raw_token = (data.refresh_token if data else None) or get_refresh_cookie(request)
    await auth_service.logout(raw_token)
    await session.commit()
    clear_auth_cookies(response)
    return MessageResponse(message="Session closed")


@router.get("/me")
async def me(user: User = Depends(get_current_user_record)):
    """Get the caller's identity."""
    return {"user": UserSummary.model_validate(user)}


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    identity: AuthTokenPayload = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get the caller's profile."""
    user = await auth_service.get_profile(identity.user_id)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.patch("/profile", response_model=UserEnvelope)
async def update_profile(
    data: ProfileUpdateRequest,
    identity: AuthTokenPayload = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Update name and/or email.

    - **name**: New display name (optional)
    - **email**: New email (optional, must not belong to another account)
    """
    user = await auth_service.update_profile(identity.user_id, name=data.name, email=data.email)
    await session.commit()
    logger.info(f"Profile updated: {user.id}")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.delete("/profile", response_model=MessageResponse)
async def delete_account(
    response: Response,
    identity: AuthTokenPayload = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete the caller's account and every session it holds."""
    await auth_service.delete_account(identity.user_id)
    await session.commit()
    clear_auth_cookies(response)
    return MessageResponse(message="Account deleted")


@router.post("/password", response_model=MessageResponse)
async def change_password(
    data: PasswordChangeRequest,
    identity: AuthTokenPayload = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Change password.

    - **current_password**: Current password
    - **new_password**: 8-100 characters, with an uppercase letter and a digit
    """
    await auth_service.change_password(identity.user_id, data.current_password, data.new_password)
    await session.commit()
    return MessageResponse(message="Password updated")


@router.post("/google", response_model=AuthResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def google_login(
    data: GoogleLoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Sign in with a Google ID token (``credential`` from Google Identity Services)."""
    if not settings.google_client_id:
        raise GoogleAuthNotConfiguredException()
    if not data.credential:
        raise InvalidGoogleTokenException("Missing Google credential")

    identity = await google.verify_google_id_token(data.credential, settings.google_client_id)
    if not identity.email_verified:
        # An unverified Google address must not claim or verify a local account
        raise InvalidGoogleTokenException("Google email not verified")
    result = await auth_service.login_with_provider(identity.email, identity.name)
    await session.commit()
    return _auth_response(response, result)


@router.post("/verify-email", response_model=MessageResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def verify_email(
    data: TokenRequest,
    request: Request,
    response: Response,
    recovery: AccountRecoveryService = Depends(get_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Confirm an email address with the token from the verification email."""
    await recovery.verify_email(data.token)
    await session.commit()
    return MessageResponse(message="Email verified")


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def resend_verification(
    data: EmailRequest,
    request: Request,
    response: Response,
    recovery: AccountRecoveryService = Depends(get_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Send a new verification link. The answer never reveals whether the email exists."""
    await recovery.resend_verification(data.email)
    await session.commit()
    return MessageResponse(message=NEUTRAL_EMAIL_MESSAGE)


@router.post("/request-password-reset", response_model=PasswordResetRequestResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def request_password_reset(
    data: EmailRequest,
    request: Request,
    response: Response,
    recovery: AccountRecoveryService = Depends(get_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Email a one-hour password reset link."""
    manual_link = await recovery.request_password_reset(data.email)
    await session.commit()
    return PasswordResetRequestResponse(message=NEUTRAL_EMAIL_MESSAGE, manual_link=manual_link)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def reset_password(
    data: PasswordResetRequest,
    request: Request,
    response: Response,
    recovery: AccountRecoveryService = Depends(get_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a new password with a reset token; every open session is revoked."""
    await recovery.reset_password(data.token, data.password)
    await session.commit()
    return MessageResponse(message="Password updated")
