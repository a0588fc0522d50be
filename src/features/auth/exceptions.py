"""Authentication exceptions."""

from enum import StrEnum

from fastapi import HTTPException, status


class AuthErrorCode(StrEnum):
    """Machine-readable auth failure codes, returned as ``code`` in error bodies."""

    EMAIL_EXISTS = "EMAIL_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    PROFILE_NO_CHANGES = "PROFILE_NO_CHANGES"
    SESSION_REPO_MISSING = "SESSION_REPO_MISSING"
    INVALID_ONE_TIME_TOKEN = "INVALID_ONE_TIME_TOKEN"
    ONE_TIME_TOKEN_EXPIRED = "ONE_TIME_TOKEN_EXPIRED"


AUTH_ERROR_STATUS = {
    AuthErrorCode.EMAIL_EXISTS: status.HTTP_409_CONFLICT,
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.EMAIL_NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.INVALID_REFRESH_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_PASSWORD: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.PROFILE_NO_CHANGES: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.SESSION_REPO_MISSING: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthErrorCode.INVALID_ONE_TIME_TOKEN: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.ONE_TIME_TOKEN_EXPIRED: status.HTTP_400_BAD_REQUEST,
}


class AuthError(HTTPException):
    """Base authentication exception carrying an :class:`AuthErrorCode`."""

    def __init__(self, code: AuthErrorCode, message: str):
        status_code = AUTH_ERROR_STATUS[code]
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.message = message


class EmailAlreadyExists(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.EMAIL_EXISTS, "Email already registered")


class InvalidCredentialsException(AuthError):
    """Raised for an unknown email and for a wrong password alike."""

    def __init__(self):
        super().__init__(AuthErrorCode.INVALID_CREDENTIALS, "Invalid credentials")


class EmailNotVerifiedException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.EMAIL_NOT_VERIFIED, "Email not verified")


class InvalidRefreshTokenException(AuthError):
    """Raised when a refresh token is unknown, revoked, expired or already rotated."""

    def __init__(self):
        super().__init__(AuthErrorCode.INVALID_REFRESH_TOKEN, "Invalid refresh token")


class UserNotFoundException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.USER_NOT_FOUND, "User not found")


class TokenExpiredException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.TOKEN_EXPIRED, "Token expired")


class InvalidTokenException(AuthError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(AuthErrorCode.INVALID_TOKEN, message)


class IncorrectPassword(AuthError):
    """Raised when the current password given for a password change does not match."""

    def __init__(self):
        super().__init__(AuthErrorCode.INVALID_PASSWORD, "Current password is incorrect")


class ProfileNoChangesException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.PROFILE_NO_CHANGES, "No changes to update")


class SessionRepositoryMissingException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.SESSION_REPO_MISSING, "Session repository not configured")


class InvalidOneTimeTokenException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.INVALID_ONE_TIME_TOKEN, "Invalid token")


class OneTimeTokenExpiredException(AuthError):
    def __init__(self):
        super().__init__(AuthErrorCode.ONE_TIME_TOKEN_EXPIRED, "Token expired or already used")


class NotAuthenticatedException(HTTPException):
    """Raised when a protected route is called without any usable credential."""

    def __init__(self, detail: str = "No autorizado"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(HTTPException):
    """Raised when the caller is authenticated but lacks the required role."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ServiceUserMisconfiguredException(HTTPException):
    """The service secret matched but no service user could be resolved (deployment error)."""

    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Service user misconfigured")


class GoogleAuthNotConfiguredException(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Google login not configured")


class InvalidGoogleTokenException(HTTPException):
    def __init__(self, detail: str = "Invalid Google credential"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
