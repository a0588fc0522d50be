"""Access/refresh token cookies."""

from fastapi import Request, Response

from src.config.settings import parse_duration_to_seconds, settings

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _set_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


def set_access_cookie(response: Response, token: str) -> None:
    _set_cookie(response, ACCESS_COOKIE, token, parse_duration_to_seconds(settings.jwt_expires_in))


def set_refresh_cookie(response: Response, token: str) -> None:
    _set_cookie(response, REFRESH_COOKIE, token, parse_duration_to_seconds(settings.jwt_refresh_expires_in))


def set_auth_cookies(response: Response, access_token: str, refresh_token: str | None) -> None:
    set_access_cookie(response, access_token)
    if refresh_token:
        set_refresh_cookie(response, refresh_token)


def clear_auth_cookies(response: Response) -> None:
    """Expire both cookies immediately (same attributes, empty value, max-age 0)."""
    _set_cookie(response, ACCESS_COOKIE, "", 0)
    _set_cookie(response, REFRESH_COOKIE, "", 0)


def get_access_cookie(request: Request) -> str | None:
    return request.cookies.get(ACCESS_COOKIE) or None


def get_refresh_cookie(request: Request) -> str | None:
    return request.cookies.get(REFRESH_COOKIE) or None
