"""Exception handlers producing ``{"error": ..., "code": ...}`` bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.features.auth.exceptions import AuthError

from .security_headers import apply_security_headers

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    code: str | None = None,
    details=None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict = {"error": message}
    if code is not None:
        content["code"] = code
    if details is not None:
        content["details"] = details
    response = JSONResponse(status_code=status_code, content=content, headers=headers)
    return apply_security_headers(response)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for auth errors, HTTP errors, validation errors and crashes."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(f"Auth error {exc.code} on {request.method} {request.url.path}")
        return error_response(exc.status_code, exc.message, code=exc.code.value, headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        # Submitted values (passwords included) are never echoed back
        details = [{key: value for key, value in error.items() if key != "input"} for error in exc.errors()]
        return error_response(400, "Invalid data", details=jsonable_encoder(details))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")
