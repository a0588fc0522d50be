"""Per-request context (request id and resolved identity) for logging and audit trails."""

from contextvars import ContextVar
from typing import Any

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
current_identity_ctx: ContextVar[Any] = ContextVar("current_identity", default=None)


def set_request_id(request_id: str) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def set_current_identity(identity: Any) -> None:
    """Remember the authenticated identity for the rest of the request.

    Called by the auth dependencies once a token has been verified.
    """
    current_identity_ctx.set(identity)


def get_current_identity() -> Any:
    return current_identity_ctx.get()


def clear_request_context() -> None:
    request_id_ctx.set(None)
    current_identity_ctx.set(None)
