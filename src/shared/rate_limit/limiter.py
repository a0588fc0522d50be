"""Fixed-window rate limiting on top of slowapi.

Counters live in Redis when ``REDIS_URL`` is set and fall back to process
memory otherwise. In-memory counters are per instance, so they only hold for
single-instance deployments; production refuses to start without Redis.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from src.config.settings import settings
from src.shared.middlewares.security_headers import apply_security_headers

logger = logging.getLogger(__name__)

API_RATE_LIMIT = "100 per 15 minutes"
LOGIN_RATE_LIMIT = "5 per 15 minutes"
FILE_UPLOAD_RATE_LIMIT = "10 per 60 minutes"

CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")
UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Client IP from proxy headers, first match wins; ``unknown`` when none is present."""
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # x-forwarded-for may carry a chain: client, proxy1, proxy2
            return value.split(",")[0].strip() or UNKNOWN_CLIENT
    return UNKNOWN_CLIENT


def create_limiter(enabled: bool, storage_uri: str | None = None) -> Limiter:
    """Build a fixed-window limiter keyed by client IP (slowapi scopes counters per route)."""
    return Limiter(
        key_func=get_client_ip,
        default_limits=[API_RATE_LIMIT],
        storage_uri=storage_uri or "memory://",
        strategy="fixed-window",
        headers_enabled=True,
        enabled=enabled,
        key_prefix="cronostudio",
        in_memory_fallback_enabled=bool(storage_uri),
    )


limiter = create_limiter(enabled=settings.rate_limit_enabled, storage_uri=settings.redis_url)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with ``Retry-After`` (seconds left in the window)."""
    logger.warning(f"Rate limit exceeded for {get_client_ip(request)} on {request.url.path}")
    response = JSONResponse(
        status_code=429,
        content={"error": "Too many requests", "message": "Rate limit exceeded. Try again later."},
    )
    # Mirrors slowapi._rate_limit_exceeded_handler; _inject_headers is private, hence the 0.1.x pin
    current_limit = getattr(request.state, "view_rate_limit", None)
    response = request.app.state.limiter._inject_headers(response, current_limit)
    return apply_security_headers(response)
