"""CORS configuration for the browser dashboard and automation callers."""

import logging
from typing import Self
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEVELOPMENT_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]
ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["content-type", "authorization", "x-request-id", "x-cronostudio-webhook-secret"]


class CORSConfigurationError(Exception):
    """Raised when CORS configuration is invalid or insecure."""

    pass


def normalize_origin(origin: str) -> str:
    """Strip whitespace and trailing slashes and validate the origin URL.

    Raises:
        CORSConfigurationError: If origin is empty or not an absolute URL.

    """
    origin = origin.strip()
    if not origin:
        raise CORSConfigurationError("Origin cannot be empty")
    if origin == "*":
        return origin

    parsed = urlparse(origin)
    if not parsed.scheme or not parsed.netloc:
        raise CORSConfigurationError(f"Invalid origin URL: {origin}")
    return origin.rstrip("/")


def parse_origins(value: str | list[str] | None) -> list[str]:
    """Parse a comma-separated string (or list) of origins."""
    if value is None:
        return []
    items = value if isinstance(value, list) else value.split(",")
    return [normalize_origin(item) for item in items if item.strip()]


class CORSConfiguration:
    """Validated CORS settings ready for Starlette's CORSMiddleware."""

    def __init__(
        self,
        allow_origins: list[str],
        allow_credentials: bool = True,
        max_age: int = 86400,
        environment: str = "development",
    ):
        self.allow_origins = allow_origins
        self.allow_credentials = allow_credentials
        self.max_age = max_age
        self.environment = environment.lower()
        self.allow_methods = list(ALLOWED_METHODS)
        self.allow_headers = list(ALLOWED_HEADERS)
        self._validate_security_rules()

    def _validate_security_rules(self) -> None:
        """Reject configurations that would expose credentials to arbitrary origins.

        Raises:
            CORSConfigurationError: If security rules are violated.

        """
        has_wildcard = "*" in self.allow_origins
        if self.allow_credentials and has_wildcard:
            raise CORSConfigurationError("Cannot enable credentials with wildcard origins (*)")
        if has_wildcard and self.environment != "development":
            raise CORSConfigurationError(f"Wildcard origins (*) are not allowed in {self.environment} environment")
        if self.environment == "production" and not self.allow_origins:
            raise CORSConfigurationError("Production environment requires at least one allowed origin")

    @classmethod
    def from_environment(
        cls,
        environment: str,
        allow_origins: str | list[str] | None,
        allow_credentials: bool = True,
        max_age: int = 86400,
    ) -> Self:
        """Build the configuration, defaulting to localhost origins in development."""
        origins = parse_origins(allow_origins)
        if not origins and environment == "development":
            origins = list(DEVELOPMENT_ORIGINS)
        return cls(origins, allow_credentials=allow_credentials, max_age=max_age, environment=environment)

    def get_middleware_config(self) -> dict:
        """Keyword arguments for CORSMiddleware."""
        return {
            "allow_origins": self.allow_origins,
            "allow_credentials": self.allow_credentials,
            "allow_methods": self.allow_methods,
            "allow_headers": self.allow_headers,
            "max_age": self.max_age,
        }

    def log_configuration(self) -> None:
        logger.info(
            f"CORS configured for {self.environment}: {len(self.allow_origins)} origin(s), "
            f"credentials={self.allow_credentials}, max_age={self.max_age}s"
        )
