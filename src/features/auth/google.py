"""Google Sign-In ID token verification."""

import logging
from dataclasses import dataclass
from functools import lru_cache

import jwt
from jwt import PyJWKClient
from jwt.exceptions import InvalidTokenError, PyJWKClientError
from starlette.concurrency import run_in_threadpool

from .exceptions import InvalidGoogleTokenException

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class GoogleIdentity:
    email: str
    name: str | None
    email_verified: bool


@lru_cache(maxsize=1)
def _jwks_client() -> PyJWKClient:
    return PyJWKClient(GOOGLE_CERTS_URL, cache_keys=True)


def _verify(credential: str, client_id: str) -> dict:
    signing_key = _jwks_client().get_signing_key_from_jwt(credential)
    payload = jwt.decode(
        credential,
        signing_key.key,
        algorithms=["RS256"],
        audience=client_id,
        options={"require": ["exp", "iss", "aud"]},
    )
    if payload.get("iss") not in GOOGLE_ISSUERS:
        raise InvalidTokenError("Unexpected issuer")
    return payload


async def verify_google_id_token(credential: str, client_id: str) -> GoogleIdentity:
    """Verify an ID token against Google's published keys.

    Raises:
        InvalidGoogleTokenException: If the token does not verify or carries no email

    """
    try:
        payload = await run_in_threadpool(_verify, credential, client_id)
    except (InvalidTokenError, PyJWKClientError) as e:
        logger.warning(f"Google credential rejected: {e}")
        raise InvalidGoogleTokenException() from e

    email = payload.get("email")
    if not email:
        raise InvalidGoogleTokenException("Google account has no email")
    return GoogleIdentity(email=email, name=payload.get("name"), email_verified=bool(payload.get("email_verified")))
