"""Session token signing and verification (HS256 compact JWS)."""
from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

from authbridge.core.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Only the signature and ``exp`` are enforced; other registered claims pass through untouched
DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": True,
    "verify_aud": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class TokenValidationError(Exception):
    """Raised when a token cannot be validated."""


class TokenExpiredError(TokenValidationError):
    """Raised when a token is expired."""


def sign_jwt(payload: dict[str, Any], secret: str) -> str:
    """Sign ``payload`` as ``header.payload.signature`` using HMAC-SHA256."""
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_jwt(token: str, secret: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], options=DECODE_OPTIONS)
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except PyJWTInvalidTokenError as exc:
        raise TokenValidationError("Token is invalid") from exc


def verify_jwt(token: str, secret: str) -> dict[str, Any] | None:
    """Return the payload of a valid token, otherwise ``None``.

    Signature mismatch, a malformed token, or an ``exp`` in the past all yield
    ``None``; a partially validated payload is never returned.
    """
    try:
        return decode_jwt(token, secret)
    except TokenValidationError as exc:
        logger.debug("Session token rejected: %s", exc)
        return None


def create_session_token(user_uuid: str, ttl_seconds: int | None = None) -> tuple[str, int]:
    """Mint a session token for ``user_uuid``; returns ``(token, expires_in)``."""
    expires_in = ttl_seconds or settings.SESSION_TTL_SECONDS
    now = int(time.time())
    payload = {
        "sub": user_uuid,
        "iat": now,
        "exp": now + expires_in,
    }
    return sign_jwt(payload, settings.SESSION_JWT_SECRET), expires_in


def decode_session_token(token: str) -> dict[str, Any]:
    payload = decode_jwt(token, settings.SESSION_JWT_SECRET)
    if not payload.get("sub"):
        raise TokenValidationError("Token has no subject")
    return payload
