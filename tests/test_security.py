"""Tests for session token signing and verification."""
import time

import jwt
import pytest

from authbridge.core.config import settings
from authbridge.core.security import (
    TokenExpiredError,
    TokenValidationError,
    create_session_token,
    decode_jwt,
    decode_session_token,
    sign_jwt,
    verify_jwt,
)

SECRET = "unit-test-secret-at-least-32-bytes-long"


class TestSignVerify:
    def test_roundtrip_returns_payload(self):
        token = sign_jwt({"sub": "u-1", "role": "member"}, SECRET)
        assert verify_jwt(token, SECRET) == {"sub": "u-1", "role": "member"}

    def test_compact_form_with_hs256_header(self):
        token = sign_jwt({"sub": "u-1"}, SECRET)
        assert token.count(".") == 2
        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_wrong_secret_rejected(self):
        token = sign_jwt({"sub": "u-1"}, SECRET)
        assert verify_jwt(token, "a-different-secret-also-32-bytes-long") is None

    def test_tampered_payload_rejected(self):
        token = sign_jwt({"sub": "u-1"}, SECRET)
        other = sign_jwt({"sub": "u-2"}, SECRET)
        header, _, signature = token.split(".")
        forged = ".".join([header, other.split(".")[1], signature])
        assert verify_jwt(forged, SECRET) is None

    def test_expired_rejected(self):
        token = sign_jwt({"sub": "u-1", "exp": int(time.time()) - 10}, SECRET)
        assert verify_jwt(token, SECRET) is None
        with pytest.raises(TokenExpiredError):
            decode_jwt(token, SECRET)

    def test_malformed_rejected(self):
        assert verify_jwt("not-a-token", SECRET) is None
        with pytest.raises(TokenValidationError):
            decode_jwt("a.b.c", SECRET)

    @pytest.mark.parametrize(
        "claims",
        [
            {"sub": "u-1", "aud": "frontend"},
            {"sub": 123},
            {"sub": "u-1", "iat": 3600},
            {"sub": "u-1", "nbf": 3600},
            {"sub": "u-1", "iss": "elsewhere", "jti": 7},
        ],
    )
    def test_registered_claims_pass_through(self, claims):
        now = int(time.time())
        payload = {
            **claims,
            **{k: now + v for k, v in claims.items() if k in ("iat", "nbf")},
            "exp": now + 600,
        }
        assert verify_jwt(sign_jwt(payload, SECRET), SECRET) == payload

    def test_none_algorithm_rejected(self):
        unsigned = jwt.encode({"sub": "u-1"}, None, algorithm="none")
        assert verify_jwt(unsigned, SECRET) is None


class TestSessionTokens:
    def test_session_token_claims(self):
        token, expires_in = create_session_token("user-uuid")
        payload = decode_session_token(token)

        assert payload["sub"] == "user-uuid"
        assert expires_in == settings.SESSION_TTL_SECONDS
        assert payload["exp"] - payload["iat"] == expires_in

    def test_custom_ttl(self):
        token, expires_in = create_session_token("user-uuid", ttl_seconds=60)
        assert expires_in == 60
        payload = decode_session_token(token)
        assert payload["exp"] - payload["iat"] == 60

    def test_session_token_requires_subject(self):
        token = sign_jwt({"exp": int(time.time()) + 60}, settings.SESSION_JWT_SECRET)
        with pytest.raises(TokenValidationError):
            decode_session_token(token)
