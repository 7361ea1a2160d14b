"""OAuth flow schemas: canonical user, authorization request, callback data."""
from __future__ import annotations

import json
import time

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_SESSION_DURATION_MS = 24 * 60 * 60 * 1000


class OAuthUser(BaseModel):
    """Provider identity normalized to one shape."""

    id: str = Field(..., min_length=1)
    email: str | None = None
    name: str
    picture: str | None = None
    provider: str


class AuthorizationRequest(BaseModel):
    client_id: str
    redirect_uri: str
    response_type: str = "code"
    scopes: list[str] = Field(default_factory=list)
    state: str
    nonce: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    extra_params: dict[str, str] = Field(default_factory=dict)


class CallbackParameters(BaseModel):
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    id_token: str | None = None
    access_token: str | None = None


class TokenResponse(BaseModel):
    """Token endpoint response; never persisted."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., min_length=1)
    token_type: str = "bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None


class OAuthStateData(BaseModel):
    """Value stored under a CSRF state key."""

    redirect_uri: str
    nonce: str | None = None
    code_verifier: str | None = None

    def dumps(self) -> str:
        if self.nonce is None and self.code_verifier is None:
            return self.redirect_uri
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def loads(cls, raw: str) -> OAuthStateData:
        """Parse a stored value; plain strings are a bare redirect URI."""
        if raw.startswith("{"):
            return cls.model_validate_json(raw)
        return cls(redirect_uri=raw)


class StoredAuthenticationData(BaseModel):
    """What a client keeps after sign-in. Advisory only: the server always
    re-verifies ``credential`` instead of trusting ``user``."""

    user: OAuthUser
    credential: str
    expires_at: int  # epoch milliseconds


def create_stored_authentication_data(
    user: OAuthUser,
    credential: str,
    session_duration_ms: int = DEFAULT_SESSION_DURATION_MS,
) -> StoredAuthenticationData:
    return StoredAuthenticationData(
        user=user,
        credential=credential,
        expires_at=int(time.time() * 1000) + session_duration_ms,
    )


def is_authentication_expired(data: StoredAuthenticationData) -> bool:
    return data.expires_at <= int(time.time() * 1000)


def parse_stored_authentication_data(raw: str | None) -> StoredAuthenticationData | None:
    if not raw:
        return None
    try:
        return StoredAuthenticationData.model_validate(json.loads(raw))
    except (ValueError, ValidationError):
        return None
