"""Sign in with Apple.

Apple has no user-info endpoint: identity comes from the ID token only, and
the user's name is sent once, as a ``user`` JSON form field on the very first
authorization. The client secret is a short-lived ES256 JWT signed with the
team's private key.
"""
import logging
import time

import jwt
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import AuthorizationRequest, OAuthUser

from .base import OAuthProvider, email_local_part

logger = logging.getLogger(__name__)

APPLE_AUDIENCE = "https://appleid.apple.com"
CLIENT_SECRET_TTL_SECONDS = 180 * 86_400


class AppleName(BaseModel):
    firstName: str | None = None
    middleName: str | None = None
    lastName: str | None = None


class AppleFirstSignIn(BaseModel):
    name: AppleName | None = None
    email: str | None = None


class AppleUserPayload(BaseModel):
    sub: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    # Merged in from the first-sign-in ``user`` form field when present
    user: AppleFirstSignIn | None = None


class AppleOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.APPLE
    display_name = "Apple"
    payload_model = AppleUserPayload
    supports_fragment = True
    supports_nonce = True
    uses_id_token = True
    overridable_params = frozenset({"response_mode"})

    def __init__(
        self,
        client_id: str,
        client_secret: str | None,
        redirect_uri: str,
        scopes: list[str] | None = None,
        team_id: str | None = None,
        key_id: str | None = None,
        private_key: str | None = None,
    ):
        super().__init__(client_id, client_secret, redirect_uri, scopes)
        self.team_id = team_id
        self.key_id = key_id
        self.private_key = private_key

    @property
    def authorization_url(self) -> str:
        return "https://appleid.apple.com/auth/authorize"

    @property
    def token_url(self) -> str:
        return "https://appleid.apple.com/auth/token"

    @property
    def user_info_url(self) -> None:
        return None

    @property
    def default_scopes(self) -> list[str]:
        return ["name", "email"]

    def default_params(self, request: AuthorizationRequest) -> dict[str, str]:
        return {"response_mode": "query"}

    def get_client_secret(self) -> str | None:
        if not (self.team_id and self.key_id and self.private_key):
            return self.client_secret
        now = int(time.time())
        payload = {
            "iss": self.team_id,
            "iat": now,
            "exp": now + CLIENT_SECRET_TTL_SECONDS,
            "aud": APPLE_AUDIENCE,
            "sub": self.client_id,
        }
        return jwt.encode(payload, self.private_key, algorithm="ES256", headers={"kid": self.key_id})

    def normalize(self, data: AppleUserPayload) -> OAuthUser:
        name = ""
        if data.user and data.user.name:
            parts = [data.user.name.firstName, data.user.name.middleName, data.user.name.lastName]
            name = " ".join(part for part in parts if part)
        return self._user(data.sub, data.email, name or email_local_part(data.email))
