"""Google OAuth 2.0 / OpenID Connect implementation."""
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider


class GoogleUserPayload(BaseModel):
    """ID token claims or v3 userinfo response."""

    sub: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    picture: str | None = None


class GoogleOAuthProvider(OAuthProvider):
    """Google OAuth 2.0 / OpenID Connect implementation."""

    provider_id = OAuthProviderID.GOOGLE
    display_name = "Google"
    payload_model = GoogleUserPayload
    supports_fragment = True
    supports_pkce = True
    supports_nonce = True
    uses_id_token = True

    @property
    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/v2/auth"

    @property
    def token_url(self) -> str:
        return "https://oauth2.googleapis.com/token"

    @property
    def user_info_url(self) -> str:
        return "https://www.googleapis.com/oauth2/v3/userinfo"

    @property
    def default_scopes(self) -> list[str]:
        return ["openid", "email", "profile"]

    def normalize(self, data: GoogleUserPayload) -> OAuthUser:
        return self._user(data.sub, data.email, data.name, data.picture)
