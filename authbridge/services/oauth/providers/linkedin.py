"""Sign In with LinkedIn using OpenID Connect."""
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider


class LinkedInUserPayload(BaseModel):
    sub: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None
    given_name: str | None = None
    picture: str | None = None


class LinkedInOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.LINKEDIN
    display_name = "LinkedIn"
    payload_model = LinkedInUserPayload
    supports_fragment = True

    @property
    def authorization_url(self) -> str:
        return "https://www.linkedin.com/oauth/v2/authorization"

    @property
    def token_url(self) -> str:
        return "https://www.linkedin.com/oauth/v2/accessToken"

    @property
    def user_info_url(self) -> str:
        return "https://api.linkedin.com/v2/userinfo"

    @property
    def default_scopes(self) -> list[str]:
        return ["openid", "profile", "email"]

    def normalize(self, data: LinkedInUserPayload) -> OAuthUser:
        # Members may withhold email; that is not an error
        return self._user(data.sub, data.email or None, data.name or data.given_name or data.sub, data.picture)
