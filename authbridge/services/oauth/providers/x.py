"""X (Twitter) OAuth 2.0 with mandatory PKCE."""
import base64

from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider


class XUserData(BaseModel):
    id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    profile_image_url: str | None = None


class XUserPayload(BaseModel):
    data: XUserData


class XOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.X
    display_name = "X"
    payload_model = XUserPayload
    supports_pkce = True
    requires_pkce = True

    @property
    def authorization_url(self) -> str:
        return "https://twitter.com/i/oauth2/authorize"

    @property
    def token_url(self) -> str:
        return "https://api.twitter.com/2/oauth2/token"

    @property
    def user_info_url(self) -> str:
        return "https://api.twitter.com/2/users/me"

    @property
    def default_scopes(self) -> list[str]:
        return ["users.read", "tweet.read"]

    def token_request_data(self, code: str, code_verifier: str | None = None) -> dict[str, str]:
        data = super().token_request_data(code, code_verifier)
        # Confidential clients authenticate with HTTP Basic instead
        data.pop("client_secret", None)
        return data

    def token_request_headers(self) -> dict[str, str]:
        headers = super().token_request_headers()
        if self.client_secret:
            credentials = f"{self.client_id}:{self.client_secret}".encode()
            headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"
        return headers

    def user_info_request_params(self, access_token: str) -> dict[str, str]:
        return {"user.fields": "profile_image_url"}

    def normalize(self, data: XUserPayload) -> OAuthUser:
        # X never discloses email addresses
        return self._user(data.data.id, None, data.data.name, data.data.profile_image_url)
