"""Microsoft identity platform (Entra ID) v2.0 endpoints."""
from typing import Any

from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider, email_local_part


class MicrosoftUserPayload(BaseModel):
    sub: str = Field(..., min_length=1)
    email: str | None = None
    preferred_username: str | None = None
    name: str | None = None
    given_name: str | None = None


class MicrosoftOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.MICROSOFT
    display_name = "Microsoft"
    payload_model = MicrosoftUserPayload
    supports_fragment = True
    supports_pkce = True
    supports_nonce = True
    uses_id_token = True

    def __init__(
        self,
        client_id: str,
        client_secret: str | None,
        redirect_uri: str,
        scopes: list[str] | None = None,
        tenant: str = "common",
    ):
        super().__init__(client_id, client_secret, redirect_uri, scopes)
        self.tenant = tenant or "common"

    @property
    def authorization_url(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant}/oauth2/v2.0/authorize"

    @property
    def token_url(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant}/oauth2/v2.0/token"

    @property
    def user_info_url(self) -> str:
        return "https://graph.microsoft.com/v1.0/me"

    @property
    def default_scopes(self) -> list[str]:
        return ["openid", "email", "profile"]

    def map_user_info_response(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Translate a Graph ``/me`` document into ID token claim names."""
        if "sub" in raw:
            return raw
        return {
            "sub": raw.get("id"),
            "email": raw.get("mail"),
            "preferred_username": raw.get("userPrincipalName"),
            "name": raw.get("displayName"),
            "given_name": raw.get("givenName"),
        }

    def normalize(self, data: MicrosoftUserPayload) -> OAuthUser:
        email = data.email or data.preferred_username or ""
        name = data.name or data.given_name or email_local_part(email)
        return self._user(data.sub, email, name)
