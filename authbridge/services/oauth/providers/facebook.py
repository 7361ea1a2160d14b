"""Facebook Login (Graph API v22.0)."""
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider

GRAPH_FIELDS = "id,email,name,first_name,last_name,picture"


class FacebookPictureData(BaseModel):
    url: str | None = None


class FacebookPicture(BaseModel):
    data: FacebookPictureData | None = None


class FacebookUserPayload(BaseModel):
    id: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    picture: FacebookPicture | None = None


class FacebookOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.FACEBOOK
    display_name = "Facebook"
    payload_model = FacebookUserPayload
    scope_separator = ","

    @property
    def authorization_url(self) -> str:
        return "https://www.facebook.com/v22.0/dialog/oauth"

    @property
    def token_url(self) -> str:
        return "https://graph.facebook.com/v22.0/oauth/access_token"

    @property
    def user_info_url(self) -> str:
        return "https://graph.facebook.com/v22.0/me"

    @property
    def default_scopes(self) -> list[str]:
        return ["email", "public_profile"]

    def user_info_request_params(self, access_token: str) -> dict[str, str]:
        return {"fields": GRAPH_FIELDS}

    def normalize(self, data: FacebookUserPayload) -> OAuthUser:
        full_name = " ".join(part for part in (data.first_name, data.last_name) if part)
        picture = data.picture.data.url if data.picture and data.picture.data else None
        return self._user(
            data.id,
            data.email or f"{data.id}@facebook.com",
            data.name or full_name or data.id,
            picture,
        )
