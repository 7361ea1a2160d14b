"""Naver Login. Naver takes no scope parameter; consent is configured per app."""
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider


class NaverProfile(BaseModel):
    id: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None
    nickname: str | None = None
    profile_image: str | None = None


class NaverUserPayload(BaseModel):
    resultcode: str | None = None
    message: str | None = None
    response: NaverProfile


class NaverOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.NAVER
    display_name = "Naver"
    payload_model = NaverUserPayload
    send_scope = False

    @property
    def authorization_url(self) -> str:
        return "https://nid.naver.com/oauth2.0/authorize"

    @property
    def token_url(self) -> str:
        return "https://nid.naver.com/oauth2.0/token"

    @property
    def user_info_url(self) -> str:
        return "https://openapi.naver.com/v1/nid/me"

    @property
    def default_scopes(self) -> list[str]:
        return []

    def normalize(self, data: NaverUserPayload) -> OAuthUser:
        profile = data.response
        return self._user(
            profile.id,
            profile.email or "",
            profile.name or profile.nickname or "",
            profile.profile_image,
        )
