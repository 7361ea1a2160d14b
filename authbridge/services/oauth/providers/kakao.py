"""Kakao Login."""
from pydantic import BaseModel

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider


class KakaoProfile(BaseModel):
    nickname: str | None = None
    profile_image_url: str | None = None


class KakaoAccount(BaseModel):
    email: str | None = None
    name: str | None = None
    profile: KakaoProfile | None = None


class KakaoProperties(BaseModel):
    nickname: str | None = None
    profile_image: str | None = None


class KakaoUserPayload(BaseModel):
    id: int
    kakao_account: KakaoAccount | None = None
    properties: KakaoProperties | None = None


class KakaoOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.KAKAO
    display_name = "Kakao"
    payload_model = KakaoUserPayload
    scope_separator = ","

    @property
    def authorization_url(self) -> str:
        return "https://kauth.kakao.com/oauth/authorize"

    @property
    def token_url(self) -> str:
        return "https://kauth.kakao.com/oauth/token"

    @property
    def user_info_url(self) -> str:
        return "https://kapi.kakao.com/v2/user/me"

    @property
    def default_scopes(self) -> list[str]:
        return ["profile_nickname", "profile_image", "account_email"]

    def normalize(self, data: KakaoUserPayload) -> OAuthUser:
        user_id = str(data.id)
        account = data.kakao_account or KakaoAccount()
        profile = account.profile or KakaoProfile()
        properties = data.properties or KakaoProperties()
        name = account.name or profile.nickname or properties.nickname or f"KakaoUser{user_id}"
        picture = profile.profile_image_url or properties.profile_image
        return self._user(user_id, account.email or f"{user_id}@kakao.com", name, picture)
