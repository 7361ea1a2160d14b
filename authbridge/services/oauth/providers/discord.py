"""Discord OAuth2."""
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from ..exceptions import InvalidPayloadError
from .base import OAuthProvider

DISCORD_CDN = "https://cdn.discordapp.com"


class DiscordUserPayload(BaseModel):
    id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    discriminator: str
    global_name: str | None = None
    avatar: str | None = None
    email: str | None = None


class DiscordOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.DISCORD
    display_name = "Discord"
    payload_model = DiscordUserPayload

    @property
    def authorization_url(self) -> str:
        return "https://discord.com/api/oauth2/authorize"

    @property
    def token_url(self) -> str:
        return "https://discord.com/api/oauth2/token"

    @property
    def user_info_url(self) -> str:
        return "https://discord.com/api/users/@me"

    @property
    def default_scopes(self) -> list[str]:
        return ["identify", "email"]

    def normalize(self, data: DiscordUserPayload) -> OAuthUser:
        if not data.email:
            raise InvalidPayloadError(self.name, "email", "missing")
        picture = f"{DISCORD_CDN}/avatars/{data.id}/{data.avatar}.png" if data.avatar else None
        return self._user(data.id, data.email, data.global_name or data.username, picture)
