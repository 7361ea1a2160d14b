"""Provider registry: one adapter class per ``OAuthProviderID``."""
import logging

from authbridge.core.exceptions import UnsupportedProviderError
from authbridge.models.identity_models import OAuthProviderID

from .providers import (
    AppleOAuthProvider,
    DiscordOAuthProvider,
    FacebookOAuthProvider,
    GitHubOAuthProvider,
    GoogleOAuthProvider,
    KakaoOAuthProvider,
    LinkedInOAuthProvider,
    MicrosoftOAuthProvider,
    NaverOAuthProvider,
    OAuthProvider,
    XOAuthProvider,
)

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[OAuthProviderID, type[OAuthProvider]] = {
    OAuthProviderID.GOOGLE: GoogleOAuthProvider,
    OAuthProviderID.APPLE: AppleOAuthProvider,
    OAuthProviderID.MICROSOFT: MicrosoftOAuthProvider,
    OAuthProviderID.FACEBOOK: FacebookOAuthProvider,
    OAuthProviderID.GITHUB: GitHubOAuthProvider,
    OAuthProviderID.X: XOAuthProvider,
    OAuthProviderID.LINKEDIN: LinkedInOAuthProvider,
    OAuthProviderID.DISCORD: DiscordOAuthProvider,
    OAuthProviderID.KAKAO: KakaoOAuthProvider,
    OAuthProviderID.NAVER: NaverOAuthProvider,
}


def parse_provider_id(value: str) -> OAuthProviderID:
    """Resolve a URL path segment to a provider tag.

    Raises:
        UnsupportedProviderError: unknown tag
    """
    try:
        return OAuthProviderID(value.lower())
    except ValueError as exc:
        raise UnsupportedProviderError(value) from exc


class ProviderRegistry:
    """Configured provider adapters, keyed by tag."""

    def __init__(self) -> None:
        self._providers: dict[OAuthProviderID, OAuthProvider] = {}

    def register(self, provider: OAuthProvider) -> None:
        self._providers[provider.provider_id] = provider
        logger.debug("Registered OAuth provider: %s", provider.name)

    def get(self, provider: str | OAuthProviderID) -> OAuthProvider:
        """
        Get a configured adapter.

        Raises:
            UnsupportedProviderError: unknown or unconfigured provider
        """
        provider_id = provider if isinstance(provider, OAuthProviderID) else parse_provider_id(provider)
        if provider_id not in self._providers:
            raise UnsupportedProviderError(provider_id.value)
        return self._providers[provider_id]

    def __contains__(self, provider: object) -> bool:
        if not isinstance(provider, str):
            return False
        try:
            self.get(provider)
        except UnsupportedProviderError:
            return False
        return True

    def __iter__(self):
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def names(self) -> list[str]:
        return [provider_id.value for provider_id in self._providers]
