"""Factory functions for creating the configured provider registry and OAuth service."""
import logging
from functools import lru_cache

from sqlalchemy.orm import Session

from authbridge.core.config import BaseAppSettings, settings
from authbridge.models.identity_models import OAuthProviderID
from authbridge.services.account_service import AccountLinker
from authbridge.services.identity_store import IdentityStore

from .providers import AppleOAuthProvider, MicrosoftOAuthProvider, OAuthProvider
from .registry import PROVIDER_CLASSES, ProviderRegistry
from .service import OAuthService
from .state_store import get_state_store
from .token_exchange import TokenExchanger

logger = logging.getLogger(__name__)


def callback_url(provider_id: OAuthProviderID, config: BaseAppSettings = settings) -> str:
    return f"{config.BACKEND_URL.rstrip('/')}/auth/oauth/{provider_id.value}/callback"


def _build_provider(provider_id: OAuthProviderID, config: BaseAppSettings) -> OAuthProvider | None:
    client_id, client_secret = config.provider_credentials(provider_id.value)
    if not client_id:
        return None

    redirect_uri = callback_url(provider_id, config)
    if provider_id is OAuthProviderID.APPLE:
        if not (client_secret or config.APPLE_PRIVATE_KEY):
            logger.warning("Apple OAuth not configured (missing client secret or signing key)")
            return None
        return AppleOAuthProvider(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            team_id=config.APPLE_TEAM_ID,
            key_id=config.APPLE_KEY_ID,
            private_key=config.APPLE_PRIVATE_KEY,
        )
    if provider_id is OAuthProviderID.MICROSOFT:
        return MicrosoftOAuthProvider(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            tenant=config.MICROSOFT_TENANT,
        )
    # Kakao treats the client secret as optional; X may run as a public PKCE client
    if not client_secret and provider_id not in (OAuthProviderID.KAKAO, OAuthProviderID.X):
        logger.warning("%s OAuth not configured (missing client secret)", provider_id.value)
        return None
    return PROVIDER_CLASSES[provider_id](
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
    )


def create_provider_registry(config: BaseAppSettings = settings) -> ProviderRegistry:
    """
    Build a registry holding every provider that has credentials configured.

    Args:
        config: Settings to read credentials from

    Returns:
        Populated ProviderRegistry
    """
    registry = ProviderRegistry()
    for provider_id in OAuthProviderID:
        provider = _build_provider(provider_id, config)
        if provider is None:
            logger.debug("%s OAuth provider disabled", provider_id.value)
            continue
        registry.register(provider)
    logger.info("OAuth providers enabled: %s", ", ".join(registry.names) or "none")
    return registry


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    return create_provider_registry()


def create_oauth_service(db: Session | None = None) -> OAuthService:
    """
    Factory function to create a configured OAuth service.

    Args:
        db: Database session; without one, callbacks skip account linking

    Returns:
        OAuthService bound to the shared registry and state store
    """
    linker = AccountLinker(IdentityStore(db)) if db is not None else None
    return OAuthService(
        registry=get_provider_registry(),
        state_store=get_state_store(),
        exchanger=TokenExchanger(),
        linker=linker,
    )
