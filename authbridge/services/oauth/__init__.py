"""OAuth 2.0 / OpenID Connect Service Module.

One adapter per identity provider behind a shared interface, plus the pieces
of the redirect flow around them.

Providers:
- Google, Apple, Microsoft (OpenID Connect)
- GitHub, Discord, Facebook, LinkedIn, X, Kakao, Naver (OAuth 2.0)
"""
from .exceptions import (
    CallbackError,
    InvalidPayloadError,
    MissingPKCEError,
    OAuthProviderError,
    OAuthTokenError,
    OAuthUserInfoError,
)
from .factory import create_oauth_service, create_provider_registry, get_provider_registry
from .providers import OAuthProvider
from .registry import ProviderRegistry
from .service import OAuthService
from .state_store import StateStore, get_state_store
from .token_exchange import TokenExchanger

__all__ = [
    # Exceptions
    "CallbackError",
    "InvalidPayloadError",
    "MissingPKCEError",
    "OAuthProviderError",
    "OAuthTokenError",
    "OAuthUserInfoError",
    # Providers
    "OAuthProvider",
    "ProviderRegistry",
    # Flow
    "OAuthService",
    "StateStore",
    "TokenExchanger",
    # Factory
    "create_oauth_service",
    "create_provider_registry",
    "get_provider_registry",
    "get_state_store",
]
