"""Pydantic schemas for the OAuth flow and the account API.

Sub-modules:
- oauth: canonical user, authorization/callback/token shapes, stored auth data
- accounts: linking results and session API payloads
"""
# OAuth schemas
from .oauth import (
    AuthorizationRequest,
    CallbackParameters,
    OAuthStateData,
    OAuthUser,
    StoredAuthenticationData,
    TokenResponse,
    create_stored_authentication_data,
    is_authentication_expired,
    parse_stored_authentication_data,
)

# Account schemas
from .accounts import (
    AccountOut,
    LinkAccountResult,
    ProviderOut,
    ProvidersOut,
    ProviderTokenIn,
    SessionOut,
    SessionTokenOut,
    SocialLoginResult,
    UnlinkAccountOut,
)

__all__ = [
    "AccountOut",
    "AuthorizationRequest",
    "CallbackParameters",
    "LinkAccountResult",
    "OAuthStateData",
    "OAuthUser",
    "ProviderOut",
    "ProvidersOut",
    "ProviderTokenIn",
    "SessionOut",
    "SessionTokenOut",
    "SocialLoginResult",
    "StoredAuthenticationData",
    "TokenResponse",
    "UnlinkAccountOut",
    "create_stored_authentication_data",
    "is_authentication_expired",
    "parse_stored_authentication_data",
]
