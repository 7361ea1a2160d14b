"""
Session token routes.

- POST /auth/token   Trade a provider access token for a session token
- GET  /auth/session Re-verify a session token and describe its user
"""
import logging

from fastapi import APIRouter, Request

from authbridge.api.dependencies import AccountLinkerDep, OAuthServiceDep, SessionClaimsDep
from authbridge.api.rate_limit import RATE_LIMITS, limiter
from authbridge.core.exceptions import AccountNotLinkedError, AuthenticationError
from authbridge.core.security import create_session_token
from authbridge.models.schemas import AccountOut, ProviderTokenIn, SessionOut, SessionTokenOut
from authbridge.services.oauth import OAuthProviderError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["session"])


@router.post("/token", response_model=SessionTokenOut)
@limiter.limit(RATE_LIMITS["session_exchange"])
async def exchange_provider_token(
    request: Request,
    body: ProviderTokenIn,
    service: OAuthServiceDep,
    linker: AccountLinkerDep,
) -> SessionTokenOut:
    """
    Issue a session token for the user linked to a provider identity.

    The provider access token is checked against the provider's user-info
    endpoint; the caller's claims about who they are are never trusted.
    """
    service.get_provider(body.provider)
    try:
        identity = await service.resolve_access_token(body.provider, body.access_token)
    except OAuthProviderError as exc:
        logger.info("Provider token rejected | provider=%s error=%s", body.provider, exc.error_code)
        raise AuthenticationError("Provider access token was rejected", code="AUT302") from exc

    user_uuid = linker.find_user_uuid(identity.provider, identity.id)
    if user_uuid is None:
        raise AccountNotLinkedError()

    token, expires_in = create_session_token(user_uuid)
    logger.info("Session issued via token exchange | provider=%s uuid=%s", identity.provider, user_uuid)
    return SessionTokenOut(token=token, token_type="Bearer", expires_in=expires_in)


@router.get("/session", response_model=SessionOut)
async def get_session(claims: SessionClaimsDep, linker: AccountLinkerDep) -> SessionOut:
    user_uuid = str(claims["sub"])
    if linker.store.find_user(user_uuid) is None:
        raise AuthenticationError("Session user no longer exists", code="AUT304")
    accounts = [AccountOut.model_validate(account) for account in linker.list_accounts(user_uuid)]
    return SessionOut(uuid=user_uuid, expires_at=int(claims.get("exp", 0)) * 1000, accounts=accounts)
