"""Linked-account management for the signed-in user."""
import logging

from fastapi import APIRouter, Request, Response, status

from authbridge.api.dependencies import AccountLinkerDep, CurrentUserDep, OAuthServiceDep
from authbridge.api.rate_limit import RATE_LIMITS, limiter
from authbridge.core.exceptions import AuthenticationError
from authbridge.models.schemas import AccountOut, LinkAccountResult, ProviderTokenIn, UnlinkAccountOut
from authbridge.services.oauth import OAuthProviderError
from authbridge.services.oauth.registry import parse_provider_id

logger = logging.getLogger(__name__)
router = APIRouter(tags=["accounts"])


@router.get("/accounts", response_model=list[AccountOut])
async def list_accounts(user_uuid: CurrentUserDep, linker: AccountLinkerDep) -> list[AccountOut]:
    return [AccountOut.model_validate(account) for account in linker.list_accounts(user_uuid)]


@router.post("/accounts/link", response_model=LinkAccountResult)
@limiter.limit(RATE_LIMITS["account_link"])
async def link_account(
    request: Request,
    body: ProviderTokenIn,
    user_uuid: CurrentUserDep,
    service: OAuthServiceDep,
    linker: AccountLinkerDep,
) -> LinkAccountResult:
    """Link another provider identity, proven by its access token."""
    service.get_provider(body.provider)
    try:
        identity = await service.resolve_access_token(body.provider, body.access_token)
    except OAuthProviderError as exc:
        raise AuthenticationError("Provider access token was rejected", code="AUT302") from exc
    return linker.link_account(user_uuid, identity.provider, identity.id, log=logger)


@router.delete("/accounts/{provider}/{identifier}", response_model=UnlinkAccountOut)
async def unlink_account(
    provider: str,
    identifier: str,
    user_uuid: CurrentUserDep,
    linker: AccountLinkerDep,
) -> UnlinkAccountOut:
    provider_id = parse_provider_id(provider)
    removed = linker.unlink_account(user_uuid, provider_id.value, identifier, log=logger)
    return UnlinkAccountOut(unlinked=removed)


@router.delete("/users/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(user_uuid: CurrentUserDep, linker: AccountLinkerDep) -> Response:
    """Permanently delete the signed-in user and every linked account."""
    linker.delete_user(user_uuid, log=logger)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
