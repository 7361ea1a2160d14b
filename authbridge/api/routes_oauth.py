"""
OAuth 2.0 / Social Login Routes.

Endpoints:
- GET       /auth/oauth/providers - List configured providers
- GET       /auth/oauth/{provider}/authorize - Redirect to the provider consent screen
- GET|POST  /auth/oauth/{provider}/callback - Finish the flow, redirect to the frontend
- GET       /auth/oauth/{provider}/health - Per-provider liveness

Business logic delegated to OAuthService.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from authbridge.api.dependencies import OAuthServiceDep
from authbridge.api.rate_limit import RATE_LIMITS, limiter
from authbridge.core.config import settings
from authbridge.core.exceptions import ValidationError
from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import CallbackParameters, ProviderOut, ProvidersOut
from authbridge.services.oauth import OAuthService
from authbridge.services.oauth.providers import callback_parameters_from_mapping
from authbridge.services.oauth.service import validate_frontend_redirect

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth/oauth", tags=["oauth"])


@router.get("/providers", response_model=ProvidersOut)
async def list_oauth_providers(service: OAuthServiceDep) -> dict:
    """List providers that have credentials configured."""
    providers = [
        ProviderOut(
            name=provider.name,
            display_name=provider.display_name,
            supports_pkce=provider.supports_pkce,
            authorize_url=f"/auth/oauth/{provider.name}/authorize",
        )
        for provider in service.registry
    ]
    return {"providers": providers}


@router.get("/{provider}/authorize")
@limiter.limit(RATE_LIMITS["oauth_authorize"])
async def oauth_authorize(
    request: Request,
    provider: str,
    service: OAuthServiceDep,
    redirect_uri: str | None = Query(None, description="Frontend URL to return to after sign-in"),
):
    """
    Initiate OAuth login flow.

    Example:
        GET /auth/oauth/github/authorize?redirect_uri=https://app.example.com/auth/done
    """
    service.get_provider(provider)
    try:
        frontend_redirect = validate_frontend_redirect(redirect_uri, settings.OAUTH_ALLOWED_REDIRECT_ORIGINS)
    except ValidationError as exc:
        return PlainTextResponse(exc.message, status_code=400)

    extra_params = {k: v for k, v in request.query_params.items() if k != "redirect_uri"}
    auth_url = service.begin_authorization(provider, frontend_redirect, extra_params)
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/{provider}/callback")
@limiter.limit(RATE_LIMITS["oauth_callback"])
async def oauth_callback(request: Request, provider: str, service: OAuthServiceDep) -> RedirectResponse:
    """Handle the provider redirect (query, or fragment for OIDC providers)."""
    oauth_provider = service.get_provider(provider)
    params = oauth_provider.parse_callback_parameters(str(request.url))
    return await _complete(service, provider, params)


@router.post("/{provider}/callback")
@limiter.limit(RATE_LIMITS["oauth_callback"])
async def oauth_callback_form_post(request: Request, provider: str, service: OAuthServiceDep) -> RedirectResponse:
    """Handle ``response_mode=form_post`` callbacks (Apple)."""
    oauth_provider = service.get_provider(provider)
    form = await request.form()
    params = callback_parameters_from_mapping(form)
    extra_claims = None
    if oauth_provider.provider_id is OAuthProviderID.APPLE:
        extra_claims = _apple_first_sign_in(form.get("user"))
    return await _complete(service, provider, params, extra_claims)


@router.get("/{provider}/health")
async def provider_health(provider: str, service: OAuthServiceDep) -> dict[str, str]:
    oauth_provider = service.get_provider(provider)
    return {"status": "healthy", "provider": oauth_provider.name}


def _apple_first_sign_in(raw: Any) -> dict[str, Any] | None:
    """Apple posts the user's name as JSON, once, on first authorization."""
    if not isinstance(raw, str) or not raw:
        return None
    try:
        user = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed Apple user form field")
        return None
    return {"user": user} if isinstance(user, dict) else None


async def _complete(
    service: OAuthService,
    provider: str,
    params: CallbackParameters,
    extra_claims: dict[str, Any] | None = None,
) -> RedirectResponse:
    try:
        redirect_url = await service.complete_callback(provider, params, extra_claims)
    except Exception:
        logger.exception("Unexpected error during OAuth callback for %s", provider)
        redirect_url = service.error_redirect("server_error", "An unexpected error occurred")
    return RedirectResponse(url=redirect_url, status_code=302)
