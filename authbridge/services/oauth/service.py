"""OAuth Service coordinating the authorize and callback legs.

Responsibilities:
- Issue authorization redirects and remember their CSRF state
- Validate callbacks, exchange codes, resolve the provider identity
- Reconcile the identity with a local user and mint a session token
- Turn every failure into a frontend redirect carrying an error code
"""
import json
import logging
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlparse, urlunparse

from authbridge import metrics
from authbridge.core.config import settings
from authbridge.core.exceptions import UserProvisioningError, ValidationError
from authbridge.core.security import create_session_token
from authbridge.models.schemas import CallbackParameters, OAuthStateData, OAuthUser
from authbridge.services.account_service import AccountLinker

from .callback import CallbackValidator
from .exceptions import OAuthProviderError
from .pkce import generate_code_challenge, generate_code_verifier, generate_nonce, generate_state
from .providers import OAuthProvider
from .registry import ProviderRegistry
from .state_store import StateStore
from .token_exchange import TokenExchanger

logger = logging.getLogger(__name__)

# Authorization parameters a frontend may pass through on /authorize
FORWARDED_AUTHORIZE_PARAMS = frozenset(
    {"prompt", "login_hint", "response_mode", "hd", "domain_hint", "auth_type"}
)


def build_redirect_with_params(base_url: str, params: dict[str, str]) -> str:
    """Append query parameters to an existing URL safely."""
    parsed = urlparse(base_url)
    existing_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    existing_params.update(params)
    new_query = urlencode(existing_params)
    return urlunparse(parsed._replace(query=new_query))


def encode_user(user: OAuthUser) -> str:
    """JSON, percent-encoded like ``encodeURIComponent`` (frontends decode it twice)."""
    return quote(json.dumps(user.model_dump(), separators=(",", ":")), safe="!~*'()")


def validate_frontend_redirect(redirect_uri: str | None, allowed_origins: list[str]) -> str:
    """
    Check the frontend URL a user will be sent back to.

    Raises:
        ValidationError: missing, not http(s), or origin not allowed
    """
    if not redirect_uri:
        raise ValidationError("Missing redirect_uri parameter")
    parsed = urlparse(redirect_uri)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid redirect_uri parameter")
    origin = f"{parsed.scheme}://{parsed.netloc}"
    if allowed_origins and origin not in allowed_origins:
        raise ValidationError("redirect_uri origin is not allowed", details={"origin": origin})
    return redirect_uri


class OAuthService:
    """
    OAuth service for managing social login.

    Collaborators are injected so each request can bind its own database
    session while sharing the provider registry and state store.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        state_store: StateStore,
        exchanger: TokenExchanger | None = None,
        linker: AccountLinker | None = None,
        state_ttl_seconds: int | None = None,
    ):
        self.registry = registry
        self.state_store = state_store
        self.validator = CallbackValidator(state_store)
        self.exchanger = exchanger or TokenExchanger()
        self.linker = linker
        self.state_ttl_seconds = state_ttl_seconds or settings.OAUTH_STATE_TTL_SECONDS

    def get_provider(self, name: str) -> OAuthProvider:
        """
        Raises:
            UnsupportedProviderError: If provider is unknown or not configured
        """
        return self.registry.get(name)

    def begin_authorization(
        self,
        provider_name: str,
        frontend_redirect_uri: str,
        extra_params: dict[str, str] | None = None,
    ) -> str:
        """
        Create a state entry and return the provider authorization URL.

        Args:
            provider_name: Provider tag from the URL
            frontend_redirect_uri: Where the user lands after the callback
            extra_params: Pass-through authorization parameters

        Returns:
            Full authorization URL
        """
        provider = self.get_provider(provider_name)
        forwarded = {k: v for k, v in (extra_params or {}).items() if k in FORWARDED_AUTHORIZE_PARAMS}

        state = generate_state()
        nonce = generate_nonce() if provider.supports_nonce else None
        code_verifier = generate_code_verifier() if provider.supports_pkce else None
        code_challenge = generate_code_challenge(code_verifier) if code_verifier else None

        request = provider.authorization_request(state, nonce, code_challenge, forwarded)
        auth_url = provider.build_authorization_url(request)

        state_data = OAuthStateData(
            redirect_uri=frontend_redirect_uri,
            nonce=nonce,
            code_verifier=code_verifier,
        )
        self.state_store.put(state, state_data.dumps(), self.state_ttl_seconds)
        metrics.authorize_redirect(provider.name)
        logger.info("Initiating OAuth login with %s", provider.name)
        return auth_url

    async def complete_callback(
        self,
        provider_name: str,
        params: CallbackParameters,
        extra_claims: dict[str, Any] | None = None,
    ) -> str:
        """
        Finish the flow and return the URL to redirect the browser to.

        Success goes to the stored frontend URL with ``user``, ``access_token``,
        ``id_token`` (when issued), ``uuid`` and ``session_token``. Any OAuth
        failure goes to ``FRONTEND_URL`` with ``error``/``error_description``.
        """
        provider = self.get_provider(provider_name)
        try:
            validated = self.validator.validate(params)
            tokens = await self.exchanger.exchange_code(provider, validated.code, validated.code_verifier)
            user = await self.exchanger.fetch_identity(
                provider,
                tokens,
                nonce=validated.nonce,
                extra_claims=extra_claims,
            )
        except OAuthProviderError as exc:
            logger.warning("OAuth callback failed | provider=%s error=%s detail=%s", provider.name, exc.error_code, exc)
            metrics.callback_result(provider.name, exc.error_code)
            return self.error_redirect(exc.error_code, exc.description)

        result: dict[str, str] = {
            "user": encode_user(user),
            "access_token": tokens.access_token,
        }
        if tokens.id_token:
            result["id_token"] = tokens.id_token

        if self.linker is not None:
            try:
                login = self.linker.handle_social_login(provider.name, user.id)
            except UserProvisioningError:
                metrics.callback_result(provider.name, "server_error")
                return self.error_redirect("server_error", "An unexpected error occurred")
            session_token, _ = create_session_token(login.user_uuid)
            result["uuid"] = login.user_uuid
            result["session_token"] = session_token

        metrics.callback_result(provider.name, "success")
        logger.info("OAuth authentication successful for %s", provider.name)
        return build_redirect_with_params(validated.redirect_uri, result)

    async def resolve_access_token(self, provider_name: str, access_token: str) -> OAuthUser:
        """Identify a user from a provider access token presented by a client."""
        provider = self.get_provider(provider_name)
        return await self.exchanger.resolve_access_token(provider, access_token)

    @staticmethod
    def error_redirect(error: str, description: str) -> str:
        return build_redirect_with_params(
            settings.FRONTEND_URL,
            {"error": error, "error_description": description},
        )
