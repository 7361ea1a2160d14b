"""Authorization code exchange and identity retrieval.

Both upstream hops run under a bounded timeout; any non-2xx answer, transport
error or timeout is classified as ``token_exchange_failed`` or
``user_info_failed``. Provider response bodies are logged truncated and never
reach the client.
"""
import logging
from typing import Any

import httpx
import jwt
from pydantic import ValidationError

from authbridge import metrics
from authbridge.core.config import settings
from authbridge.models.schemas import OAuthUser, TokenResponse

from .exceptions import InvalidNonceError, MissingIDTokenError, OAuthTokenError, OAuthUserInfoError
from .providers import OAuthProvider

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 200


def _truncate(text: str, limit: int = MAX_LOGGED_BODY) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def decode_id_token(id_token: str) -> dict[str, Any]:
    """Read ID token claims.

    Only used for tokens returned by the token endpoint over TLS, which OIDC
    Core 3.1.3.7 allows to be trusted without signature validation.
    """
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise OAuthUserInfoError("Malformed ID token") from exc


class TokenExchanger:
    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.OAUTH_HTTP_TIMEOUT_SECONDS

    async def exchange_code(
        self,
        provider: OAuthProvider,
        code: str,
        code_verifier: str | None = None,
    ) -> TokenResponse:
        """
        Exchange authorization code for tokens.

        Raises:
            OAuthTokenError: If token exchange fails
        """
        data = provider.token_request_data(code, code_verifier)
        logger.info(
            "Token exchange attempt | provider=%s client_id=%s redirect_uri=%s pkce=%s",
            provider.name,
            provider.client_id,
            provider.redirect_uri,
            bool(code_verifier),
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with metrics.upstream_timer(provider.name, "token"):
                    response = await client.post(
                        provider.token_url,
                        data=data,
                        headers=provider.token_request_headers(),
                    )
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Token exchange failed | provider=%s status=%s response=%s",
                    provider.name,
                    e.response.status_code,
                    _truncate(e.response.text),
                )
                raise OAuthTokenError(f"Token exchange failed: {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error("Token exchange request failed | provider=%s error=%s", provider.name, e)
                raise OAuthTokenError("Failed to connect to OAuth provider") from e
            except ValueError as e:
                logger.error("Token exchange returned non-JSON body | provider=%s", provider.name)
                raise OAuthTokenError("Malformed token response") from e

        if not isinstance(body, dict):
            raise OAuthTokenError("Malformed token response")
        if body.get("error"):
            # GitHub reports failures with HTTP 200 and an error member
            logger.error(
                "Token exchange rejected | provider=%s error=%s description=%s",
                provider.name,
                body.get("error"),
                _truncate(str(body.get("error_description", ""))),
            )
            raise OAuthTokenError(f"Token exchange rejected: {body.get('error')}")
        try:
            tokens = TokenResponse.model_validate(body)
        except ValidationError as e:
            raise OAuthTokenError("No access token in response") from e
        logger.info("Token exchange SUCCESS | provider=%s", provider.name)
        return tokens

    async def fetch_user_info(self, provider: OAuthProvider, access_token: str) -> dict[str, Any]:
        """
        Fetch the raw identity document using an access token.

        Raises:
            OAuthUserInfoError: If fetching user info fails
        """
        if provider.user_info_url is None:
            raise MissingIDTokenError(f"{provider.name} has no user info endpoint")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with metrics.upstream_timer(provider.name, "user_info"):
                    response = await client.get(
                        provider.user_info_url,
                        headers=provider.user_info_request_headers(access_token),
                        params=provider.user_info_request_params(access_token) or None,
                    )
                response.raise_for_status()
                raw = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "User info fetch failed | provider=%s status=%s response=%s",
                    provider.name,
                    e.response.status_code,
                    _truncate(e.response.text),
                )
                raise OAuthUserInfoError(f"User info fetch failed: {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error("User info request failed | provider=%s error=%s", provider.name, e)
                raise OAuthUserInfoError("Failed to connect to OAuth provider") from e
            except ValueError as e:
                raise OAuthUserInfoError("Malformed user info response") from e

            if not isinstance(raw, dict):
                raise OAuthUserInfoError("Malformed user info response")
            payload = provider.map_user_info_response(raw)
            return await provider.complete_user_payload(client, access_token, payload)

    async def fetch_identity(
        self,
        provider: OAuthProvider,
        tokens: TokenResponse,
        nonce: str | None = None,
        extra_claims: dict[str, Any] | None = None,
    ) -> OAuthUser:
        """
        Resolve the signed-in user from a token response.

        Uses the ID token when the provider issues one, otherwise the
        user-info endpoint. ``extra_claims`` carries data the provider only
        sends out of band (Apple's first-sign-in name).

        Raises:
            OAuthUserInfoError: identity could not be retrieved
            InvalidNonceError: ID token nonce differs from the one we issued
            InvalidPayloadError: identity document has the wrong shape
        """
        if provider.uses_id_token and tokens.id_token:
            payload = decode_id_token(tokens.id_token)
            if nonce is not None and payload.get("nonce") != nonce:
                logger.warning("ID token nonce mismatch | provider=%s", provider.name)
                raise InvalidNonceError("ID token nonce mismatch")
        elif provider.user_info_url is None:
            logger.error("No ID token in token response | provider=%s", provider.name)
            raise MissingIDTokenError(f"{provider.name} token response has no id_token")
        else:
            payload = await self.fetch_user_info(provider, tokens.access_token)

        if extra_claims:
            payload = {**payload, **extra_claims}
        return provider.parse_user_data(payload)

    async def resolve_access_token(self, provider: OAuthProvider, access_token: str) -> OAuthUser:
        """Identify the owner of an access token a client presents directly."""
        payload = await self.fetch_user_info(provider, access_token)
        return provider.parse_user_data(payload)
