"""Abstract base class for OAuth 2.0 / OIDC providers.

An adapter owns everything that differs between providers: endpoint URLs,
how the authorization URL is spelled, where callback parameters arrive, and
how the identity payload is validated and normalized. The HTTP round trips
themselves are done by ``TokenExchanger`` using the request hooks below.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar
from urllib.parse import parse_qsl, urlencode, urlparse

from pydantic import BaseModel, ValidationError

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import AuthorizationRequest, CallbackParameters, OAuthUser

from ..exceptions import InvalidPayloadError, MissingPKCEError

logger = logging.getLogger(__name__)

CALLBACK_FIELDS = ("code", "state", "error", "error_description", "id_token", "access_token")


def callback_parameters_from_mapping(values: Mapping[str, Any]) -> CallbackParameters:
    """Build ``CallbackParameters`` from a query/form mapping, dropping empty values."""
    picked = {}
    for field in CALLBACK_FIELDS:
        value = values.get(field)
        if isinstance(value, str) and value:
            picked[field] = value
    return CallbackParameters(**picked)


def email_local_part(email: str | None) -> str:
    if not email:
        return ""
    return email.split("@", 1)[0]


class OAuthProvider(ABC):
    """
    Abstract base class for OAuth 2.0 providers.

    Subclasses declare endpoints, a pydantic payload model and ``normalize``;
    the class attributes below cover the remaining dialect differences.
    """

    provider_id: ClassVar[OAuthProviderID]
    display_name: ClassVar[str]
    payload_model: ClassVar[type[BaseModel]]

    scope_separator: ClassVar[str] = " "
    send_response_type: ClassVar[bool] = True
    send_scope: ClassVar[bool] = True
    # Apple/Google/LinkedIn/Microsoft may deliver via the URL fragment
    supports_fragment: ClassVar[bool] = False
    supports_pkce: ClassVar[bool] = False
    requires_pkce: ClassVar[bool] = False
    supports_nonce: ClassVar[bool] = False
    # Decode the OIDC ID token instead of calling user info when one is returned
    uses_id_token: ClassVar[bool] = False
    # Extra authorization params allowed to replace a provider default
    overridable_params: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        client_id: str,
        client_secret: str | None,
        redirect_uri: str,
        scopes: list[str] | None = None,
    ):
        """
        Initialize OAuth provider.

        Args:
            client_id: OAuth client ID from provider
            client_secret: OAuth client secret from provider
            redirect_uri: Backend callback URL registered with the provider
            scopes: Scopes to request instead of ``default_scopes``
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(self.default_scopes if scopes is None else scopes)

    @property
    def name(self) -> str:
        return self.provider_id.value

    @property
    @abstractmethod
    def authorization_url(self) -> str:
        """Provider's authorization endpoint."""

    @property
    @abstractmethod
    def token_url(self) -> str:
        """Provider's token exchange endpoint."""

    @property
    @abstractmethod
    def user_info_url(self) -> str | None:
        """Provider's user info endpoint (``None`` when identity only comes from the ID token)."""

    @property
    @abstractmethod
    def default_scopes(self) -> list[str]:
        """Scopes requested when none are configured."""

    # ------------------------------------------------------------------
    # Authorization URL
    # ------------------------------------------------------------------

    def authorization_request(
        self,
        state: str,
        nonce: str | None = None,
        code_challenge: str | None = None,
        extra_params: dict[str, str] | None = None,
    ) -> AuthorizationRequest:
        """Fill an ``AuthorizationRequest`` from this provider's configuration."""
        return AuthorizationRequest(
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            scopes=self.scopes,
            state=state,
            nonce=nonce if self.supports_nonce else None,
            code_challenge=code_challenge if self.supports_pkce else None,
            code_challenge_method="S256" if code_challenge and self.supports_pkce else None,
            extra_params=extra_params or {},
        )

    def default_params(self, request: AuthorizationRequest) -> dict[str, str]:
        """Provider-specific parameters added after the core ones."""
        return {}

    def build_authorization_url(self, request: AuthorizationRequest) -> str:
        """
        Generate authorization URL for OAuth flow.

        Raises:
            MissingPKCEError: provider mandates PKCE and no challenge was given
        """
        if self.requires_pkce and not request.code_challenge:
            raise MissingPKCEError(self.name)

        params: dict[str, str] = {
            "client_id": request.client_id,
            "redirect_uri": request.redirect_uri,
        }
        if self.send_response_type:
            params["response_type"] = request.response_type
        if self.send_scope and request.scopes:
            params["scope"] = self.scope_separator.join(request.scopes)
        params["state"] = request.state
        if request.nonce:
            params["nonce"] = request.nonce
        if request.code_challenge:
            params["code_challenge"] = request.code_challenge
            params["code_challenge_method"] = request.code_challenge_method or "S256"
        params.update(self.default_params(request))

        for key, value in request.extra_params.items():
            if key in params and key not in self.overridable_params:
                logger.debug("Ignoring extra param %s for %s (reserved)", key, self.name)
                continue
            params[key] = value

        return f"{self.authorization_url}?{urlencode(params)}"

    # ------------------------------------------------------------------
    # Callback parsing
    # ------------------------------------------------------------------

    def parse_callback_parameters(self, url: str) -> CallbackParameters:
        """Extract callback fields from the query string (and fragment, if supported)."""
        parsed = urlparse(url)
        values: dict[str, str] = {}
        if self.supports_fragment and parsed.fragment:
            values.update(parse_qsl(parsed.fragment))
        # Query wins over fragment
        values.update(parse_qsl(parsed.query))
        return callback_parameters_from_mapping(values)

    # ------------------------------------------------------------------
    # Identity payload
    # ------------------------------------------------------------------

    def parse_user_data(self, payload: Mapping[str, Any]) -> OAuthUser:
        """Validate a raw identity payload and normalize it to ``OAuthUser``.

        Raises:
            InvalidPayloadError: naming the first offending field
        """
        try:
            data = self.payload_model.model_validate(payload)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
            raise InvalidPayloadError(self.name, field, first.get("type", "invalid")) from exc
        return self.normalize(data)

    @abstractmethod
    def normalize(self, data: Any) -> OAuthUser:
        """Map the validated payload model onto ``OAuthUser``."""

    def _user(self, subject: str, email: str | None, name: str, picture: str | None = None) -> OAuthUser:
        return OAuthUser(id=subject, email=email, name=name, picture=picture, provider=self.name)

    # ------------------------------------------------------------------
    # HTTP request hooks used by TokenExchanger
    # ------------------------------------------------------------------

    def get_client_secret(self) -> str | None:
        return self.client_secret

    def token_request_data(self, code: str, code_verifier: str | None = None) -> dict[str, str]:
        data = {
            "client_id": self.client_id,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        client_secret = self.get_client_secret()
        if client_secret:
            data["client_secret"] = client_secret
        if code_verifier:
            data["code_verifier"] = code_verifier
        return data

    def token_request_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def user_info_request_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    def user_info_request_params(self, access_token: str) -> dict[str, str]:
        return {}

    def map_user_info_response(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Reshape a user-info response before validation (identity by default)."""
        return raw

    async def complete_user_payload(self, client: Any, access_token: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Second-hop lookups some providers need (GitHub private emails)."""
        return payload
