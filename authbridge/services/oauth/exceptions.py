"""OAuth service exceptions.

Every error carries an ``error_code`` and a client-safe ``description`` that
are sent back to the frontend on the error redirect. The exception message
itself is diagnostic and only ever logged.
"""


class OAuthProviderError(Exception):
    """Raised when the OAuth flow cannot complete."""

    error_code = "server_error"
    description = "An unexpected error occurred"


class CallbackError(OAuthProviderError):
    """Callback request rejected before any upstream call."""

    def __init__(self, error_code: str, description: str):
        super().__init__(f"{error_code}: {description}")
        self.error_code = error_code
        self.description = description


class ProviderReportedError(CallbackError):
    """The provider redirected back with ``error`` set; passed through verbatim."""

    def __init__(self, error: str, description: str | None = None):
        super().__init__(error, description or "Unknown error")


class OAuthTokenError(OAuthProviderError):
    """Raised when token exchange fails."""

    error_code = "token_exchange_failed"
    description = "Failed to exchange authorization code for tokens"


class InvalidNonceError(OAuthTokenError):
    error_code = "invalid_nonce"
    description = "ID token nonce does not match"


class OAuthUserInfoError(OAuthProviderError):
    """Raised when fetching user info fails."""

    error_code = "user_info_failed"
    description = "Failed to fetch user information"


class MissingIDTokenError(OAuthUserInfoError):
    error_code = "missing_id_token"
    description = "No ID token received from provider"


class InvalidPayloadError(OAuthProviderError):
    """Provider identity payload failed shape validation."""

    error_code = "invalid_payload"
    description = "Invalid user data from provider"

    def __init__(self, provider: str, field: str, reason: str = "invalid"):
        super().__init__(f"{provider} user payload: field '{field}' is {reason}")
        self.provider = provider
        self.field = field
        self.reason = reason


class MissingPKCEError(OAuthProviderError):
    """Provider mandates PKCE but no code challenge was supplied."""

    error_code = "invalid_request"
    description = "PKCE code challenge is required"

    def __init__(self, provider: str):
        super().__init__(f"{provider} requires a PKCE code_challenge")
        self.provider = provider
