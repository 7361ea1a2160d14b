"""Random token helpers for CSRF state, OIDC nonces and PKCE (RFC 7636)."""
import base64
import hashlib
import secrets
import string

_ALPHANUMERIC = string.ascii_letters + string.digits
_VERIFIER_CHARS = _ALPHANUMERIC + "-._~"

STATE_LENGTH = 32
VERIFIER_LENGTH = 64


def _random_string(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_state() -> str:
    """Opaque CSRF state: 32 alphanumeric characters."""
    return _random_string(_ALPHANUMERIC, STATE_LENGTH)


def generate_nonce() -> str:
    return _random_string(_ALPHANUMERIC, STATE_LENGTH)


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    if not 43 <= length <= 128:
        raise ValueError("PKCE code verifier must be 43-128 characters")
    return _random_string(_VERIFIER_CHARS, length)


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
