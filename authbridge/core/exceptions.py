"""Custom exception hierarchy for AuthBridge.

All domain errors derive from ``AuthBridgeException`` so the API layer can map
them to HTTP responses in one place (see ``authbridge.core.errors``).

Error codes follow pattern: [CATEGORY][NUMBER]
- VAL: Request validation errors (001-099)
- STA: CSRF state errors (100-199)
- ACC: Account linking errors (200-299)
- AUT: Session/authentication errors (300-399)
- SYS: System errors (400-499)

OAuth provider/upstream failures live in ``authbridge.services.oauth.exceptions``
because they are reported by redirect, not by status code.
"""

from __future__ import annotations

from typing import Any


class AuthBridgeException(Exception):
    """Base exception for all AuthBridge application errors."""

    error = "server_error"

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a client-safe message and metadata.

        Args:
            message: Client-safe error description
            code: Unique error code (e.g., "ACC001")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": self.error,
            "error_description": self.message,
            "code": self.code,
            "details": self.details,
        }


# ============================================================================
# VALIDATION ERRORS (VAL001-099)
# ============================================================================

class ValidationError(AuthBridgeException):
    """Malformed or missing request input."""

    error = "invalid_request"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, code="VAL001", status_code=400, details=details)


class UnsupportedProviderError(AuthBridgeException):
    """Provider tag is unknown or the provider has no credentials configured."""

    error = "unsupported_provider"

    def __init__(self, provider: str):
        super().__init__(
            message=f"OAuth provider '{provider}' is not available",
            code="VAL002",
            status_code=404,
            details={"provider": provider},
        )


# ============================================================================
# STATE ERRORS (STA100-199)
# ============================================================================

class StateError(AuthBridgeException):
    """Base class for CSRF state failures."""
    pass


class StateNotFoundError(StateError):
    """State token was never issued, already consumed, or expired."""

    error = "invalid_or_expired_state"

    def __init__(self):
        super().__init__(
            message="Invalid or expired state parameter",
            code="STA100",
            status_code=400,
        )


# ============================================================================
# ACCOUNT ERRORS (ACC200-299)
# ============================================================================

class AccountConflictError(AuthBridgeException):
    """Base class for account linking rule violations."""
    pass


class AlreadyLinkedToAnotherUserError(AccountConflictError):
    """The provider identity belongs to a different user."""

    error = "already_linked_to_another_user"

    def __init__(self, provider: str, identifier: str):
        super().__init__(
            message="This account is already linked to another user",
            code="ACC200",
            status_code=409,
            details={"provider": provider, "identifier": identifier},
        )


class CannotUnlinkLastAccountError(AccountConflictError):
    """Removing the identity would leave the user without any login."""

    error = "cannot_unlink_last_account"

    def __init__(self, user_uuid: str):
        super().__init__(
            message="Cannot unlink the last linked account",
            code="ACC201",
            status_code=409,
            details={"uuid": user_uuid},
        )


class AccountNotFoundError(AccountConflictError):
    error = "account_not_found"

    def __init__(self, provider: str, identifier: str):
        super().__init__(
            message="Account not found",
            code="ACC202",
            status_code=404,
            details={"provider": provider, "identifier": identifier},
        )


class UserNotFoundError(AccountConflictError):
    error = "user_not_found"

    def __init__(self, user_uuid: str):
        super().__init__(
            message="User not found",
            code="ACC203",
            status_code=404,
            details={"uuid": user_uuid},
        )


# ============================================================================
# AUTHENTICATION ERRORS (AUT300-399)
# ============================================================================

class AuthenticationError(AuthBridgeException):
    """Base class for session credential failures."""

    error = "unauthorized"

    def __init__(self, message: str = "Invalid or expired session token", code: str = "AUT300"):
        super().__init__(message=message, code=code, status_code=401)


class AccountNotLinkedError(AuthenticationError):
    """Provider identity resolved but no local account is linked to it."""

    error = "account_not_linked"

    def __init__(self):
        super().__init__(message="No account is linked to this identity", code="AUT301")


# ============================================================================
# SYSTEM ERRORS (SYS400-499)
# ============================================================================

class UserProvisioningError(AuthBridgeException):
    """Account creation failed after the user row was written.

    ``orphaned_uuid`` names the user row that was created; when
    ``rollback_error`` is set the compensating delete also failed and the row
    needs manual cleanup (see ``scripts/cleanup_orphaned_users.py``).
    """

    error = "server_error"

    def __init__(
        self,
        orphaned_uuid: str,
        original_error: BaseException,
        rollback_error: BaseException | None = None,
    ):
        if rollback_error is None:
            message = f"Failed to create account; rolled back user {orphaned_uuid}"
        else:
            message = (
                f"Failed to create account and rollback failed; "
                f"orphaned user {orphaned_uuid} requires manual cleanup"
            )
        # Driver error text is logged where raised, never returned to clients
        details: dict[str, Any] = {"uuid": orphaned_uuid, "rollback_failed": rollback_error is not None}
        super().__init__(message=message, code="SYS400", status_code=500, details=details)
        self.orphaned_uuid = orphaned_uuid
        self.original_error = original_error
        self.rollback_error = rollback_error
