"""
Account linking rules on top of ``IdentityStore``.

Invariants maintained here:
- every (provider, identifier) belongs to at most one user
- every user keeps at least one linked account

Operations take an optional ``log`` so callers can pass a request-scoped
logger; they fall back to the linker's own.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from authbridge import metrics
from authbridge.core.exceptions import (
    AccountNotFoundError,
    AlreadyLinkedToAnotherUserError,
    CannotUnlinkLastAccountError,
    UserNotFoundError,
    UserProvisioningError,
)
from authbridge.models.identity_models import Account
from authbridge.models.schemas import LinkAccountResult, SocialLoginResult
from authbridge.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)


class AccountLinker:
    """Social-login, link, unlink and delete operations."""

    def __init__(self, store: IdentityStore, log: logging.Logger | None = None):
        self.store = store
        self.log = log or logger

    def handle_social_login(
        self, provider: str, identifier: str, log: logging.Logger | None = None
    ) -> SocialLoginResult:
        """
        Return the user owning ``(provider, identifier)``, creating one if needed.

        Creating a user and its first account are two separate writes. If the
        account insert fails (typically a concurrent first login winning the
        primary key), the new user row is deleted again and the original error
        is re-raised wrapped in ``UserProvisioningError`` naming that uuid.

        Raises:
            UserProvisioningError: account creation failed; carries the
                orphaned uuid and, if the compensating delete failed too, that error
        """
        log = log or self.log
        account = self.store.find_account(provider, identifier)
        if account is not None:
            log.info("Social login for existing user provider=%s uuid=%s", provider, account.uuid)
            return SocialLoginResult(user_uuid=account.uuid, is_new_user=False, is_new_account=False)

        user_uuid = self.store.create_user().uuid
        try:
            self.store.create_account(provider, identifier, user_uuid)
        except Exception as exc:
            log.error(
                "Account creation failed, rolling back user provider=%s uuid=%s error=%s",
                provider,
                user_uuid,
                exc,
            )
            self._rollback_user(user_uuid, exc, log)
            raise UserProvisioningError(user_uuid, exc) from exc

        metrics.new_user(provider)
        log.info("Created user via social login provider=%s uuid=%s", provider, user_uuid)
        return SocialLoginResult(user_uuid=user_uuid, is_new_user=True, is_new_account=True)

    def _rollback_user(self, user_uuid: str, original: Exception, log: logging.Logger) -> None:
        try:
            removed = self.store.delete_user(user_uuid)
            if not removed:
                raise LookupError(f"user {user_uuid} vanished before rollback")
        except Exception as rollback_exc:
            metrics.account_rollback(succeeded=False)
            log.critical(
                "Rollback failed; orphaned user requires manual cleanup uuid=%s error=%s rollback_error=%s",
                user_uuid,
                original,
                rollback_exc,
            )
            raise UserProvisioningError(user_uuid, original, rollback_exc) from original
        metrics.account_rollback(succeeded=True)
        log.warning("Rolled back orphaned user uuid=%s", user_uuid)

    def link_account(
        self, user_uuid: str, provider: str, identifier: str, log: logging.Logger | None = None
    ) -> LinkAccountResult:
        """
        Attach another provider identity to an existing user. Idempotent.

        Raises:
            AlreadyLinkedToAnotherUserError: identity owned by someone else
            UserNotFoundError: ``user_uuid`` does not exist
        """
        log = log or self.log
        existing = self.store.find_account(provider, identifier)
        if existing is not None:
            if existing.uuid == user_uuid:
                return LinkAccountResult(success=True, already_linked=True)
            log.warning("Link refused, identity owned by another user provider=%s uuid=%s", provider, user_uuid)
            raise AlreadyLinkedToAnotherUserError(provider, identifier)

        if self.store.find_user(user_uuid) is None:
            raise UserNotFoundError(user_uuid)

        try:
            self.store.create_account(provider, identifier, user_uuid)
        except IntegrityError:
            # Lost a race: another request inserted the identity, or the user was deleted
            winner = self.store.find_account(provider, identifier)
            if winner is None:
                raise UserNotFoundError(user_uuid) from None
            if winner.uuid == user_uuid:
                return LinkAccountResult(success=True, already_linked=True)
            log.warning("Link lost race to another user provider=%s uuid=%s", provider, user_uuid)
            raise AlreadyLinkedToAnotherUserError(provider, identifier) from None
        log.info("Linked account provider=%s uuid=%s", provider, user_uuid)
        return LinkAccountResult(success=True, already_linked=False)

    def unlink_account(
        self, user_uuid: str, provider: str, identifier: str, log: logging.Logger | None = None
    ) -> bool:
        """
        Remove one linked identity, never the last one.

        Returns:
            True iff a row was removed

        Raises:
            CannotUnlinkLastAccountError: user has one account or fewer
            AccountNotFoundError: user has no such account
        """
        log = log or self.log
        accounts = self.store.get_accounts_by_user(user_uuid)
        if len(accounts) <= 1:
            raise CannotUnlinkLastAccountError(user_uuid)
        if not any(a.provider == provider and a.identifier == identifier for a in accounts):
            raise AccountNotFoundError(provider, identifier)

        # Scoped by owner too, so a stale list can never delete someone else's row
        removed = self.store.delete_account(provider, identifier, user_uuid)
        log.info("Unlinked account provider=%s uuid=%s removed=%s", provider, user_uuid, removed)
        return removed

    def delete_user(self, user_uuid: str, log: logging.Logger | None = None) -> None:
        """
        Delete a user and every linked account.

        Raises:
            UserNotFoundError: no such user
        """
        log = log or self.log
        if not self.store.delete_user(user_uuid):
            raise UserNotFoundError(user_uuid)
        log.info("Deleted user uuid=%s", user_uuid)

    def list_accounts(self, user_uuid: str) -> list[Account]:
        return self.store.get_accounts_by_user(user_uuid)

    def find_user_uuid(self, provider: str, identifier: str) -> str | None:
        account = self.store.find_account(provider, identifier)
        return account.uuid if account is not None else None
