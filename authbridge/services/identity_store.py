"""Persistence primitives for users and linked provider accounts.

Each call commits on its own, so callers that chain primitives must
compensate on failure (see ``AccountLinker.handle_social_login``).
"""
from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authbridge.models.identity_models import Account, User


class IdentityStore:
    def __init__(self, db: Session):
        self.db = db

    def find_account(self, provider: str, identifier: str) -> Account | None:
        return self.db.get(Account, (provider, identifier))

    def find_user(self, user_uuid: str) -> User | None:
        return self.db.get(User, user_uuid)

    def get_accounts_by_user(self, user_uuid: str) -> list[Account]:
        stmt = select(Account).where(Account.uuid == user_uuid).order_by(Account.created_at, Account.provider)
        return list(self.db.scalars(stmt))

    def create_user(self) -> User:
        user = User()
        self.db.add(user)
        self._commit()
        return user

    def create_account(self, provider: str, identifier: str, user_uuid: str) -> Account:
        """Insert an account row.

        Raises:
            IntegrityError: ``(provider, identifier)`` already exists or the user is gone
        """
        account = Account(provider=provider, identifier=identifier, uuid=user_uuid)
        self.db.add(account)
        self._commit()
        return account

    def delete_account(self, provider: str, identifier: str, user_uuid: str) -> bool:
        """Delete one account, scoped to its owner. True iff a row was removed."""
        result = self.db.execute(
            delete(Account).where(
                Account.provider == provider,
                Account.identifier == identifier,
                Account.uuid == user_uuid,
            )
        )
        self._commit()
        return result.rowcount > 0

    def delete_user(self, user_uuid: str) -> bool:
        """Delete a user and all of its accounts. True iff the user row existed."""
        self.db.execute(delete(Account).where(Account.uuid == user_uuid))
        result = self.db.execute(delete(User).where(User.uuid == user_uuid))
        self._commit()
        # Drop stale identity-map entries for the deleted rows
        self.db.expire_all()
        return result.rowcount > 0

    def find_orphaned_users(self) -> list[User]:
        """Users without any account: leftovers of failed rollbacks."""
        stmt = select(User).where(~User.accounts.any()).order_by(User.created_at)
        return list(self.db.scalars(stmt))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
