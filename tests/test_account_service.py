"""
Tests for AccountLinker and IdentityStore.

Tests cover:
- First and repeat social logins
- Idempotent linking and cross-user conflicts
- Unlinking rules (never the last account, owner-scoped)
- Compensating rollback when the account insert fails
"""
import logging
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from authbridge.core.exceptions import (
    AccountNotFoundError,
    AlreadyLinkedToAnotherUserError,
    CannotUnlinkLastAccountError,
    UserNotFoundError,
    UserProvisioningError,
)
from authbridge.services.account_service import AccountLinker
from authbridge.services.identity_store import IdentityStore


@pytest.fixture
def store(db_session):
    return IdentityStore(db_session)


@pytest.fixture
def linker(store):
    return AccountLinker(store)


# ========== handle_social_login ==========

def test_first_login_creates_user_and_account(linker, store):
    result = linker.handle_social_login("github", "12345")

    assert result.is_new_user is True
    assert result.is_new_account is True
    account = store.find_account("github", "12345")
    assert account is not None
    assert account.uuid == result.user_uuid


def test_repeat_login_returns_same_user(linker, store):
    first = linker.handle_social_login("github", "12345")
    second = linker.handle_social_login("github", "12345")

    assert second.user_uuid == first.user_uuid
    assert second.is_new_user is False
    assert second.is_new_account is False
    assert len(store.get_accounts_by_user(first.user_uuid)) == 1


def test_same_identifier_different_provider_is_distinct(linker):
    github = linker.handle_social_login("github", "42")
    discord = linker.handle_social_login("discord", "42")

    assert github.user_uuid != discord.user_uuid


def test_failed_account_insert_rolls_back_user(linker, store):
    store.create_account = Mock(side_effect=IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))

    with pytest.raises(UserProvisioningError) as exc_info:
        linker.handle_social_login("google", "g-1")

    error = exc_info.value
    assert error.rollback_error is None
    assert error.details == {"uuid": error.orphaned_uuid, "rollback_failed": False}
    assert "UNIQUE constraint failed" not in str(error.to_dict())
    assert "UNIQUE constraint failed" in str(error.original_error)
    assert store.find_user(error.orphaned_uuid) is None
    assert store.find_orphaned_users() == []


def test_failed_rollback_reports_orphan(linker, store, caplog):
    store.create_account = Mock(side_effect=IntegrityError("INSERT", {}, Exception("boom")))
    store.delete_user = Mock(side_effect=RuntimeError("database went away"))

    with caplog.at_level(logging.CRITICAL), pytest.raises(UserProvisioningError) as exc_info:
        linker.handle_social_login("google", "g-1")

    error = exc_info.value
    assert isinstance(error.rollback_error, RuntimeError)
    assert error.details["rollback_failed"] is True
    assert "database went away" not in str(error.to_dict())
    assert "database went away" in caplog.text
    assert error.orphaned_uuid in caplog.text
    assert [u.uuid for u in store.find_orphaned_users()] == [error.orphaned_uuid]


def test_rollback_increments_metric(linker, store):
    store.create_account = Mock(side_effect=IntegrityError("INSERT", {}, Exception("boom")))

    with patch("authbridge.services.account_service.metrics") as metrics, pytest.raises(UserProvisioningError):
        linker.handle_social_login("google", "g-1")

    metrics.account_rollback.assert_called_once_with(succeeded=True)
    metrics.new_user.assert_not_called()


# ========== link_account ==========

def test_link_account_is_idempotent(linker, store):
    user = linker.handle_social_login("github", "1").user_uuid

    first = linker.link_account(user, "google", "g-1")
    second = linker.link_account(user, "google", "g-1")

    assert first.success is True and first.already_linked is False
    assert second.success is True and second.already_linked is True
    assert len(store.get_accounts_by_user(user)) == 2


def test_link_account_owned_by_another_user(linker, store):
    alice = linker.handle_social_login("github", "alice").user_uuid
    bob = linker.handle_social_login("github", "bob").user_uuid

    with pytest.raises(AlreadyLinkedToAnotherUserError) as exc_info:
        linker.link_account(bob, "github", "alice")

    assert exc_info.value.status_code == 409
    assert store.find_account("github", "alice").uuid == alice


def _find_misses_once(store):
    real_find = store.find_account
    calls = []

    def find_account(provider, identifier):
        calls.append((provider, identifier))
        if len(calls) == 1:
            return None
        return real_find(provider, identifier)

    store.find_account = Mock(side_effect=find_account)


def test_link_account_race_lost_to_another_user(linker, store):
    alice = linker.handle_social_login("github", "alice").user_uuid
    bob = linker.handle_social_login("github", "bob").user_uuid
    store.db.expunge_all()
    _find_misses_once(store)

    with pytest.raises(AlreadyLinkedToAnotherUserError) as exc_info:
        linker.link_account(bob, "github", "alice")

    assert exc_info.value.status_code == 409
    assert store.find_account("github", "alice").uuid == alice


def test_link_account_race_lost_to_same_user(linker, store):
    user = linker.handle_social_login("github", "1").user_uuid
    linker.link_account(user, "google", "g-1")
    store.db.expunge_all()
    _find_misses_once(store)

    result = linker.link_account(user, "google", "g-1")

    assert result.success is True and result.already_linked is True
    assert len(store.get_accounts_by_user(user)) == 2


def test_link_account_unknown_user(linker):
    with pytest.raises(UserNotFoundError):
        linker.link_account("00000000-0000-0000-0000-000000000000", "google", "g-1")


def test_link_account_uses_passed_logger(linker):
    user = linker.handle_social_login("github", "1").user_uuid
    log = Mock(spec=logging.Logger)

    linker.link_account(user, "google", "g-1", log=log)

    log.info.assert_called()


# ========== unlink_account ==========

def test_cannot_unlink_last_account(linker, store):
    user = linker.handle_social_login("github", "1").user_uuid

    with pytest.raises(CannotUnlinkLastAccountError):
        linker.unlink_account(user, "github", "1")

    assert store.find_account("github", "1") is not None


def test_unlink_one_of_two(linker, store):
    user = linker.handle_social_login("github", "1").user_uuid
    linker.link_account(user, "google", "g-1")

    assert linker.unlink_account(user, "google", "g-1") is True
    assert store.find_account("google", "g-1") is None
    assert [a.provider for a in store.get_accounts_by_user(user)] == ["github"]


def test_unlink_unknown_account(linker):
    user = linker.handle_social_login("github", "1").user_uuid
    linker.link_account(user, "google", "g-1")

    with pytest.raises(AccountNotFoundError):
        linker.unlink_account(user, "discord", "d-1")


def test_unlink_cannot_touch_other_users_account(linker, store):
    alice = linker.handle_social_login("github", "alice").user_uuid
    bob = linker.handle_social_login("github", "bob").user_uuid
    linker.link_account(bob, "google", "bob-g")

    with pytest.raises(AccountNotFoundError):
        linker.unlink_account(bob, "github", "alice")

    assert store.find_account("github", "alice").uuid == alice


def test_delete_account_is_owner_scoped(linker, store):
    alice = linker.handle_social_login("github", "alice").user_uuid
    bob = linker.handle_social_login("github", "bob").user_uuid

    assert store.delete_account("github", "alice", bob) is False
    assert store.find_account("github", "alice").uuid == alice


# ========== delete_user ==========

def test_delete_user_removes_accounts(linker, store):
    user = linker.handle_social_login("github", "1").user_uuid
    linker.link_account(user, "google", "g-1")

    linker.delete_user(user)

    assert store.find_user(user) is None
    assert store.find_account("github", "1") is None
    assert store.find_account("google", "g-1") is None


def test_delete_unknown_user(linker):
    with pytest.raises(UserNotFoundError):
        linker.delete_user("00000000-0000-0000-0000-000000000000")


def test_identifier_free_after_user_deleted(linker):
    first = linker.handle_social_login("github", "1").user_uuid
    linker.delete_user(first)

    again = linker.handle_social_login("github", "1")

    assert again.is_new_user is True
    assert again.user_uuid != first


def test_find_user_uuid(linker):
    user = linker.handle_social_login("kakao", "777").user_uuid

    assert linker.find_user_uuid("kakao", "777") == user
    assert linker.find_user_uuid("kakao", "778") is None
