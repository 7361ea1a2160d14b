"""Tests for /auth/token and /auth/session."""
import time

import pytest

from authbridge.core.config import settings
from authbridge.core.security import create_session_token, decode_session_token, sign_jwt
from authbridge.services.account_service import AccountLinker
from authbridge.services.identity_store import IdentityStore


def discord_user(http_response, user_id: str = "80351110224678912"):
    return http_response(
        200,
        {"id": user_id, "username": "nelly", "discriminator": "0", "email": "nelly@example.com"},
    )


def test_token_exchange_issues_session(client, db_session, mock_httpx, http_response):
    user_uuid = AccountLinker(IdentityStore(db_session)).handle_social_login("discord", "80351110224678912").user_uuid
    mock_httpx.get.return_value = discord_user(http_response)

    response = client.post("/auth/token", json={"provider": "discord", "access_token": "discord-at"})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == settings.SESSION_TTL_SECONDS
    assert decode_session_token(body["token"])["sub"] == user_uuid
    assert mock_httpx.get.call_args.kwargs["headers"]["Authorization"] == "Bearer discord-at"


def test_token_exchange_unlinked_identity(client, mock_httpx, http_response):
    mock_httpx.get.return_value = discord_user(http_response)

    response = client.post("/auth/token", json={"provider": "discord", "access_token": "discord-at"})

    assert response.status_code == 401
    assert response.json()["error"] == "account_not_linked"


def test_token_exchange_rejected_provider_token(client, mock_httpx, http_response):
    mock_httpx.get.return_value = http_response(401, {"message": "401: Unauthorized"})

    response = client.post("/auth/token", json={"provider": "discord", "access_token": "revoked"})

    assert response.status_code == 401
    assert response.json()["code"] == "AUT302"


def test_token_exchange_unknown_provider(client):
    response = client.post("/auth/token", json={"provider": "friendster", "access_token": "x"})

    assert response.status_code == 404


def test_token_exchange_validation_error(client):
    response = client.post("/auth/token", json={"provider": "discord"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


def test_session_describes_user(client, db_session):
    linker = AccountLinker(IdentityStore(db_session))
    user_uuid = linker.handle_social_login("github", "1").user_uuid
    linker.link_account(user_uuid, "google", "g-1")
    token, _ = create_session_token(user_uuid)

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["uuid"] == user_uuid
    assert body["expires_at"] == decode_session_token(token)["exp"] * 1000
    assert {(a["provider"], a["identifier"]) for a in body["accounts"]} == {("github", "1"), ("google", "g-1")}


def test_session_requires_token(client):
    response = client.get("/auth/session")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_session_rejects_tampered_token(client, db_session):
    user_uuid = AccountLinker(IdentityStore(db_session)).handle_social_login("github", "1").user_uuid
    token = sign_jwt({"sub": user_uuid, "exp": int(time.time()) + 60}, "attacker-chosen-secret-32-bytes-long")

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.parametrize("header", ["Token abc", "Bearer not-a-jwt", "Bearer"])
def test_session_rejects_malformed_header(client, header):
    response = client.get("/auth/session", headers={"Authorization": header})

    assert response.status_code == 401
    assert response.json()["code"] == "AUT300"


def test_session_rejects_expired_token(client):
    token = sign_jwt({"sub": "someone", "exp": int(time.time()) - 5}, settings.SESSION_JWT_SECRET)

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "AUT303"


def test_session_for_deleted_user(client):
    token, _ = create_session_token("00000000-0000-0000-0000-000000000000")

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "AUT304"
