"""
End-to-end tests for /auth/oauth routes.

Provider HTTP calls are mocked at ``httpx.AsyncClient``; the CSRF state store
and the database are the real in-memory ones from conftest.
"""
import json
import time
from urllib.parse import parse_qs, unquote, urlparse

import jwt

from authbridge.core.security import decode_session_token
from authbridge.services.identity_store import IdentityStore

FRONTEND = "https://app.example.com/auth/done"


def query_of(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


def start(client, provider: str, **extra) -> dict[str, str]:
    response = client.get(
        f"/auth/oauth/{provider}/authorize",
        params={"redirect_uri": FRONTEND, **extra},
        follow_redirects=False,
    )
    assert response.status_code == 302, response.text
    return query_of(response.headers["location"])


def github_responses(http_response, user_id: int = 583231):
    return [
        http_response(200, {"id": user_id, "login": "octocat", "email": "octo@example.com", "name": "The Octocat"}),
    ]


# ========== /providers ==========

def test_list_providers(client):
    response = client.get("/auth/oauth/providers")

    assert response.status_code == 200
    names = {p["name"] for p in response.json()["providers"]}
    assert names == {"google", "apple", "microsoft", "facebook", "github", "x", "linkedin", "discord", "kakao", "naver"}
    x = next(p for p in response.json()["providers"] if p["name"] == "x")
    assert x["supports_pkce"] is True
    assert x["authorize_url"] == "/auth/oauth/x/authorize"


# ========== /authorize ==========

def test_authorize_redirects_to_provider(client, state_store):
    response = client.get(
        "/auth/oauth/github/authorize",
        params={"redirect_uri": FRONTEND},
        follow_redirects=False,
    )

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("https://github.com/login/oauth/authorize?")
    params = query_of(location)
    assert params["client_id"] == "github-client-id"
    assert params["redirect_uri"] == "http://testserver/auth/oauth/github/callback"
    assert len(params["state"]) == 32
    assert state_store.take(params["state"]) == FRONTEND


def test_authorize_unknown_provider(client):
    response = client.get("/auth/oauth/myspace/authorize", params={"redirect_uri": FRONTEND})

    assert response.status_code == 404
    assert response.json()["error"] == "unsupported_provider"


def test_authorize_missing_redirect_uri(client):
    response = client.get("/auth/oauth/github/authorize", follow_redirects=False)

    assert response.status_code == 400
    assert response.text == "Missing redirect_uri parameter"


def test_authorize_rejects_non_http_redirect(client):
    response = client.get(
        "/auth/oauth/github/authorize",
        params={"redirect_uri": "javascript:alert(1)"},
        follow_redirects=False,
    )

    assert response.status_code == 400
    assert response.text == "Invalid redirect_uri parameter"


def test_authorize_forwards_allowed_params_only(client):
    params = start(client, "google", prompt="consent", login_hint="a@example.com", scope="admin")

    assert params["prompt"] == "consent"
    assert params["login_hint"] == "a@example.com"
    assert params["scope"] == "openid email profile"
    assert "nonce" in params
    assert params["code_challenge_method"] == "S256"


def test_authorize_x_includes_pkce(client, state_store):
    params = start(client, "x")

    assert params["code_challenge_method"] == "S256"
    stored = json.loads(state_store.take(params["state"]))
    assert stored["redirect_uri"] == FRONTEND
    assert 43 <= len(stored["code_verifier"]) <= 128


# ========== /callback ==========

def test_github_callback_success(client, mock_httpx, http_response, db_session):
    state = start(client, "github")["state"]
    mock_httpx.post.return_value = http_response(200, {"access_token": "gho_abc", "token_type": "bearer"})
    mock_httpx.get.side_effect = github_responses(http_response)

    response = client.get(
        "/auth/oauth/github/callback",
        params={"code": "auth-code", "state": state},
        follow_redirects=False,
    )

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith(FRONTEND)
    params = query_of(location)
    user = json.loads(unquote(params["user"]))
    assert user == {
        "id": "583231",
        "email": "octo@example.com",
        "name": "The Octocat",
        "picture": None,
        "provider": "github",
    }
    assert params["access_token"] == "gho_abc"
    assert "id_token" not in params
    assert decode_session_token(params["session_token"])["sub"] == params["uuid"]
    assert IdentityStore(db_session).find_account("github", "583231").uuid == params["uuid"]


def test_second_login_reuses_user(client, mock_httpx, http_response):
    uuids = []
    for _ in range(2):
        state = start(client, "github")["state"]
        mock_httpx.post.return_value = http_response(200, {"access_token": "gho_abc"})
        mock_httpx.get.side_effect = github_responses(http_response)
        response = client.get(
            "/auth/oauth/github/callback",
            params={"code": "c", "state": state},
            follow_redirects=False,
        )
        uuids.append(query_of(response.headers["location"])["uuid"])

    assert uuids[0] == uuids[1]


def test_callback_state_is_single_use(client, mock_httpx, http_response):
    state = start(client, "github")["state"]
    mock_httpx.post.return_value = http_response(200, {"access_token": "gho_abc"})
    mock_httpx.get.side_effect = github_responses(http_response)
    client.get("/auth/oauth/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    replay = client.get("/auth/oauth/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    params = query_of(replay.headers["location"])
    assert params["error"] == "invalid_state"
    assert mock_httpx.post.call_count == 1


def test_callback_provider_error(client, mock_httpx):
    response = client.get(
        "/auth/oauth/github/callback",
        params={"error": "access_denied", "error_description": "The user has denied your application access."},
        follow_redirects=False,
    )

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("https://app.example.com")
    params = query_of(location)
    assert params["error"] == "access_denied"
    assert params["error_description"] == "The user has denied your application access."
    mock_httpx.post.assert_not_called()


def test_callback_missing_code(client):
    response = client.get("/auth/oauth/github/callback", params={"state": "abc"}, follow_redirects=False)

    assert query_of(response.headers["location"])["error"] == "invalid_request"


def test_callback_token_exchange_failure(client, mock_httpx, http_response):
    state = start(client, "discord")["state"]
    mock_httpx.post.return_value = http_response(400, {"error": "invalid_grant"})

    response = client.get(
        "/auth/oauth/discord/callback",
        params={"code": "bad", "state": state},
        follow_redirects=False,
    )

    params = query_of(response.headers["location"])
    assert params["error"] == "token_exchange_failed"
    assert "invalid_grant" not in response.headers["location"]


def test_callback_unexpected_error_redirects(client, mock_httpx):
    state = start(client, "discord")["state"]
    mock_httpx.post.side_effect = RuntimeError("kaboom")

    response = client.get(
        "/auth/oauth/discord/callback",
        params={"code": "c", "state": state},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert query_of(response.headers["location"])["error"] == "server_error"


def test_google_fragment_style_callback_uses_token_endpoint_id_token(client, mock_httpx, http_response):
    authorize = start(client, "google")
    id_token = jwt.encode(
        {
            "sub": "g-123",
            "email": "g@example.com",
            "name": "Gee",
            "nonce": authorize["nonce"],
            "iat": int(time.time()),
        },
        "provider-signing-key-not-verified-here",
        algorithm="HS256",
    )
    mock_httpx.post.return_value = http_response(200, {"access_token": "ya29", "id_token": id_token})

    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "c", "state": authorize["state"]},
        follow_redirects=False,
    )

    params = query_of(response.headers["location"])
    assert json.loads(unquote(params["user"]))["id"] == "g-123"
    assert params["id_token"] == id_token
    # PKCE verifier from the state entry goes to the token endpoint
    assert "code_verifier" in mock_httpx.post.call_args.kwargs["data"]
    mock_httpx.get.assert_not_called()


def test_apple_form_post_callback(client, mock_httpx, http_response):
    authorize = start(client, "apple", response_mode="form_post")
    assert authorize["response_mode"] == "form_post"
    id_token = jwt.encode(
        {"sub": "001234.abc", "email": "relay@privaterelay.appleid.com", "nonce": authorize["nonce"]},
        "provider-signing-key-not-verified-here",
        algorithm="HS256",
    )
    mock_httpx.post.return_value = http_response(200, {"access_token": "a", "id_token": id_token})

    response = client.post(
        "/auth/oauth/apple/callback",
        data={
            "code": "c",
            "state": authorize["state"],
            "user": json.dumps({"name": {"firstName": "Ann", "lastName": "Lee"}, "email": "relay@privaterelay.appleid.com"}),
        },
        follow_redirects=False,
    )

    assert response.status_code == 302
    user = json.loads(unquote(query_of(response.headers["location"])["user"]))
    assert user["id"] == "001234.abc"
    assert user["name"] == "Ann Lee"


def test_apple_nonce_mismatch(client, mock_httpx, http_response):
    authorize = start(client, "apple")
    id_token = jwt.encode(
        {"sub": "001234.abc", "email": "relay@privaterelay.appleid.com", "nonce": "replayed"},
        "provider-signing-key-not-verified-here",
        algorithm="HS256",
    )
    mock_httpx.post.return_value = http_response(200, {"access_token": "a", "id_token": id_token})

    response = client.get(
        "/auth/oauth/apple/callback",
        params={"code": "c", "state": authorize["state"]},
        follow_redirects=False,
    )

    assert query_of(response.headers["location"])["error"] == "invalid_nonce"


def test_provider_health(client):
    assert client.get("/auth/oauth/kakao/health").json() == {"status": "healthy", "provider": "kakao"}
    assert client.get("/auth/oauth/orkut/health").status_code == 404
