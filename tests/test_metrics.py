"""Tests for the Prometheus metrics endpoint and helpers."""
import pytest
from prometheus_client import REGISTRY

from authbridge import metrics
from authbridge.api import routes_metrics


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_metrics_exposed(client):
    client.get("/auth/oauth/github/authorize", params={"redirect_uri": "https://app.example.com"}, follow_redirects=False)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "oauth_authorize_redirects_total" in response.text


def test_metrics_token_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(routes_metrics.settings, "METRICS_BEARER_TOKEN", "scrape-secret")

    assert client.get("/metrics").status_code == 401
    assert client.get("/metrics", headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.get("/metrics", headers={"Authorization": "Bearer scrape-secret"}).status_code == 200


def test_callback_result_counter():
    before = _sample("oauth_callbacks_total", {"provider": "naver", "result": "invalid_state"})
    metrics.callback_result("naver", "invalid_state")

    assert _sample("oauth_callbacks_total", {"provider": "naver", "result": "invalid_state"}) == before + 1


def test_upstream_timer_observes_on_error():
    labels = {"provider": "kakao", "hop": "token"}
    before = _sample("oauth_upstream_latency_seconds_count", labels)
    with pytest.raises(ValueError), metrics.upstream_timer("kakao", "token"):
        raise ValueError("boom")

    assert _sample("oauth_upstream_latency_seconds_count", labels) == before + 1
