"""Metrics facade.

Service code should ONLY call the semantic helpers here so we can change backend freely.

Metrics:
- oauth_authorize_redirects_total   Authorization redirects issued, by provider
- oauth_callbacks_total             Callback outcomes, by provider and result code
- oauth_upstream_latency_seconds    Token / user-info round trips, by provider and hop
- oauth_new_users_total             Users created by first social login
- account_rollbacks_total           Compensating user deletes, by outcome
- rate_limit_exceeded_total         Requests rejected by the rate limiter
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_AUTHORIZE_REDIRECTS = Counter(
    "oauth_authorize_redirects_total", "Authorization redirects issued", ["provider"]
)
_CALLBACKS = Counter(
    "oauth_callbacks_total", "OAuth callback outcomes", ["provider", "result"]
)
_UPSTREAM_LATENCY = Histogram(
    "oauth_upstream_latency_seconds",
    "Latency of calls to provider token and user-info endpoints",
    ["provider", "hop"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)
_NEW_USERS = Counter("oauth_new_users_total", "Users created by a first social login", ["provider"])
_ROLLBACKS = Counter("account_rollbacks_total", "Compensating user deletes after failed account creation", ["outcome"])
_RATE_LIMIT_EXCEEDED = Counter("rate_limit_exceeded_total", "Requests rejected by the rate limiter")


def authorize_redirect(provider: str) -> None:
    _AUTHORIZE_REDIRECTS.labels(provider=provider).inc()


def callback_result(provider: str, result: str) -> None:
    """``result`` is ``success`` or the error code sent to the frontend."""
    _CALLBACKS.labels(provider=provider, result=result).inc()


@contextmanager
def upstream_timer(provider: str, hop: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        _UPSTREAM_LATENCY.labels(provider=provider, hop=hop).observe(time.perf_counter() - start)


def new_user(provider: str) -> None:
    _NEW_USERS.labels(provider=provider).inc()


def account_rollback(succeeded: bool) -> None:
    _ROLLBACKS.labels(outcome="deleted" if succeeded else "failed").inc()
    if not succeeded:
        logger.error("metric=account_rollback_failed")


def rate_limit_exceeded() -> None:
    _RATE_LIMIT_EXCEEDED.inc()
