import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from authbridge.core.config import settings

logger = logging.getLogger(__name__)

# Query/form fields that carry one-time codes or bearer credentials
SENSITIVE_FIELDS = frozenset(
    {"code", "state", "nonce", "id_token", "access_token", "session_token", "code_verifier", "client_secret", "user"}
)
SENSITIVE_HEADERS = frozenset({"authorization", "cookie"})
FILTERED = "[Filtered]"

_initialized = False


def scrub_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [(k, FILTERED if k in SENSITIVE_FIELDS else v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    return urlunsplit(parts._replace(query=urlencode(query)))


def scrub_event(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """Sentry ``before_send``: callback URLs and form posts carry authorization codes."""
    request = event.get("request") or {}
    if isinstance(request.get("url"), str):
        request["url"] = scrub_url(request["url"])
    query_string = request.get("query_string")
    if isinstance(query_string, str) and query_string:
        request["query_string"] = scrub_url("?" + query_string)[1:]
    if isinstance(request.get("data"), dict):
        request["data"] = {k: FILTERED if k in SENSITIVE_FIELDS else v for k, v in request["data"].items()}
    headers = request.get("headers")
    if isinstance(headers, dict):
        request["headers"] = {k: FILTERED if k.lower() in SENSITIVE_HEADERS else v for k, v in headers.items()}
    return event


def init_monitoring() -> None:
    global _initialized
    if _initialized:
        return
    if settings.SENTRY_DSN:
        try:
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration

            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                integrations=[FastApiIntegration()],
                traces_sample_rate=0.1,
                environment=settings.ENV,
                release=f"authbridge@{settings.ENV}",
                send_default_pii=False,
                before_send=scrub_event,
            )
            logger.info("Sentry initialized")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to init Sentry: %s", exc)
    _initialized = True
