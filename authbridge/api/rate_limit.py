import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from authbridge import metrics
from authbridge.core.config import settings
from authbridge.db.redis_client import redis_url_with_tls

logger = logging.getLogger(__name__)


def _create_storage_uri() -> str:
    """
    Storage URI for the ``limits`` backend used by SlowAPI.

    Production shares counters across workers through Redis; dev/test keep
    them in process memory.
    """
    if settings.ENV.lower() != "prod" or not settings.REDIS_URL:
        logger.info("Rate limiter using in-memory storage (dev/test mode)")
        return "memory://"
    return redis_url_with_tls(settings.REDIS_URL) or "memory://"


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_create_storage_uri(),
    enabled=settings.RATE_LIMIT_ENABLED,
)

RATE_LIMITS = {
    "oauth_authorize": settings.OAUTH_AUTHORIZE_RATE_LIMIT,
    "oauth_callback": settings.OAUTH_CALLBACK_RATE_LIMIT,
    "session_exchange": "20/minute",
    "account_link": "10/minute",
}


def increment_rate_limit_exceeded() -> None:
    metrics.rate_limit_exceeded()
