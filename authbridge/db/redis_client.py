"""
Shared Redis connection pool.

OAuth state entries and the rate limiter both live in Redis; every caller goes
through ``get_redis_client`` so one process holds exactly one pool.
"""
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import certifi
import redis
from redis.connection import ConnectionPool

from authbridge.core.config import settings

logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 10
CERT_REQS = ("none", "optional", "required")

_pool: ConnectionPool | None = None
_client: redis.Redis | None = None


def redis_url_with_tls(url: str | None) -> str | None:
    """Add certificate settings to ``rediss://`` URLs; values already in the URL win.

    Both redis-py and the rate limiter storage read these from the query string.
    """
    if not url or not url.startswith("rediss://"):
        return url
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    cert_reqs = (settings.REDIS_SSL_CERT_REQS or "required").lower()
    query.setdefault("ssl_cert_reqs", cert_reqs if cert_reqs in CERT_REQS else "required")
    query.setdefault("ssl_ca_certs", settings.REDIS_SSL_CA_CERTS or certifi.where())
    return urlunsplit(parts._replace(query=urlencode(query)))


def get_redis_pool() -> ConnectionPool:
    """Get or create the process-wide Redis connection pool."""
    global _pool
    if _pool is not None:
        return _pool

    redis_url = redis_url_with_tls(settings.REDIS_URL)
    if not redis_url:
        raise RuntimeError("REDIS_URL is not configured")

    _pool = ConnectionPool.from_url(
        redis_url,
        max_connections=MAX_CONNECTIONS,
        socket_timeout=5,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
        decode_responses=True,
    )
    logger.info("Redis connection pool created (max_connections=%d)", MAX_CONNECTIONS)
    return _pool


def get_redis_client() -> redis.Redis:
    """Return a client bound to the shared pool, pinging on first use."""
    global _client
    if _client is not None:
        return _client

    client = redis.Redis(connection_pool=get_redis_pool())
    try:
        client.ping()
    except redis.RedisError as e:
        logger.error("Redis connection failed: %s", e)
        raise
    logger.info("Redis client connected successfully")
    _client = client
    return _client


def close_redis_pool() -> None:
    """Close the Redis connection pool. Called on app shutdown."""
    global _pool, _client
    if _client is None and _pool is None:
        return
    if _client is not None:
        _client.close()
        _client = None
    if _pool is not None:
        _pool.disconnect()
        _pool = None
    logger.info("Redis pool closed")
