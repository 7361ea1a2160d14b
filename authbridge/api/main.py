import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.types import ASGIApp

from authbridge.api.rate_limit import increment_rate_limit_exceeded, limiter
from authbridge.api.routes_accounts import router as accounts_router
from authbridge.api.routes_health import router as health_router
from authbridge.api.routes_metrics import router as metrics_router
from authbridge.api.routes_oauth import router as oauth_router
from authbridge.api.routes_session import router as session_router
from authbridge.core.config import settings
from authbridge.core.errors import register_error_handlers
from authbridge.core.logger import init_logging
from authbridge.core.monitoring import init_monitoring
from authbridge.db.redis_client import close_redis_pool


async def _rate_limit_handler(request, exc: RateLimitExceeded):
    increment_rate_limit_exceeded()
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limited", "error_description": "Too many requests"},
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault(
            "Strict-Transport-Security",
            f"max-age={settings.HSTS_SECONDS}; includeSubDomains; preload",
        )
        response.headers.setdefault("Referrer-Policy", "same-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Content-Security-Policy", settings.CONTENT_SECURITY_POLICY)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized bodies; callbacks and token exchanges are small forms."""

    def __init__(self, app: ASGIApp, max_body: int = 64 * 1024) -> None:
        super().__init__(app)
        self.max_body = max_body
        self.logger = logging.getLogger("authbridge.request_size")

    async def dispatch(self, request, call_next):  # type: ignore[override]
        length_header = request.headers.get("content-length")
        if length_header and length_header.isdigit() and int(length_header) > self.max_body:
            self.logger.warning("Rejected body of %s bytes on %s", length_header, request.url.path)
            return JSONResponse(
                status_code=413,
                content={"error": "payload_too_large", "error_description": "Request body too large"},
            )
        return await call_next(request)


def create_app() -> FastAPI:
    init_logging()
    init_monitoring()

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    if is_production:
        app.add_middleware(HTTPSRedirectMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    register_error_handlers(app)

    app.include_router(oauth_router)
    app.include_router(session_router)
    app.include_router(accounts_router)
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)

    @app.on_event("shutdown")
    async def shutdown_event():
        close_redis_pool()

    return app


app = create_app()
