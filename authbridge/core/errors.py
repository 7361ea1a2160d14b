import logging
import uuid

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authbridge.core.exceptions import AuthBridgeException

logger = logging.getLogger("authbridge.errors")

_STATUS_ERRORS = {
    401: "unauthorized",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
}


def register_error_handlers(app):
    @app.exception_handler(AuthBridgeException)
    async def domain_exception(request: Request, exc: AuthBridgeException):
        if exc.status_code >= 500:
            logger.error("Domain error code=%s path=%s details=%s", exc.code, request.url.path, exc.details)
        else:
            logger.info("Request rejected code=%s path=%s", exc.code, request.url.path)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={
                "error": "invalid_request",
                "error_description": "Request validation failed",
                "details": {"fields": fields},
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception(request: Request, exc: StarletteHTTPException):
        content: dict = {"error": _STATUS_ERRORS.get(exc.status_code, "http_error")}
        if exc.status_code == 404 and exc.detail == "Not Found":
            content["error_description"] = "Endpoint not found"
        elif isinstance(exc.detail, str):
            content["error_description"] = exc.detail
        else:
            content["error_description"] = "Request failed"
            content["details"] = exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):  # noqa: BLE001
        correlation_id = uuid.uuid4().hex
        logger.exception("Unhandled error cid=%s path=%s method=%s", correlation_id, request.url.path, request.method)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "error_description": "An unexpected error occurred",
                "cid": correlation_id,
            },
        )

    return app
