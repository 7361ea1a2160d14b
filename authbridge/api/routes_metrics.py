import secrets

from fastapi import APIRouter, Header, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from authbridge.core.config import settings
from authbridge.core.exceptions import AuthenticationError

router = APIRouter()


def _require_metrics_token(authorization: str | None) -> None:
    expected = settings.METRICS_BEARER_TOKEN
    if not expected:
        return
    supplied = (authorization or "").removeprefix("Bearer ").strip()
    if not secrets.compare_digest(supplied, expected):
        raise AuthenticationError("Invalid metrics token", code="AUT305")


@router.get("/metrics")
def metrics_endpoint(authorization: str | None = Header(None)) -> Response:
    _require_metrics_token(authorization)
    # Counters are incremented at event points; just expose registry.
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
