from __future__ import annotations

import time
from typing import Annotated

import redis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authbridge.db.session import get_db
from authbridge.services.oauth import get_provider_registry, get_state_store
from authbridge.services.oauth.state_store import RedisStateStore

router = APIRouter(tags=["health"])


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return False
    return True


def _state_store_ok() -> bool:
    """In-memory stores are always available; Redis must answer PING."""
    store = get_state_store()
    if not isinstance(store, RedisStateStore):
        return True
    try:
        return bool(store.ping())
    except redis.RedisError:
        return False


@router.get("/health")
async def health() -> dict[str, object]:
    """Service status and the providers it can sign users in with."""
    return {"status": "healthy", "providers": get_provider_registry().names}


@router.get("/healthz")
async def healthz(db: Annotated[Session, Depends(get_db)]) -> dict[str, str]:
    """Basic liveness probe (cheap)."""
    if not _database_ok(db):
        raise HTTPException(status_code=503, detail="Database connectivity check failed")
    return {"status": "ok"}


@router.get("/live")
async def live() -> dict[str, str]:
    """Kubernetes-style liveness endpoint (no dependencies)."""
    return {"status": "alive"}


@router.get("/ready")
async def ready(db: Annotated[Session, Depends(get_db)]) -> dict[str, object]:
    """Ready once accounts can be read and CSRF state can be stored."""
    start = time.perf_counter()
    checks = {
        "db": _database_ok(db),
        "redis": _state_store_ok(),
        "providers": len(get_provider_registry()) > 0,
    }
    checks_ms = int((time.perf_counter() - start) * 1000)
    if not all(checks.values()):
        raise HTTPException(status_code=503, detail={**checks, "latency_ms": checks_ms})
    return {"status": "ready", **checks, "latency_ms": checks_ms}
