"""
Health endpoints: liveness and store readiness. No secrets are exposed.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from samta.core.database import check_connection
from samta.core.logging import get_request_id, latency_bucket_ms
from samta.features.store.memory import get_store
from samta.features.store.sql import SqlMatchStore

logger = logging.getLogger("samta")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["app_users", "interests", "messages", "admin_audit"]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness: the configured store is reachable and has its tables."""
    store = get_store()
    if not isinstance(store, SqlMatchStore):
        return {"status": "ok", "store": "memory"}

    start = time.perf_counter()
    try:
        if not check_connection(store.engine):
            return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
        inspector = inspect(store.engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    logger.info(
        "health.ready",
        extra={
            "request_id": get_request_id(),
            "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
        },
    )
    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok", "store": "sql"}
