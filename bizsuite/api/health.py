"""Liveness and readiness probes.

/health answers "is the process alive" and always returns 200; the body
reports each backing service as ok, degraded or not_configured.

/ready answers "should this instance get traffic".  PostgreSQL holds the
tenant lifecycle state, so a configured but unreachable database makes
the instance not ready (503).  Redis only backs rate limiting and never
blocks readiness.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from bizsuite.db import engine as db_engine
from bizsuite.db import redis as db_redis

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    return "ok" if await db_engine.ping_database() else "degraded"


async def _check_redis() -> str:
    if db_redis.redis_pool is None:
        return "not_configured"
    return "ok" if await db_redis.ping_redis() else "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
