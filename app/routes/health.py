# app/routes/health.py
"""
Health check endpoints with database pool and task queue monitoring.
"""

import time

from fastapi import APIRouter

from app.db.pool import db_health_check
from app.jobs.task_queue import task_queue
from app.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "pipeline-backend"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check for Postgres and Redis. Always 200; `overall_ok` carries
    the verdict.
    """
    checks = {}
    overall_ok = True

    # 1) Redis + task queue depth
    t0 = time.time()
    try:
        redis_ok = await fast_redis.ping()
        checks["redis"] = {
            "ok": bool(redis_ok),
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if redis_ok:
            checks["redis"]["task_queue"] = await task_queue.depth()
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
