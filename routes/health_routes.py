"""
Health check endpoint.

GET /health — checks MongoDB and Redis connectivity.
Both backends are required: users live in MongoDB, verification codes and
pending tokens live in Redis. Either failing makes the service "unhealthy" (503).
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    try:
        await request.app.state.redis.ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "error"
        overall = "unhealthy"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
