"""Liveness and readiness endpoints.

``/healthz`` reports DB and Redis connectivity along with the tenancy policy
the process is running with, so a misconfigured deployment is visible.
"""

import json
from typing import Any

import redis
from fastapi import APIRouter, Response, status
from sqlalchemy import text

from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_engine_from_settings, create_session_factory
from backend.app.tenancy.interceptor import TenantPolicy

router = APIRouter()


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        engine = create_engine_from_settings(settings)
    except Exception as e:
        return (False, f"error: {type(e).__name__}")

    try:
        with create_session_factory(engine)() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        return (False, f"error: {type(e).__name__}")
    finally:
        engine.dispose()

    return (True, "ok")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity; an unset REDIS_URL is not a failure."""
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
    except Exception as e:
        return (False, f"error: {type(e).__name__}")

    return (True, "ok")


def tenancy_summary(settings: Settings) -> dict[str, Any]:
    policy = TenantPolicy.from_settings(settings)
    return {
        "tenant_field": policy.tenant_field,
        "scope_mutations": policy.scope_mutations,
        "create_override": policy.create_override,
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe; 200 whenever the process is serving."""
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness probe.

    Returns:
        200 with component status when DB and Redis are reachable,
        503 with the same body otherwise
    """
    settings = get_settings()

    db_ok, db_status = await check_db(settings)
    redis_ok, redis_status = await check_redis(settings)
    ready = db_ok and redis_ok

    body = {
        "status": "ok" if ready else "degraded",
        "components": {"db": db_status, "redis": redis_status},
        "tenancy": tenancy_summary(settings),
    }

    if not ready:
        return Response(
            content=json.dumps(body),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            media_type="application/json",
        )

    return body
