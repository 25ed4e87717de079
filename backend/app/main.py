"""FastAPI application."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.app.api.routes.context import router as context_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.patients import router as patients_router
from backend.app.config import get_settings
from backend.app.db.client import RecordNotFound
from backend.app.middleware.tenant import TenantContextMiddleware
from backend.app.tenancy.errors import CrossTenantWrite, MissingTenantContext
from backend.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)

configure_logging(get_settings().log_level)

app = FastAPI(title="Docita API", version="0.1.0")

# Installs the tenant context before any route or dependency runs
app.add_middleware(TenantContextMiddleware)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(context_router, tags=["context"])
app.include_router(patients_router)


@app.exception_handler(MissingTenantContext)
async def missing_tenant_handler(request: Request, exc: MissingTenantContext) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(CrossTenantWrite)
async def cross_tenant_handler(request: Request, exc: CrossTenantWrite) -> JSONResponse:
    logger.warning(f"[{request.method} {request.url.path}] {exc}")
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": "Cross-clinic write rejected"},
    )


@app.exception_handler(RecordNotFound)
async def not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"{exc.entity} not found"},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Docita API", "version": "0.1.0"}
