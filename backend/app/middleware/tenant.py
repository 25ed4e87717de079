"""Tenant context installer for inbound requests."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from backend.app.api.auth import get_current_principal
from backend.app.tenancy.context import AuthUser, TenantContext, tenant_scope
from backend.app.utils.logging import StructuredTenantLogger

logger = logging.getLogger(__name__)

PrincipalResolver = Callable[[str | None], Awaitable[AuthUser | None]]


class TenantContextMiddleware:
    """ASGI middleware installing a TenantContext around each HTTP request.

    The principal comes from ``resolver``; this middleware trusts it and only
    translates it into a context. Requests without credentials run with no
    context installed. Everything downstream (routes, repositories, the
    interceptor) reads the context installed here.
    """

    def __init__(
        self,
        app: ASGIApp,
        resolver: PrincipalResolver = get_current_principal,
        structured_logger: StructuredTenantLogger | None = None,
    ) -> None:
        self.app = app
        self._resolver = resolver
        self._logger = structured_logger or StructuredTenantLogger()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        authorization = Headers(scope=scope).get("authorization")

        try:
            principal = await self._resolver(authorization)
        except HTTPException as e:
            logger.warning(f"[tenant] rejected credential on {scope['path']}: {e.detail}")
            response = JSONResponse(
                {"detail": e.detail}, status_code=e.status_code, headers=e.headers
            )
            await response(scope, receive, send)
            return

        if principal is None:
            await self.app(scope, receive, send)
            return

        ctx = TenantContext.from_principal(principal)
        self._logger.log_context_installed(ctx, scope["path"])

        with tenant_scope(ctx):
            await self.app(scope, receive, send)
