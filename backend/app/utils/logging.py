"""Structured logging for tenant isolation decisions."""

import logging
from typing import Any

from backend.app.tenancy.context import TenantContext

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class StructuredTenantLogger:
    """Structured logger for interceptor and installer events."""

    def log_operation(
        self,
        entity: str,
        operation: str,
        ctx: TenantContext | None,
        outcome: str,
    ) -> None:
        """Log how an operation on a tenant-scoped model was handled."""
        log_data: dict[str, Any] = {
            "entity": entity,
            "operation": operation,
            "outcome": outcome,
            "tenant_id": ctx.tenant_id if ctx else None,
            "user_id": ctx.user_id if ctx else None,
        }

        log_msg = f"Tenant scope: {entity}.{operation} - {outcome}"

        # Scripts run unscoped; requests should not
        if outcome == "unscoped":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.debug(log_msg, extra={"structured": log_data})

    def log_cross_tenant_write(
        self,
        entity: str,
        operation: str,
        ctx: TenantContext,
        requested_tenant: object,
        outcome: str,
    ) -> None:
        """Log a write naming a tenant other than the active one."""
        log_data: dict[str, Any] = {
            "entity": entity,
            "operation": operation,
            "outcome": outcome,
            "tenant_id": ctx.tenant_id,
            "requested_tenant_id": requested_tenant,
            "user_id": ctx.user_id,
        }

        log_msg = f"Cross-tenant write: {entity}.{operation} - {outcome}"

        if outcome == "rejected":
            logger.error(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_context_installed(self, ctx: TenantContext, path: str) -> None:
        """Log the context installed for an inbound request."""
        logger.debug(
            f"Tenant context installed for {path}",
            extra={"structured": {"tenant_id": ctx.tenant_id, "user_id": ctx.user_id, "path": path}},
        )
