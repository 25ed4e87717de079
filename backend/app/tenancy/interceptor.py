"""Tenant-scoping interceptor for persistence calls.

Wraps a ``PersistenceClient`` and rewrites arguments for tenant-scoped models
before delegating:

- reads always carry ``clinic_id = <active tenant>`` in ``where``; the
  injected value replaces any caller-supplied one, so caller filters can
  narrow results but never leave the tenant
- creates get ``clinic_id`` stamped when the payload omits it
- updates/deletes are scoped like reads when ``scope_mutations`` is on

With no active context, or for models outside the registry, arguments pass
through untouched.
"""

from dataclasses import dataclass
from typing import Any

from backend.app.config import CreateOverridePolicy, Settings, get_settings
from backend.app.db.client import (
    CREATE_OPERATIONS,
    MUTATION_OPERATIONS,
    READ_OPERATIONS,
    Args,
    Operation,
    PersistenceClient,
)
from backend.app.tenancy.context import TenantContext, get_current_tenant
from backend.app.tenancy.errors import CrossTenantWrite
from backend.app.tenancy.registry import TENANT_SCOPED_MODELS, is_tenant_scoped
from backend.app.utils.logging import StructuredTenantLogger
from backend.app.utils.metrics import PrometheusTenantMetrics


@dataclass(frozen=True)
class TenantPolicy:
    """How the interceptor treats writes."""

    tenant_field: str = "clinic_id"
    scope_mutations: bool = True
    create_override: CreateOverridePolicy = "keep"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TenantPolicy":
        return cls(
            tenant_field=settings.tenant_field,
            scope_mutations=settings.tenant_scope_mutations,
            create_override=settings.tenant_create_override,
        )


class TenantInterceptor:
    """Rewrites operation arguments to enforce tenant isolation."""

    def __init__(
        self,
        policy: TenantPolicy | None = None,
        registry: frozenset[str] = TENANT_SCOPED_MODELS,
        metrics: PrometheusTenantMetrics | None = None,
        logger: StructuredTenantLogger | None = None,
    ) -> None:
        self._policy = policy or TenantPolicy()
        self._registry = registry
        self._metrics = metrics or PrometheusTenantMetrics()
        self._logger = logger or StructuredTenantLogger()

    @property
    def policy(self) -> TenantPolicy:
        return self._policy

    def apply(self, entity: str, operation: Operation, args: Args | None) -> Args:
        """Return the arguments to send downstream.

        The caller's dict is never mutated; a rewritten copy is returned when
        scoping applies, otherwise the original object.
        """
        args = args if args is not None else {}

        if not is_tenant_scoped(entity, self._registry):
            return args

        op = Operation(operation)
        ctx = get_current_tenant()

        if ctx is None:
            self._metrics.inc_unscoped(entity, op.value)
            self._logger.log_operation(entity, op.value, None, "unscoped")
            return args

        if op in READ_OPERATIONS:
            scoped = self._scope_where(args, ctx)
        elif op in CREATE_OPERATIONS:
            scoped = self._stamp_create(entity, op, args, ctx)
        elif op in MUTATION_OPERATIONS:
            if not self._policy.scope_mutations:
                self._logger.log_operation(entity, op.value, ctx, "passthrough")
                return args
            scoped = self._scope_mutation(entity, op, args, ctx)
        else:
            return args

        if scoped == args:
            self._logger.log_operation(entity, op.value, ctx, "unchanged")
            return args

        self._metrics.inc_injection(entity, op.value)
        self._logger.log_operation(entity, op.value, ctx, "scoped")
        return scoped

    def _scope_where(self, args: Args, ctx: TenantContext) -> Args:
        where = dict(args.get("where") or {})
        where[self._policy.tenant_field] = ctx.tenant_id
        return {**args, "where": where}

    def _stamp_create(
        self, entity: str, operation: Operation, args: Args, ctx: TenantContext
    ) -> Args:
        data = args.get("data")
        if isinstance(data, dict):
            return {**args, "data": self._stamp_row(entity, operation, data, ctx)}
        if isinstance(data, list):
            rows = [
                self._stamp_row(entity, operation, row, ctx) if isinstance(row, dict) else row
                for row in data
            ]
            return {**args, "data": rows}
        return args

    def _stamp_row(
        self, entity: str, operation: Operation, row: dict[str, Any], ctx: TenantContext
    ) -> dict[str, Any]:
        field = self._policy.tenant_field
        requested = row.get(field)

        if not requested:
            return {**row, field: ctx.tenant_id}

        if requested == ctx.tenant_id:
            return row

        policy = self._policy.create_override
        if policy == "reject":
            self._record_cross_tenant(entity, operation, ctx, requested, "rejected")
            raise CrossTenantWrite(entity, ctx.tenant_id, requested)
        if policy == "override":
            self._record_cross_tenant(entity, operation, ctx, requested, "overridden")
            return {**row, field: ctx.tenant_id}

        self._record_cross_tenant(entity, operation, ctx, requested, "kept")
        return row

    def _scope_mutation(
        self, entity: str, operation: Operation, args: Args, ctx: TenantContext
    ) -> Args:
        scoped = self._scope_where(args, ctx)

        data = args.get("data")
        if isinstance(data, dict):
            field = self._policy.tenant_field
            requested = data.get(field)
            if field in data and requested != ctx.tenant_id:
                self._record_cross_tenant(entity, operation, ctx, requested, "rejected")
                raise CrossTenantWrite(entity, ctx.tenant_id, requested)

        return scoped

    def _record_cross_tenant(
        self,
        entity: str,
        operation: Operation,
        ctx: TenantContext,
        requested: object,
        outcome: str,
    ) -> None:
        self._metrics.inc_cross_tenant_write(entity, operation.value, outcome)
        self._logger.log_cross_tenant_write(entity, operation.value, ctx, requested, outcome)


class TenantScopedClient:
    """PersistenceClient decorator applying a ``TenantInterceptor``."""

    def __init__(self, client: PersistenceClient, interceptor: TenantInterceptor) -> None:
        self._client = client
        self._interceptor = interceptor

    @property
    def interceptor(self) -> TenantInterceptor:
        return self._interceptor

    async def execute(self, entity: str, operation: Operation, args: Args | None = None) -> Any:
        """Scope ``args`` for the active tenant, then delegate."""
        scoped = self._interceptor.apply(entity, operation, args)
        return await self._client.execute(entity, operation, scoped)


def create_tenant_interceptor(settings: Settings | None = None) -> TenantInterceptor:
    """Build an interceptor from application settings."""
    return TenantInterceptor(policy=TenantPolicy.from_settings(settings or get_settings()))
