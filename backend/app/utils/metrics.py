"""Prometheus metrics for tenant isolation."""

from prometheus_client import Counter

tenant_filter_injections_total = Counter(
    "tenant_filter_injections_total",
    "Operations rewritten with the active clinic_id",
    ["entity", "operation"],
)

tenant_unscoped_operations_total = Counter(
    "tenant_unscoped_operations_total",
    "Operations on tenant-scoped models executed without a tenant context",
    ["entity", "operation"],
)

tenant_cross_tenant_writes_total = Counter(
    "tenant_cross_tenant_writes_total",
    "Writes naming a clinic other than the active one",
    ["entity", "operation", "outcome"],
)


class PrometheusTenantMetrics:
    """Prometheus-based tenancy metrics implementation."""

    def inc_injection(self, entity: str, operation: str) -> None:
        """Count a rewritten operation."""
        tenant_filter_injections_total.labels(entity=entity, operation=operation).inc()

    def inc_unscoped(self, entity: str, operation: str) -> None:
        """Count an operation that ran without a tenant context."""
        tenant_unscoped_operations_total.labels(entity=entity, operation=operation).inc()

    def inc_cross_tenant_write(self, entity: str, operation: str, outcome: str) -> None:
        """Count a cross-tenant write and what the policy did with it."""
        tenant_cross_tenant_writes_total.labels(
            entity=entity, operation=operation, outcome=outcome
        ).inc()
