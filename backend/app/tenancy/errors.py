"""Tenancy error taxonomy."""


class TenancyError(Exception):
    """Base class for tenant isolation errors."""


class MissingTenantContext(TenancyError):
    """Raised when an operation requires a tenant but none is installed."""

    def __init__(self, message: str = "No tenant context available") -> None:
        super().__init__(message)


class CrossTenantWrite(TenancyError):
    """Raised when a write targets a tenant other than the active one."""

    def __init__(self, entity: str, active_tenant: str, requested_tenant: object) -> None:
        self.entity = entity
        self.active_tenant = active_tenant
        self.requested_tenant = requested_tenant
        super().__init__(
            f"{entity} write for tenant {requested_tenant!r} "
            f"rejected in context of tenant {active_tenant!r}"
        )
