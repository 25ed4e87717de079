"""Read-only accessors over the active tenant context."""

from backend.app.tenancy.context import AuthUser, get_current_tenant
from backend.app.tenancy.errors import MissingTenantContext


def get_tenant_id() -> str | None:
    """Current clinic ID, or None when no context is installed."""
    ctx = get_current_tenant()
    return ctx.tenant_id if ctx is not None else None


def get_tenant_id_or_fail() -> str:
    """Current clinic ID.

    Raises:
        MissingTenantContext: If no context is installed
    """
    tenant_id = get_tenant_id()
    if not tenant_id:
        raise MissingTenantContext()
    return tenant_id


def get_user_id() -> str | None:
    """Current user's ID, or None."""
    ctx = get_current_tenant()
    return ctx.user_id if ctx is not None else None


def get_user_role() -> str | None:
    """Current user's role, or None."""
    user = get_user()
    return user.role if user is not None else None


def get_user() -> AuthUser | None:
    """Full principal, or None."""
    ctx = get_current_tenant()
    return ctx.user if ctx is not None else None


async def require_tenant_id() -> str:
    """FastAPI dependency for routes that must run tenant-scoped."""
    return get_tenant_id_or_fail()
