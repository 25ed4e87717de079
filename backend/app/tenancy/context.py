"""Request-scoped tenant context store.

The active context lives in a ``ContextVar``. asyncio copies the current
context into every task it creates, so a context installed at the request
boundary is visible to everything awaited below it and is never observed by
unrelated tasks running on the same loop.
"""

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
T = TypeVar("T")


@dataclass(frozen=True)
class AuthUser:
    """Authenticated principal handed over by the auth layer."""

    id: str
    email: str | None
    role: str | None
    clinic_id: str


@dataclass(frozen=True)
class TenantContext:
    """Tenant and user identity for one unit of work.

    Immutable; one instance per inbound request or background job.
    """

    tenant_id: str
    user_id: str
    user: AuthUser | None = None

    @classmethod
    def from_principal(cls, principal: AuthUser) -> "TenantContext":
        """Build a context from an authenticated principal."""
        return cls(tenant_id=principal.clinic_id, user_id=principal.id, user=principal)


_current_tenant: ContextVar[TenantContext | None] = ContextVar("current_tenant", default=None)


def get_current_tenant() -> TenantContext | None:
    """Return the active tenant context, or None outside any scope."""
    return _current_tenant.get()


@contextmanager
def tenant_scope(ctx: TenantContext | None) -> Iterator[TenantContext | None]:
    """Install ``ctx`` for the dynamic extent of the ``with`` block.

    Nested scopes shadow the outer one and restore it on exit. Passing None
    runs the block explicitly unscoped.
    """
    token = _current_tenant.set(ctx)
    try:
        yield ctx
    finally:
        _current_tenant.reset(token)


def run_with_tenant(
    ctx: TenantContext, fn: Callable[P, T], *args: P.args, **kwargs: P.kwargs
) -> T:
    """Call ``fn`` with ``ctx`` installed and return its result."""
    with tenant_scope(ctx):
        return fn(*args, **kwargs)


async def run_with_tenant_async(
    ctx: TenantContext,
    fn: Callable[P, Awaitable[T]],
    *args: P.args,
    **kwargs: P.kwargs,
) -> T:
    """Await ``fn`` with ``ctx`` installed.

    Tasks created while awaiting inherit ``ctx`` and keep it after this
    scope exits.
    """
    with tenant_scope(ctx):
        return await fn(*args, **kwargs)
