"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.engine import get_session
from backend.app.db.repositories import PatientsRepository
from backend.app.db.sql_client import SqlPersistenceClient
from backend.app.tenancy.interceptor import TenantScopedClient, create_tenant_interceptor


async def get_client(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TenantScopedClient:
    """Tenant-scoped persistence client bound to the request session."""
    return TenantScopedClient(SqlPersistenceClient(session), create_tenant_interceptor())


async def get_patients_repository(
    client: Annotated[TenantScopedClient, Depends(get_client)],
) -> PatientsRepository:
    return PatientsRepository(client)
