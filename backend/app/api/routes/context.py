"""Tenant context introspection endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.app.tenancy.accessor import get_user, get_user_id, get_user_role, require_tenant_id

router = APIRouter()


class ContextResponse(BaseModel):
    """Response for GET /me/context."""

    clinic_id: str
    user_id: str | None
    role: str | None
    email: str | None


@router.get("/me/context", response_model=ContextResponse)
async def current_context(
    clinic_id: Annotated[str, Depends(require_tenant_id)],
) -> ContextResponse:
    """Echo the tenant context installed for this request."""
    user = get_user()
    return ContextResponse(
        clinic_id=clinic_id,
        user_id=get_user_id(),
        role=get_user_role(),
        email=user.email if user else None,
    )
