"""Patient endpoints - clinic-scoped CRUD."""

import logging
from datetime import date, datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.app.api.deps import get_patients_repository
from backend.app.config import get_settings
from backend.app.db.client import Record
from backend.app.db.repositories import PaginationOptions, PatientsRepository
from backend.app.tenancy.accessor import get_user_id, require_tenant_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["patients"])


class PatientCreate(BaseModel):
    """Request body for POST /patients."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=3)
    gender: Literal["MALE", "FEMALE", "OTHER"]
    email: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    blood_group: str | None = None
    allergies: str | None = None
    medical_history: list[str] = Field(default_factory=list)


class PatientUpdate(BaseModel):
    """Request body for PATCH /patients/{patient_id}."""

    first_name: str | None = Field(None, min_length=1)
    last_name: str | None = Field(None, min_length=1)
    phone_number: str | None = Field(None, min_length=3)
    gender: Literal["MALE", "FEMALE", "OTHER"] | None = None
    email: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    blood_group: str | None = None
    allergies: str | None = None
    medical_history: list[str] | None = None

    @field_validator("first_name", "last_name", "phone_number", "gender")
    @classmethod
    def required_not_null(cls, value: str | None) -> str:
        # NOT NULL columns: omit to leave unchanged
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class PatientResponse(BaseModel):
    """Patient as returned by the API."""

    id: str
    clinic_id: str
    first_name: str
    last_name: str
    phone_number: str
    gender: str
    email: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    blood_group: str | None = None
    allergies: str | None = None
    medical_history: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class PatientPage(BaseModel):
    """Response for GET /patients."""

    items: list[PatientResponse]
    has_more: bool
    next_cursor: str | None
    count: int


def _to_response(record: Record) -> PatientResponse:
    return PatientResponse.model_validate(record)


@router.get("", response_model=PatientPage)
async def list_patients(
    clinic_id: Annotated[str, Depends(require_tenant_id)],
    repo: Annotated[PatientsRepository, Depends(get_patients_repository)],
    limit: Annotated[int | None, Query(ge=1)] = None,
    cursor: str | None = None,
    search: str | None = None,
) -> PatientPage:
    """List patients of the caller's clinic."""
    settings = get_settings()
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    page = await repo.find_all(PaginationOptions(limit=page_size, cursor=cursor, search=search))

    return PatientPage(
        items=[_to_response(r) for r in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
        count=page.count,
    )


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    request: PatientCreate,
    clinic_id: Annotated[str, Depends(require_tenant_id)],
    repo: Annotated[PatientsRepository, Depends(get_patients_repository)],
) -> PatientResponse:
    """Create a patient; clinic_id is stamped from the tenant context."""
    record = await repo.create(request.model_dump())
    logger.info(f"[POST /patients] clinic_id={clinic_id}, user_id={get_user_id()}, id={record['id']}")
    return _to_response(record)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: str,
    clinic_id: Annotated[str, Depends(require_tenant_id)],
    repo: Annotated[PatientsRepository, Depends(get_patients_repository)],
) -> PatientResponse:
    """Get one patient of the caller's clinic."""
    return _to_response(await repo.find_one_or_fail(patient_id))


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: str,
    request: PatientUpdate,
    clinic_id: Annotated[str, Depends(require_tenant_id)],
    repo: Annotated[PatientsRepository, Depends(get_patients_repository)],
) -> PatientResponse:
    """Update a patient of the caller's clinic."""
    record = await repo.update(patient_id, request.model_dump(exclude_unset=True))
    return _to_response(record)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    clinic_id: Annotated[str, Depends(require_tenant_id)],
    repo: Annotated[PatientsRepository, Depends(get_patients_repository)],
) -> Response:
    """Delete a patient of the caller's clinic."""
    await repo.delete(patient_id)
    logger.info(f"[DELETE /patients/{patient_id}] clinic_id={clinic_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
