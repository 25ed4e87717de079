"""Dev seeding helper for stub authentication.

Runs outside any request, so no tenant context is installed and every write
names its clinic explicitly.
"""

import asyncio
import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.client import Operation
from backend.app.db.engine import get_async_engine
from backend.app.db.sql_client import SqlPersistenceClient
from backend.app.tenancy.interceptor import TenantScopedClient, create_tenant_interceptor

logger = logging.getLogger(__name__)

# Fixed IDs for the stub token "Bearer <DEV_CLINIC_ID>:<DEV_USER_ID>"
DEV_CLINIC_ID = "00000000-0000-0000-0000-000000000001"
DEV_USER_ID = "00000000-0000-0000-0000-000000000002"

DEV_PATIENTS = [
    {"first_name": "Asha", "last_name": "Rao", "phone_number": "+919800000001", "gender": "FEMALE"},
    {"first_name": "Vikram", "last_name": "Nair", "phone_number": "+919800000002", "gender": "MALE"},
]


async def seed_dev_clinic(client: TenantScopedClient) -> None:
    """Seed dev clinic, user and patients.

    This function is idempotent - safe to run multiple times.
    """
    clinic = await client.execute("Clinic", Operation.find_unique, {"where": {"id": DEV_CLINIC_ID}})
    if clinic is None:
        logger.info(f"Creating dev clinic with id {DEV_CLINIC_ID}")
        await client.execute(
            "Clinic", Operation.create, {"data": {"id": DEV_CLINIC_ID, "name": "Dev Clinic"}}
        )
    else:
        logger.info(f"Dev clinic already exists: {clinic['name']}")

    user = await client.execute("User", Operation.find_unique, {"where": {"id": DEV_USER_ID}})
    if user is None:
        logger.info(f"Creating dev user with id {DEV_USER_ID}")
        await client.execute(
            "User",
            Operation.create,
            {
                "data": {
                    "id": DEV_USER_ID,
                    "clinic_id": DEV_CLINIC_ID,
                    "email": "dev@example.com",
                    "name": "Dev Doctor",
                    "password_hash": "stub",
                }
            },
        )

    existing = await client.execute(
        "Patient", Operation.count, {"where": {"clinic_id": DEV_CLINIC_ID}}
    )
    if existing == 0:
        rows = [
            {**p, "clinic_id": DEV_CLINIC_ID, "date_of_birth": date(1990, 1, 1)}
            for p in DEV_PATIENTS
        ]
        await client.execute("Patient", Operation.create_many, {"data": rows})
        logger.info(f"Created {len(rows)} dev patients")


async def main() -> None:
    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        client = TenantScopedClient(SqlPersistenceClient(session), create_tenant_interceptor())
        await seed_dev_clinic(client)
    logger.info("Dev seeding complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
