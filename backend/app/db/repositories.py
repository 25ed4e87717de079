"""Repositories over the tenant-scoped persistence client."""

from dataclasses import dataclass, field
from typing import Any

from backend.app.db.client import Args, Operation, PersistenceClient, Record, RecordNotFound
from backend.app.tenancy.accessor import get_tenant_id


@dataclass
class PaginationOptions:
    """Options for list queries."""

    limit: int = 50
    cursor: str | None = None
    search: str | None = None


@dataclass
class PaginatedResult:
    """One page of a cursor-paginated list."""

    items: list[Record] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None
    count: int = 0


class TenantRepository:
    """Base repository providing common CRUD operations for one model.

    Reads and writes go through ``client``, normally a ``TenantScopedClient``,
    so clinic scoping is applied below this layer. Subclasses set ``entity``
    and ``search_fields``.
    """

    entity: str = ""
    search_fields: tuple[str, ...] = ("name",)
    order_field: str = "updated_at"

    def __init__(self, client: PersistenceClient) -> None:
        self._client = client

    def build_search_conditions(self, search: str) -> list[Args]:
        """OR-able case-insensitive match over ``search_fields``."""
        return [
            {name: {"contains": search, "mode": "insensitive"}} for name in self.search_fields
        ]

    async def find_all(self, options: PaginationOptions | None = None) -> PaginatedResult:
        """Find records for the active clinic with cursor pagination and search."""
        if not get_tenant_id():
            return PaginatedResult()

        options = options or PaginationOptions()
        where: Args = {}
        if options.search:
            where["OR"] = self.build_search_conditions(options.search)

        args: Args = {
            "where": where,
            "take": options.limit + 1,
            "order_by": {self.order_field: "desc"},
        }
        if options.cursor:
            args["cursor"] = {"id": options.cursor}
            args["skip"] = 1

        items: list[Record] = await self._client.execute(self.entity, Operation.find_many, args)

        has_more = len(items) > options.limit
        page = items[: options.limit]

        return PaginatedResult(
            items=page,
            has_more=has_more,
            next_cursor=page[-1]["id"] if has_more and page else None,
            count=len(page),
        )

    async def find_one(self, record_id: str) -> Record | None:
        """Find a single record by ID."""
        result: Record | None = await self._client.execute(
            self.entity, Operation.find_unique, {"where": {"id": record_id}}
        )
        return result

    async def find_one_or_fail(self, record_id: str) -> Record:
        """Find a single record by ID.

        Raises:
            RecordNotFound: If no visible record has this ID
        """
        record = await self.find_one(record_id)
        if record is None:
            raise RecordNotFound(self.entity, {"id": record_id})
        return record

    async def create(self, data: dict[str, Any]) -> Record:
        """Create a new record."""
        result: Record = await self._client.execute(self.entity, Operation.create, {"data": data})
        return result

    async def update(self, record_id: str, data: dict[str, Any]) -> Record:
        """Update a record by ID."""
        result: Record = await self._client.execute(
            self.entity, Operation.update, {"where": {"id": record_id}, "data": data}
        )
        return result

    async def delete(self, record_id: str) -> None:
        """Delete a record by ID."""
        await self._client.execute(self.entity, Operation.delete, {"where": {"id": record_id}})

    async def exists(self, record_id: str) -> bool:
        """Check if a record exists."""
        return await self.count({"id": record_id}) > 0

    async def count(self, where: Args | None = None) -> int:
        """Count records matching a condition."""
        result: int = await self._client.execute(
            self.entity, Operation.count, {"where": where or {}}
        )
        return result


class PatientsRepository(TenantRepository):
    """Repository for Patient."""

    entity = "Patient"
    search_fields = ("first_name", "last_name", "phone_number", "email")

    async def get_appointments(self, patient_id: str) -> list[Record]:
        """All appointments for a patient, newest first."""
        result: list[Record] = await self._client.execute(
            "Appointment",
            Operation.find_many,
            {"where": {"patient_id": patient_id}, "order_by": {"start_time": "desc"}},
        )
        return result

    async def get_statistics(self, patient_id: str) -> dict[str, Any]:
        """Visit counts and adherence for a patient."""
        appointments = await self.get_appointments(patient_id)

        completed = [a for a in appointments if a["status"] == "completed"]
        no_show = sum(1 for a in appointments if a["status"] == "no-show")
        cancelled = sum(1 for a in appointments if a["status"] == "cancelled")
        scheduled = [a for a in appointments if a["status"] in ("scheduled", "confirmed")]

        relevant = len(completed) + no_show + cancelled
        adherence = round(len(completed) / relevant * 100) if relevant else 0

        return {
            "total_visits": len(completed),
            "last_visit": completed[0]["start_time"] if completed else None,
            "total_appointments": len(appointments),
            "scheduled_appointments": len(scheduled),
            "no_show_count": no_show,
            "cancelled_count": cancelled,
            "adherence_rate": adherence,
        }
