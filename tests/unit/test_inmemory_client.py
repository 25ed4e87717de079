"""Unit tests for the in-memory persistence client."""

import pytest

from backend.app.db.client import Operation, RecordNotFound
from backend.app.db.inmemory import InMemoryPersistenceClient, matches


def test_matches_operators() -> None:
    """Test the filter language over a single record."""
    record = {"id": "1", "first_name": "Asha", "status": "waiting", "email": None}

    assert matches(record, {})
    assert matches(record, {"first_name": "Asha"})
    assert not matches(record, {"first_name": "asha"})
    assert matches(record, {"first_name": {"contains": "sh"}})
    assert matches(record, {"first_name": {"contains": "ASH", "mode": "insensitive"}})
    assert not matches(record, {"email": {"contains": "x"}})
    assert matches(record, {"status": {"in": ["waiting", "called"]}})
    assert matches(record, {"status": {"not": "done"}})
    assert matches(record, {"OR": [{"status": "done"}, {"first_name": "Asha"}]})
    assert not matches(record, {"AND": [{"status": "waiting"}, {"first_name": "Ravi"}]})


@pytest.mark.asyncio
async def test_crud_roundtrip() -> None:
    """Test create, read, update and delete on one entity."""
    client = InMemoryPersistenceClient()

    created = await client.execute(
        "Patient", Operation.create, {"data": {"first_name": "Asha", "clinic_id": "c1"}}
    )
    assert created["id"]
    assert created["created_at"] is not None

    found = await client.execute(
        "Patient", Operation.find_unique, {"where": {"id": created["id"]}}
    )
    assert found == created

    updated = await client.execute(
        "Patient",
        Operation.update,
        {"where": {"id": created["id"]}, "data": {"first_name": "Asha R"}},
    )
    assert updated["first_name"] == "Asha R"

    deleted = await client.execute("Patient", Operation.delete, {"where": {"id": created["id"]}})
    assert deleted["id"] == created["id"]
    assert await client.execute("Patient", Operation.count, {"where": {}}) == 0


@pytest.mark.asyncio
async def test_update_and_delete_missing_raise() -> None:
    """Test single-record writes on no match raise RecordNotFound."""
    client = InMemoryPersistenceClient()

    with pytest.raises(RecordNotFound):
        await client.execute("Patient", Operation.update, {"where": {"id": "x"}, "data": {}})
    with pytest.raises(RecordNotFound):
        await client.execute("Patient", Operation.delete, {"where": {"id": "x"}})


@pytest.mark.asyncio
async def test_returned_records_are_copies() -> None:
    """Test mutating a returned record does not change the store."""
    client = InMemoryPersistenceClient()
    created = await client.execute("Clinic", Operation.create, {"data": {"name": "A"}})

    created["name"] = "changed"

    stored = await client.execute("Clinic", Operation.find_first, {"where": {}})
    assert stored["name"] == "A"


@pytest.mark.asyncio
async def test_order_take_skip_cursor() -> None:
    """Test ordering and the pagination window."""
    client = InMemoryPersistenceClient()
    await client.execute(
        "QueueEntry",
        Operation.create_many,
        {"data": [{"id": f"q{i}", "token_number": i} for i in range(5)]},
    )

    ordered = await client.execute(
        "QueueEntry", Operation.find_many, {"order_by": {"token_number": "desc"}}
    )
    assert [r["token_number"] for r in ordered] == [4, 3, 2, 1, 0]

    window = await client.execute(
        "QueueEntry",
        Operation.find_many,
        {"order_by": {"token_number": "asc"}, "cursor": {"id": "q1"}, "skip": 1, "take": 2},
    )
    assert [r["id"] for r in window] == ["q2", "q3"]


@pytest.mark.asyncio
async def test_aggregate_and_many_ops() -> None:
    """Test aggregates and bulk update/delete counts."""
    client = InMemoryPersistenceClient()
    await client.execute(
        "Invoice",
        Operation.create_many,
        {
            "data": [
                {"total": 100, "status": "paid"},
                {"total": 50, "status": "pending"},
                {"total": 25, "status": "pending"},
            ]
        },
    )

    agg = await client.execute(
        "Invoice",
        Operation.aggregate,
        {"where": {"status": "pending"}, "_count": True, "_sum": {"total": True}},
    )
    assert agg == {"_count": 2, "_sum": {"total": 75}}

    changed = await client.execute(
        "Invoice",
        Operation.update_many,
        {"where": {"status": "pending"}, "data": {"status": "void"}},
    )
    assert changed == 2

    removed = await client.execute("Invoice", Operation.delete_many, {"where": {"status": "void"}})
    assert removed == 2
    assert len(client.rows("Invoice")) == 1
