"""In-memory implementation of the persistence client."""

import copy
import uuid
from datetime import UTC, datetime
from typing import Any

from backend.app.db.client import AGGREGATE_KEYS, Args, Operation, Record, RecordNotFound


def matches(record: Record, where: Args | None) -> bool:
    """Evaluate a filter dict against one record."""
    if not where:
        return True

    for key, expected in where.items():
        if key == "OR":
            if not any(matches(record, clause) for clause in expected):
                return False
            continue
        if key == "AND":
            if not all(matches(record, clause) for clause in expected):
                return False
            continue
        if not _match_value(record.get(key), expected):
            return False

    return True


def _match_value(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, dict):
        return actual == expected

    if "in" in expected:
        return actual in expected["in"]
    if "not" in expected:
        return actual != expected["not"]
    if "contains" in expected:
        if actual is None:
            return False
        needle = str(expected["contains"])
        haystack = str(actual)
        if expected.get("mode") == "insensitive":
            return needle.lower() in haystack.lower()
        return needle in haystack

    return actual == expected


def _sort_key(value: Any) -> tuple[bool, Any]:
    # None sorts last ascending
    return (value is None, value)


class InMemoryPersistenceClient:
    """In-memory implementation of PersistenceClient.

    Tables are dicts of records keyed by ``id``. Records are copied in and
    out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}

    def rows(self, entity: str) -> list[Record]:
        """Raw rows for assertions in tests, bypassing any scoping."""
        return [copy.deepcopy(r) for r in self._tables.get(entity, {}).values()]

    async def execute(self, entity: str, operation: Operation, args: Args) -> Any:
        """Run one operation against the in-memory tables."""
        op = Operation(operation)
        table = self._tables.setdefault(entity, {})

        if op == Operation.create:
            return self._insert(table, args["data"])

        if op == Operation.create_many:
            for row in args["data"]:
                self._insert(table, row)
            return len(args["data"])

        found = self._select(table, args)

        if op == Operation.find_many:
            return [copy.deepcopy(r) for r in found]

        if op in (Operation.find_first, Operation.find_unique):
            return copy.deepcopy(found[0]) if found else None

        if op == Operation.count:
            return len(found)

        if op == Operation.aggregate:
            return self._aggregate(found, args)

        if op == Operation.update:
            if not found:
                raise RecordNotFound(entity, args.get("where"))
            return copy.deepcopy(self._apply_update(found[0], args["data"]))

        if op == Operation.update_many:
            for record in found:
                self._apply_update(record, args["data"])
            return len(found)

        if op == Operation.delete:
            if not found:
                raise RecordNotFound(entity, args.get("where"))
            return table.pop(found[0]["id"])

        if op == Operation.delete_many:
            for record in found:
                table.pop(record["id"])
            return len(found)

        raise ValueError(f"Unsupported operation: {op}")

    def _insert(self, table: dict[str, Record], data: Record) -> Record:
        now = datetime.now(UTC)
        record = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        record.update(copy.deepcopy(data))
        table[record["id"]] = record
        return copy.deepcopy(record)

    def _apply_update(self, record: Record, data: Record) -> Record:
        record.update(copy.deepcopy(data))
        record["updated_at"] = datetime.now(UTC)
        return record

    def _select(self, table: dict[str, Record], args: Args) -> list[Record]:
        found = [r for r in table.values() if matches(r, args.get("where"))]

        order_by = args.get("order_by") or {}
        if order_by:
            # id breaks ties in the first column's direction, as in SQL
            found.sort(key=lambda r: r["id"], reverse=next(iter(order_by.values())) == "desc")
        for field, direction in reversed(list(order_by.items())):
            found.sort(key=lambda r: _sort_key(r.get(field)), reverse=direction == "desc")

        cursor = args.get("cursor")
        if cursor:
            ids = [r["id"] for r in found]
            start = ids.index(cursor["id"]) if cursor["id"] in ids else len(ids)
            found = found[start:]

        skip = args.get("skip") or 0
        take = args.get("take")
        found = found[skip:]
        if take is not None:
            found = found[:take]

        return found

    def _aggregate(self, found: list[Record], args: Args) -> dict[str, Any]:
        result: dict[str, Any] = {}

        for key in AGGREGATE_KEYS:
            selector = args.get(key)
            if not selector:
                continue

            if key == "_count" and selector is True:
                result["_count"] = len(found)
                continue

            values_by_field = {
                field: [r.get(field) for r in found if r.get(field) is not None]
                for field, enabled in selector.items()
                if enabled
            }
            result[key] = {
                field: _reduce(key, values) for field, values in values_by_field.items()
            }

        return result


def _reduce(key: str, values: list[Any]) -> Any:
    if key == "_count":
        return len(values)
    if not values:
        return None
    if key == "_sum":
        return sum(values)
    if key == "_avg":
        return sum(values) / len(values)
    if key == "_min":
        return min(values)
    return max(values)
