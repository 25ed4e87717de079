"""SQL implementation of the persistence client."""

from typing import Any

from sqlalchemy import ColumnElement, and_, delete, false, func, inspect, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from backend.app.db.client import (
    AGGREGATE_KEYS,
    Args,
    Operation,
    Record,
    RecordNotFound,
    UnknownEntity,
)
from backend.app.db.models import MODELS, Base

_AGGREGATE_FUNCS = {
    "_count": func.count,
    "_sum": func.sum,
    "_avg": func.avg,
    "_min": func.min,
    "_max": func.max,
}


def to_record(obj: Base) -> Record:
    """Convert an ORM instance to a plain dict keyed by attribute name."""
    mapper = inspect(type(obj))
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


class SqlPersistenceClient:
    """SQL implementation of PersistenceClient over an ``AsyncSession``.

    Single-record writes commit immediately, matching the repository style
    used elsewhere in the app.
    """

    def __init__(self, session: AsyncSession, models: dict[str, type[Base]] | None = None) -> None:
        self._session = session
        self._models = models if models is not None else MODELS

    def _model(self, entity: str) -> type[Base]:
        model = self._models.get(entity)
        if model is None:
            raise UnknownEntity(entity)
        return model

    def _column(self, model: type[Base], field: str) -> Any:
        column = getattr(model, field, None)
        if column is None:
            raise ValueError(f"{model.__name__} has no field {field!r}")
        return column

    def build_filter(self, model: type[Base], where: Args | None) -> ColumnElement[bool]:
        """Translate a filter dict into a SQL boolean expression."""
        if not where:
            return true()

        clauses: list[ColumnElement[bool]] = []

        for key, expected in where.items():
            if key == "OR":
                parts = [self.build_filter(model, clause) for clause in expected]
                clauses.append(or_(*parts) if parts else false())
            elif key == "AND":
                clauses.extend(self.build_filter(model, clause) for clause in expected)
            else:
                clauses.append(self._condition(self._column(model, key), expected))

        return and_(*clauses)

    def _condition(self, column: Any, expected: Any) -> ColumnElement[bool]:
        if not isinstance(expected, dict):
            return column.is_(None) if expected is None else column == expected

        if "in" in expected:
            return column.in_(list(expected["in"]))
        if "not" in expected:
            value = expected["not"]
            return column.is_not(None) if value is None else column != value
        if "contains" in expected:
            if expected.get("mode") == "insensitive":
                return column.icontains(expected["contains"], autoescape=True)
            return column.contains(expected["contains"], autoescape=True)

        raise ValueError(f"Unsupported filter operator: {sorted(expected)}")

    async def execute(self, entity: str, operation: Operation, args: Args) -> Any:
        """Run one operation against the database."""
        op = Operation(operation)
        model = self._model(entity)

        if op == Operation.create:
            return await self._create(model, args["data"])
        if op == Operation.create_many:
            self._session.add_all([model(**row) for row in args["data"]])
            await self._session.commit()
            return len(args["data"])
        if op == Operation.find_many:
            return [to_record(obj) for obj in await self._find(model, args)]
        if op in (Operation.find_first, Operation.find_unique):
            found = await self._find(model, {**args, "take": 1})
            return to_record(found[0]) if found else None
        if op == Operation.count:
            stmt = select(func.count()).select_from(model).where(
                self.build_filter(model, args.get("where"))
            )
            return (await self._session.execute(stmt)).scalar_one()
        if op == Operation.aggregate:
            return await self._aggregate(model, args)
        if op == Operation.update:
            return await self._update_one(entity, model, args)
        if op == Operation.update_many:
            stmt = (
                update(model)
                .where(self.build_filter(model, args.get("where")))
                .values(**args["data"])
                .execution_options(synchronize_session=False)
            )
            result = await self._session.execute(stmt)
            await self._session.commit()
            return result.rowcount
        if op == Operation.delete:
            return await self._delete_one(entity, model, args)
        if op == Operation.delete_many:
            stmt = (
                delete(model)
                .where(self.build_filter(model, args.get("where")))
                .execution_options(synchronize_session=False)
            )
            result = await self._session.execute(stmt)
            await self._session.commit()
            return result.rowcount

        raise ValueError(f"Unsupported operation: {op}")

    async def _create(self, model: type[Base], data: Record) -> Record:
        obj = model(**data)
        self._session.add(obj)
        await self._session.commit()
        await self._session.refresh(obj)
        return to_record(obj)

    async def _find(self, model: type[Base], args: Args) -> list[Base]:
        stmt = select(model).where(self.build_filter(model, args.get("where")))

        order_by = args.get("order_by") or {}
        for field, direction in order_by.items():
            column = self._column(model, field)
            stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        if order_by:
            first_direction = next(iter(order_by.values()))
            stmt = stmt.order_by(model.id.desc() if first_direction == "desc" else model.id.asc())  # type: ignore[attr-defined]

        cursor = args.get("cursor")
        if cursor and order_by:
            stmt = stmt.where(self._cursor_clause(model, order_by, cursor["id"]))
        elif cursor:
            stmt = stmt.where(model.id >= cursor["id"]).order_by(model.id)  # type: ignore[attr-defined]

        if args.get("skip"):
            stmt = stmt.offset(args["skip"])
        if args.get("take") is not None:
            stmt = stmt.limit(args["take"])

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _cursor_clause(self, model: type[Base], order_by: dict[str, str], cursor_id: str) -> Any:
        """Rows at or after the cursor row in ``order_by`` order.

        Lexicographic keyset over every order column, with ``id`` as the final
        tie-breaker in the first column's direction. The cursor row itself is
        included; callers drop it with ``skip=1``.
        """
        pivot_row = aliased(model)
        model_id = model.id  # type: ignore[attr-defined]

        branches: list[ColumnElement[bool]] = []
        equal_so_far: list[ColumnElement[bool]] = []
        for field, direction in order_by.items():
            column = self._column(model, field)
            pivot = (
                select(getattr(pivot_row, field))
                .where(pivot_row.id == cursor_id)  # type: ignore[attr-defined]
                .scalar_subquery()
            )
            beyond = column < pivot if direction == "desc" else column > pivot
            branches.append(and_(*equal_so_far, beyond))
            equal_so_far.append(column == pivot)

        descending = next(iter(order_by.values())) == "desc"
        tie = model_id <= cursor_id if descending else model_id >= cursor_id
        branches.append(and_(*equal_so_far, tie))

        return or_(*branches)

    async def _aggregate(self, model: type[Base], args: Args) -> dict[str, Any]:
        condition = self.build_filter(model, args.get("where"))
        result: dict[str, Any] = {}

        for key in AGGREGATE_KEYS:
            selector = args.get(key)
            if not selector:
                continue

            if key == "_count" and selector is True:
                stmt = select(func.count()).select_from(model).where(condition)
                result["_count"] = (await self._session.execute(stmt)).scalar_one()
                continue

            fields = [field for field, enabled in selector.items() if enabled]
            agg = _AGGREGATE_FUNCS[key]
            stmt = select(*(agg(self._column(model, f)) for f in fields)).where(condition)
            row = (await self._session.execute(stmt)).one()
            result[key] = dict(zip(fields, row, strict=True))

        return result

    async def _update_one(self, entity: str, model: type[Base], args: Args) -> Record:
        found = await self._find(model, {"where": args.get("where"), "take": 1})
        if not found:
            raise RecordNotFound(entity, args.get("where"))

        obj = found[0]
        for field, value in args["data"].items():
            self._column(model, field)
            setattr(obj, field, value)

        await self._session.commit()
        await self._session.refresh(obj)
        return to_record(obj)

    async def _delete_one(self, entity: str, model: type[Base], args: Args) -> Record:
        found = await self._find(model, {"where": args.get("where"), "take": 1})
        if not found:
            raise RecordNotFound(entity, args.get("where"))

        obj = found[0]
        record = to_record(obj)
        await self._session.delete(obj)
        await self._session.commit()
        return record
