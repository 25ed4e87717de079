"""Generic persistence client interface.

Every call into storage has the shape ``(entity, operation, args)``. ``args``
is a plain dict using these keys:

- ``where``: filter dict. Values are matched for equality unless they are a
  dict with one of the operators ``in``, ``contains`` (with optional
  ``mode="insensitive"``) or ``not``. ``OR`` / ``AND`` take lists of filters.
- ``data``: payload for create/update (a list of payloads for create_many).
- ``order_by``: ``{field: "asc" | "desc"}``.
- ``take`` / ``skip``: pagination window.
- ``cursor``: ``{"id": ...}``; the window starts at that row.
- ``_count`` / ``_sum`` / ``_avg`` / ``_min`` / ``_max``: aggregate selectors.
"""

from enum import Enum
from typing import Any, Protocol

Args = dict[str, Any]
Record = dict[str, Any]


class Operation(str, Enum):
    """Persistence operation kinds."""

    find_many = "find_many"
    find_first = "find_first"
    find_unique = "find_unique"
    count = "count"
    aggregate = "aggregate"
    create = "create"
    create_many = "create_many"
    update = "update"
    update_many = "update_many"
    delete = "delete"
    delete_many = "delete_many"


READ_OPERATIONS: frozenset[Operation] = frozenset(
    {
        Operation.find_many,
        Operation.find_first,
        Operation.find_unique,
        Operation.count,
        Operation.aggregate,
    }
)

CREATE_OPERATIONS: frozenset[Operation] = frozenset({Operation.create, Operation.create_many})

MUTATION_OPERATIONS: frozenset[Operation] = frozenset(
    {
        Operation.update,
        Operation.update_many,
        Operation.delete,
        Operation.delete_many,
    }
)

AGGREGATE_KEYS = ("_count", "_sum", "_avg", "_min", "_max")


class RecordNotFound(Exception):
    """Raised when a single-record update/delete matches nothing."""

    def __init__(self, entity: str, where: Args | None = None) -> None:
        self.entity = entity
        self.where = where or {}
        super().__init__(f"{entity} not found")


class UnknownEntity(Exception):
    """Raised when a client is asked about a model it does not know."""


class PersistenceClient(Protocol):
    """Storage backend addressed by entity name and operation kind."""

    async def execute(self, entity: str, operation: Operation, args: Args) -> Any:
        """Run one operation.

        Args:
            entity: Model name (e.g. "Patient")
            operation: Operation kind
            args: Operation arguments

        Returns:
            Record(s), a count, or an aggregate dict depending on operation
        """
        ...
