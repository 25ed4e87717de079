"""Unit tests for the tenant-scoping interceptor.

Tests cover:
1. Read scoping, including caller-supplied conflicting clinic_id
2. Create stamping and the cross-tenant create policies
3. Mutation scoping on and off
4. Pass-through for unregistered models and for missing context
5. Metrics wiring
"""

from typing import Any

import pytest
from prometheus_client import REGISTRY

from backend.app.config import Settings
from backend.app.db.client import Operation
from backend.app.tenancy.context import TenantContext, tenant_scope
from backend.app.tenancy.errors import CrossTenantWrite
from backend.app.tenancy.interceptor import (
    TenantInterceptor,
    TenantPolicy,
    TenantScopedClient,
    create_tenant_interceptor,
)

CTX_A = TenantContext(tenant_id="clinic-A", user_id="u1")

READ_OPS = [
    Operation.find_many,
    Operation.find_first,
    Operation.find_unique,
    Operation.count,
    Operation.aggregate,
]


class RecordingClient:
    """PersistenceClient double recording what reaches storage."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Operation, dict[str, Any]]] = []

    async def execute(self, entity: str, operation: Operation, args: dict[str, Any]) -> Any:
        self.calls.append((entity, operation, args))
        return args


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.parametrize("operation", READ_OPS)
def test_read_with_empty_filter_gets_clinic(operation: Operation) -> None:
    """Test an empty filter becomes {clinic_id: active}."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("Patient", operation, {"where": {}})

    assert scoped["where"] == {"clinic_id": "clinic-A"}


def test_read_without_where_gets_clinic() -> None:
    """Test a read with no filter at all is still scoped."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("Patient", Operation.find_many, {})
        scoped_none = interceptor.apply("Patient", Operation.count, None)

    assert scoped["where"] == {"clinic_id": "clinic-A"}
    assert scoped_none["where"] == {"clinic_id": "clinic-A"}


def test_read_conflicting_clinic_is_overridden() -> None:
    """Test a caller-supplied clinic_id cannot escape the tenant."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "Patient", Operation.find_many, {"where": {"clinic_id": "clinic-B"}}
        )

    assert scoped["where"] == {"clinic_id": "clinic-A"}


def test_read_caller_filter_is_kept_and_narrowed() -> None:
    """Test other filter keys survive next to the injected clause."""
    interceptor = TenantInterceptor()
    args = {
        "where": {"last_name": "Rao", "OR": [{"clinic_id": "clinic-B"}, {"gender": "MALE"}]},
        "take": 10,
        "order_by": {"updated_at": "desc"},
    }

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("Appointment", Operation.find_many, args)

    assert scoped["where"]["clinic_id"] == "clinic-A"
    assert scoped["where"]["last_name"] == "Rao"
    assert scoped["where"]["OR"] == args["where"]["OR"]
    assert scoped["take"] == 10
    assert scoped["order_by"] == {"updated_at": "desc"}


def test_caller_args_are_not_mutated() -> None:
    """Test the interceptor returns a copy instead of editing the caller's dict."""
    interceptor = TenantInterceptor()
    args = {"where": {"clinic_id": "clinic-B"}}

    with tenant_scope(CTX_A):
        interceptor.apply("Patient", Operation.find_many, args)

    assert args == {"where": {"clinic_id": "clinic-B"}}


def test_create_stamps_missing_clinic() -> None:
    """Test a create payload without clinic_id gets the active one."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("Patient", Operation.create, {"data": {"name": "X"}})

    assert scoped["data"] == {"name": "X", "clinic_id": "clinic-A"}


def test_create_same_clinic_is_untouched() -> None:
    """Test a payload already naming the active clinic is left alone."""
    interceptor = TenantInterceptor(policy=TenantPolicy(create_override="reject"))

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "Patient", Operation.create, {"data": {"name": "X", "clinic_id": "clinic-A"}}
        )

    assert scoped["data"] == {"name": "X", "clinic_id": "clinic-A"}


def test_create_other_clinic_kept_by_default() -> None:
    """Test the default keep policy passes a foreign clinic_id through."""
    interceptor = TenantInterceptor()
    before = _sample(
        "tenant_cross_tenant_writes_total",
        {"entity": "Invoice", "operation": "create", "outcome": "kept"},
    )

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "Invoice", Operation.create, {"data": {"total": 10, "clinic_id": "clinic-B"}}
        )

    assert scoped["data"]["clinic_id"] == "clinic-B"
    after = _sample(
        "tenant_cross_tenant_writes_total",
        {"entity": "Invoice", "operation": "create", "outcome": "kept"},
    )
    assert after == before + 1


def test_create_other_clinic_overridden() -> None:
    """Test the override policy replaces a foreign clinic_id."""
    interceptor = TenantInterceptor(policy=TenantPolicy(create_override="override"))

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "Invoice", Operation.create, {"data": {"total": 10, "clinic_id": "clinic-B"}}
        )

    assert scoped["data"]["clinic_id"] == "clinic-A"


def test_create_other_clinic_rejected() -> None:
    """Test the reject policy raises CrossTenantWrite."""
    interceptor = TenantInterceptor(policy=TenantPolicy(create_override="reject"))

    with tenant_scope(CTX_A):
        with pytest.raises(CrossTenantWrite) as exc_info:
            interceptor.apply(
                "Invoice", Operation.create, {"data": {"total": 10, "clinic_id": "clinic-B"}}
            )

    assert exc_info.value.entity == "Invoice"
    assert exc_info.value.active_tenant == "clinic-A"
    assert exc_info.value.requested_tenant == "clinic-B"


def test_create_many_stamps_each_row() -> None:
    """Test create_many stamps every row lacking clinic_id."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "LabTest",
            Operation.create_many,
            {"data": [{"name": "CBC"}, {"name": "HbA1c", "clinic_id": "clinic-A"}]},
        )

    assert [row["clinic_id"] for row in scoped["data"]] == ["clinic-A", "clinic-A"]


@pytest.mark.parametrize(
    "operation",
    [Operation.update, Operation.update_many, Operation.delete, Operation.delete_many],
)
def test_mutations_scoped_by_default(operation: Operation) -> None:
    """Test update/delete filters get the active clinic."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        scoped = interceptor.apply(
            "Patient", operation, {"where": {"id": "p1", "clinic_id": "clinic-B"}}
        )

    assert scoped["where"] == {"id": "p1", "clinic_id": "clinic-A"}


def test_update_moving_row_to_other_clinic_rejected() -> None:
    """Test an update payload cannot reassign a row to another clinic."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        with pytest.raises(CrossTenantWrite):
            interceptor.apply(
                "Patient",
                Operation.update,
                {"where": {"id": "p1"}, "data": {"clinic_id": "clinic-B"}},
            )


def test_mutations_pass_through_when_scoping_disabled() -> None:
    """Test the legacy policy leaves update/delete untouched."""
    interceptor = TenantInterceptor(policy=TenantPolicy(scope_mutations=False))
    args = {"where": {"id": "p1"}, "data": {"first_name": "Y"}}

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("Patient", Operation.update, args)
        deleted = interceptor.apply("Patient", Operation.delete, {"where": {"id": "p1"}})

    assert scoped is args
    assert deleted == {"where": {"id": "p1"}}


@pytest.mark.parametrize("operation", list(Operation))
def test_unregistered_model_passes_through(operation: Operation) -> None:
    """Test models outside the registry are never modified."""
    interceptor = TenantInterceptor()
    args = {"where": {"name": "cpu"}, "data": {"name": "cpu"}}

    with tenant_scope(CTX_A):
        assert interceptor.apply("SystemMetric", operation, args) is args

    assert interceptor.apply("SystemMetric", operation, args) is args


@pytest.mark.parametrize("operation", list(Operation))
def test_no_context_passes_through(operation: Operation) -> None:
    """Test registered models are untouched when no context is installed."""
    interceptor = TenantInterceptor()
    args = {"where": {"clinic_id": "clinic-B"}, "data": {"name": "X"}}

    assert interceptor.apply("Patient", operation, args) is args
    assert args == {"where": {"clinic_id": "clinic-B"}, "data": {"name": "X"}}


def test_no_context_create_is_not_stamped() -> None:
    """Test a script-style create keeps the payload as authored."""
    interceptor = TenantInterceptor()

    scoped = interceptor.apply("Patient", Operation.create, {"data": {"name": "X"}})

    assert scoped == {"data": {"name": "X"}}


def test_custom_registry_and_field() -> None:
    """Test the registry and tenant column are configurable."""
    interceptor = TenantInterceptor(
        policy=TenantPolicy(tenant_field="tenant_id"), registry=frozenset({"Ticket"})
    )

    with tenant_scope(CTX_A):
        assert interceptor.apply("Ticket", Operation.find_many, {})["where"] == {
            "tenant_id": "clinic-A"
        }
        assert interceptor.apply("Patient", Operation.find_many, {}) == {}


def test_metrics_count_scoped_and_unscoped() -> None:
    """Test injection and unscoped counters move."""
    interceptor = TenantInterceptor()
    labels = {"entity": "Reminder", "operation": "find_many"}
    scoped_before = _sample("tenant_filter_injections_total", labels)
    unscoped_before = _sample("tenant_unscoped_operations_total", labels)

    with tenant_scope(CTX_A):
        interceptor.apply("Reminder", Operation.find_many, {})
    interceptor.apply("Reminder", Operation.find_many, {})

    assert _sample("tenant_filter_injections_total", labels) == scoped_before + 1
    assert _sample("tenant_unscoped_operations_total", labels) == unscoped_before + 1


def test_policy_from_settings() -> None:
    """Test the interceptor picks its policy up from settings."""
    settings = Settings(
        tenant_field="clinic_id", tenant_scope_mutations=False, tenant_create_override="reject"
    )

    interceptor = create_tenant_interceptor(settings)

    assert interceptor.policy == TenantPolicy(
        tenant_field="clinic_id", scope_mutations=False, create_override="reject"
    )


@pytest.mark.asyncio
async def test_scoped_client_delegates_rewritten_args() -> None:
    """Test TenantScopedClient forwards scoped args to the wrapped client."""
    inner = RecordingClient()
    client = TenantScopedClient(inner, TenantInterceptor())

    with tenant_scope(CTX_A):
        await client.execute("Patient", Operation.find_many, {"where": {}})
    await client.execute("SystemMetric", Operation.find_many, {"where": {}})

    assert inner.calls == [
        ("Patient", Operation.find_many, {"where": {"clinic_id": "clinic-A"}}),
        ("SystemMetric", Operation.find_many, {"where": {}}),
    ]


def test_registry_membership() -> None:
    """Test the registry lists clinic data but not platform tables."""
    from backend.app.tenancy.registry import is_tenant_scoped

    assert is_tenant_scoped("Patient")
    assert is_tenant_scoped("ClinicalTemplate")
    assert not is_tenant_scoped("SystemMetric")
    assert not is_tenant_scoped("User")
    assert not is_tenant_scoped(None)


@pytest.mark.parametrize(
    "data",
    [
        {"name": "X", "clinic_id": "clinic-A"},
        {"name": "X", "clinic_id": "clinic-B"},
        None,
    ],
)
def test_injection_counter_ignores_unchanged_creates(data: dict[str, str] | None) -> None:
    """Test creates that need no rewrite do not count as injections."""
    interceptor = TenantInterceptor()
    labels = {"entity": "LabTest", "operation": "create"}
    before = _sample("tenant_filter_injections_total", labels)
    args = {"data": data} if data is not None else {}

    with tenant_scope(CTX_A):
        scoped = interceptor.apply("LabTest", Operation.create, args)

    assert scoped is args
    assert _sample("tenant_filter_injections_total", labels) == before


def test_injection_counter_counts_stamped_create() -> None:
    """Test a create that gets clinic_id stamped is counted once."""
    interceptor = TenantInterceptor()
    labels = {"entity": "LabTest", "operation": "create_many"}
    before = _sample("tenant_filter_injections_total", labels)

    with tenant_scope(CTX_A):
        interceptor.apply("LabTest", Operation.create_many, {"data": [{"name": "CBC"}]})

    assert _sample("tenant_filter_injections_total", labels) == before + 1


def test_update_clearing_clinic_rejected() -> None:
    """Test an update cannot null out clinic_id."""
    interceptor = TenantInterceptor()

    with tenant_scope(CTX_A):
        with pytest.raises(CrossTenantWrite) as exc_info:
            interceptor.apply(
                "Patient",
                Operation.update,
                {"where": {"id": "p1"}, "data": {"clinic_id": None}},
            )

    assert exc_info.value.requested_tenant is None
