"""Registry of tenant-scoped model names.

New tenant-owned models must be added here by hand; the interceptor does not
infer scoping from the schema.
"""

TENANT_SCOPED_MODELS: frozenset[str] = frozenset(
    {
        "Patient",
        "Appointment",
        "Prescription",
        "Invoice",
        "Document",
        "VitalSign",
        "LabTest",
        "Reminder",
        "QueueEntry",
        "CustomField",
        "PrescriptionTemplate",
        "ClinicalTemplate",
    }
)


def is_tenant_scoped(entity: str | None, registry: frozenset[str] = TENANT_SCOPED_MODELS) -> bool:
    """Check whether ``entity`` must be isolated per clinic."""
    return entity is not None and entity in registry
