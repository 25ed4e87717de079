"""Export JSON schemas for the patient API payloads."""

import json
from pathlib import Path

from backend.app.api.routes.patients import PatientCreate, PatientResponse, PatientUpdate


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for model in (PatientCreate, PatientUpdate, PatientResponse):
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(), f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")


if __name__ == "__main__":
    main()
