#!/usr/bin/env python3
"""Generate JSON schemas from the linklog Pydantic models.

Run from the docs/logging_specs directory (with linklog installed):
    python generate_schemas.py

Outputs:
    entry.schema.json     One durable/exported log entry (camelCase keys)
    payload.schema.json   Remote batch POST body
    session.schema.json   Session record (session.json)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from linklog.telemetry.models import LogEntry, RemoteLogPayload, SessionRecord


def generate_schema(model_class: type[Any], output_path: Path) -> None:
    """Generate JSON schema for a Pydantic model and write to file.

    Args:
        model_class: A Pydantic model class with model_json_schema() method.
        output_path: Path where the JSON schema file will be written.
    """
    schema = model_class.model_json_schema(by_alias=True, mode="serialization")
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2)
        f.write("\n")
    print(f"Generated: {output_path}")


def main() -> None:
    base_dir = Path(__file__).parent

    generate_schema(LogEntry, base_dir / "entry.schema.json")
    generate_schema(RemoteLogPayload, base_dir / "payload.schema.json")
    generate_schema(SessionRecord, base_dir / "session.schema.json")

    print("\nAll schemas generated successfully!")


if __name__ == "__main__":
    main()
