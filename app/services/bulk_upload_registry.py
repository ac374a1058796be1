from __future__ import annotations

from typing import Any

from app.core.config import settings
from app.services.bulk_upload_driver_schema import DRIVER_SCHEMA
from app.services.bulk_upload_schema import EntitySchema
from app.services.bulk_upload_transporter_schema import TRANSPORTER_SCHEMA
from app.services.bulk_upload_vehicle_schema import VEHICLE_SCHEMA
from app.services.bulk_upload_warehouse_schema import WAREHOUSE_SCHEMA

_SCHEMAS: dict[str, EntitySchema] = {
    schema.key: schema for schema in (VEHICLE_SCHEMA, WAREHOUSE_SCHEMA, TRANSPORTER_SCHEMA, DRIVER_SCHEMA)
}


def _enabled_keys() -> set[str]:
    configured = (settings.BULK_UPLOAD_ENTITY_TYPES or "").strip()
    if not configured:
        return set(_SCHEMAS)
    return {key for key in configured.split(",") if key in _SCHEMAS}


def get_entity_schema(entity_type: str) -> EntitySchema | None:
    wanted = (entity_type or "").strip().lower()
    if wanted not in _enabled_keys():
        return None
    return _SCHEMAS.get(wanted)


def list_entity_types() -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for key in sorted(_enabled_keys()):
        schema = _SCHEMAS[key]
        rows.append(
            {
                "key": schema.key,
                "display_name": schema.display_name,
                "reference_column": schema.reference_column,
                "sheets": schema.sheet_names + [schema.instructions_sheet],
            }
        )
    return rows
