"""Remote table names and field mappings for the hosted table API.

Defines:
- REMOTE_TABLES: Table name per record kind (contact_c, deal_c, ...)
- REMOTE_FIELD_MAP: Maps internal field names to remote column names and types
- to_remote_fields(): Converts an internal dict to a remote record body
- from_remote_record(): Converts a remote record to an internal dict
- display_name(): Value for the remote "Name" display column
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from src.crm.records.schemas import EntityKind

ID_FIELD = "Id"
NAME_FIELD = "Name"


# ── Remote Tables ──────────────────────────────────────────────────────────

REMOTE_TABLES: dict[EntityKind, str] = {
    EntityKind.CONTACT: "contact_c",
    EntityKind.DEAL: "deal_c",
    EntityKind.TASK: "task_c",
    EntityKind.ACTIVITY: "activity_c",
    EntityKind.QUOTE: "quote_c",
}


# ── Field Mappings ─────────────────────────────────────────────────────────
# Remote columns carry a "_c" suffix. "type" drives value conversion.


def _fields(**types: str) -> dict[str, dict[str, str]]:
    return {name: {"remote_name": f"{name}_c", "type": kind} for name, kind in types.items()}


_ADDRESS_FIELDS = {
    f"{prefix}_{part}": "text"
    for prefix in ("billing", "shipping")
    for part in ("name", "street", "city", "state", "country", "pincode")
}

REMOTE_FIELD_MAP: dict[EntityKind, dict[str, dict[str, str]]] = {
    EntityKind.CONTACT: _fields(
        first_name="text",
        last_name="text",
        email="text",
        phone="text",
        company="text",
        position="text",
        created_at="datetime",
        last_activity="datetime",
    ),
    EntityKind.DEAL: _fields(
        title="text",
        value="number",
        stage="text",
        probability="integer",
        contact_id="lookup",
        expected_close_date="date",
        description="text",
        created_at="datetime",
        updated_at="datetime",
    ),
    EntityKind.TASK: _fields(
        title="text",
        description="text",
        due_date="date",
        priority="text",
        status="text",
        contact_id="lookup",
        deal_id="lookup",
        created_at="datetime",
    ),
    EntityKind.ACTIVITY: _fields(
        type="text",
        subject="text",
        description="text",
        contact_id="lookup",
        deal_id="lookup",
        created_at="datetime",
    ),
    EntityKind.QUOTE: _fields(
        company="text",
        contact_id="lookup",
        deal_id="lookup",
        quote_date="date",
        expires_on="date",
        status="text",
        delivery_method="text",
        created_at="datetime",
        **_ADDRESS_FIELDS,
    ),
}


# ── Conversion Functions ───────────────────────────────────────────────────


def display_name(kind: EntityKind, data: Mapping[str, Any]) -> str | None:
    """Return the remote "Name" column value for a record, if derivable."""
    if kind is EntityKind.CONTACT:
        first, last = data.get("first_name"), data.get("last_name")
        if first is None and last is None:
            return None
        return f"{first or ''} {last or ''}".strip()
    if kind in (EntityKind.DEAL, EntityKind.TASK):
        return data.get("title")
    if kind is EntityKind.ACTIVITY:
        return data.get("subject")
    if kind is EntityKind.QUOTE:
        return data.get("company")
    return None


def to_remote_fields(kind: EntityKind, data: Mapping[str, Any]) -> dict[str, Any]:
    """Convert internal field dict to a remote record body.

    Fields not in the kind's map are dropped. Explicit None values are kept
    so a partial update can clear an optional column.
    """
    field_map = REMOTE_FIELD_MAP[kind]
    body: dict[str, Any] = {}

    for field_name, value in data.items():
        if field_name not in field_map:
            continue

        mapping = field_map[field_name]
        body[mapping["remote_name"]] = _to_remote_value(value, mapping["type"])

    return body


def from_remote_record(kind: EntityKind, record: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a remote record to internal field dict.

    Lookup columns may come back expanded as {"Id": ..., "Name": ...}; only
    the id is kept.
    """
    field_map = REMOTE_FIELD_MAP[kind]
    result: dict[str, Any] = {"id": record.get(ID_FIELD)}

    for field_name, mapping in field_map.items():
        remote_name = mapping["remote_name"]
        if remote_name not in record:
            continue
        value = record[remote_name]
        if mapping["type"] == "lookup" and isinstance(value, Mapping):
            value = value.get(ID_FIELD)
        if value is not None:
            result[field_name] = value

    return result


def _to_remote_value(value: Any, field_type: str) -> Any:
    if value is None:
        return None
    if field_type in ("date", "datetime"):
        return value.isoformat() if isinstance(value, (date, datetime)) else str(value)
    if field_type == "number":
        return float(value)
    if field_type in ("integer", "lookup"):
        return int(value)
    return value
