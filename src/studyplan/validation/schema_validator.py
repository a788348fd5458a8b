"""Structural validation of generation and rebalance requests against inline schemas."""

from __future__ import annotations

from datetime import date
from typing import Any

from .errors import ValidationReport

_DATE = {"type": "string", "format": "date"}
_MINUTES = {"type": "integer", "minimum": 0}
_OPTIONAL_INT = {"type": ["integer", "null"]}

RESOURCE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "duration_minutes"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "domain": {"type": "string"},
        "resource_type": {"type": "string"},
        "duration_minutes": {"type": "integer"},
        "is_primary": {"type": "boolean"},
        "is_splittable": {"type": "boolean"},
        "is_archived": {"type": "boolean"},
        "is_optional": {"type": "boolean"},
        "paired_resource_ids": {"type": "array", "items": {"type": "string"}},
        "sequence_order": _OPTIONAL_INT,
        "source": {"type": ["string", "null"]},
        "category": {"type": ["string", "null"]},
        "chapter_number": _OPTIONAL_INT,
        "question_count": _OPTIONAL_INT,
    },
}

EXCEPTION_RULE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["date"],
    "properties": {
        "date": _DATE,
        "day_type": {"type": "string"},
        "is_rest_override": {"type": "boolean"},
        "target_minutes": {"type": ["integer", "null"], "minimum": 0},
    },
}

QUOTA_POOL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["pool_id", "total_units"],
    "properties": {
        "pool_id": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "total_units": {"type": "integer", "minimum": 0},
        "minutes_per_unit": {"type": "number", "exclusiveMinimum": 0},
        "domain": {"type": "string"},
    },
}

TASK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["resource_id", "duration_minutes"],
    "properties": {
        "id": {"type": "string"},
        "resource_id": {"type": "string", "minLength": 1},
        "duration_minutes": _MINUTES,
        "status": {"type": "string", "enum": ["pending", "completed"]},
        "order": {"type": "integer"},
    },
}

PLAN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["schedule"],
    "properties": {
        "schedule": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["date"],
                "properties": {
                    "date": _DATE,
                    "tasks": {"type": "array", "items": TASK_SCHEMA},
                    "total_budget_minutes": _MINUTES,
                    "is_rest_day": {"type": "boolean"},
                },
            },
        },
        "start_date": {"type": ["string", "null"], "format": "date"},
        "end_date": {"type": ["string", "null"], "format": "date"},
        "topic_order": {"type": "array", "items": {"type": "string"}},
        "deadlines": {"type": "object"},
    },
}

_COMMON_PROPERTIES: dict[str, Any] = {
    "resource_pool": {"type": "array", "items": RESOURCE_SCHEMA},
    "exception_rules": {"type": "array", "items": EXCEPTION_RULE_SCHEMA},
    "quota_pools": {"type": "array", "items": QUOTA_POOL_SCHEMA},
    "config": {"type": "object"},
}

GENERATION_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["resource_pool", "start_date", "end_date"],
    "properties": {
        **_COMMON_PROPERTIES,
        "start_date": _DATE,
        "end_date": _DATE,
        "topic_order": {"type": "array", "items": {"type": "string"}},
        "deadlines": {"type": "object"},
        "interleave_special_topics": {"type": "boolean"},
    },
}

REBALANCE_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["prior_plan", "resource_pool"],
    "properties": {
        **_COMMON_PROPERTIES,
        "prior_plan": PLAN_SCHEMA,
        "today": _DATE,
        "options": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {"type": "string", "enum": ["standard", "topic-time"]},
                "cutover": _DATE,
                "date": _DATE,
                "topics": {"type": "array", "items": {"type": "string"}, "minItems": 1, "maxItems": 4},
                "total_time_minutes": _MINUTES,
            },
        },
    },
}

_SCHEMA_BY_COMMAND = {
    "generate": GENERATION_REQUEST_SCHEMA,
    "rebalance": REBALANCE_REQUEST_SCHEMA,
}


def validate_inputs_with_schema(payload: dict[str, Any], command: str) -> ValidationReport:
    report = ValidationReport()
    schema = _SCHEMA_BY_COMMAND[command]
    _validate_node(value=payload, schema=schema, path="$", report=report)
    return report


def _validate_node(*, value: Any, schema: dict[str, Any], path: str, report: ValidationReport) -> None:
    expected_type = schema.get("type")
    if expected_type and not _matches_type(value, expected_type):
        report.add_error(
            code="INVALID_TYPE",
            message=f"Expected type {expected_type}, got {type(value).__name__}",
            field_path=path,
        )
        return
    if value is None:
        return

    if "enum" in schema and value not in schema["enum"]:
        report.add_error(
            code="INVALID_ENUM_VALUE",
            message=f"Value {value!r} not in enum",
            field_path=path,
        )

    if isinstance(value, dict):
        for key in schema.get("required", []):
            if key not in value:
                report.add_error(
                    code="MISSING_REQUIRED_FIELD",
                    message=f"Missing required field: {key}",
                    field_path=f"{path}.{key}",
                )
        for key, prop_schema in schema.get("properties", {}).items():
            if key in value:
                _validate_node(value=value[key], schema=prop_schema, path=f"{path}.{key}", report=report)

    elif isinstance(value, list):
        min_items = schema.get("minItems")
        if min_items is not None and len(value) < min_items:
            report.add_error(
                code="ARRAY_TOO_SHORT",
                message=f"Array must have at least {min_items} items",
                field_path=path,
            )
        max_items = schema.get("maxItems")
        if max_items is not None and len(value) > max_items:
            report.add_error(
                code="ARRAY_TOO_LONG",
                message=f"Array must have at most {max_items} items",
                field_path=path,
            )
        items_schema = schema.get("items")
        if isinstance(items_schema, dict):
            for idx, item in enumerate(value):
                _validate_node(value=item, schema=items_schema, path=f"{path}[{idx}]", report=report)

    elif isinstance(value, str):
        min_len = schema.get("minLength")
        if min_len is not None and len(value) < min_len:
            report.add_error(
                code="MISSING_REQUIRED_FIELD",
                message="String cannot be empty",
                field_path=path,
            )
        if schema.get("format") == "date" and not _is_date(value):
            report.add_error(code="INVALID_DATE_FORMAT", message="Invalid date format", field_path=path)

    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        minimum = schema.get("minimum")
        if minimum is not None and value < minimum:
            report.add_error(code="OUT_OF_RANGE", message=f"Value must be >= {minimum}", field_path=path)
        exclusive_min = schema.get("exclusiveMinimum")
        if exclusive_min is not None and value <= exclusive_min:
            report.add_error(code="OUT_OF_RANGE", message=f"Value must be > {exclusive_min}", field_path=path)


def _matches_type(value: Any, expected_type: str | list[str]) -> bool:
    if isinstance(expected_type, list):
        return any(_matches_type(value, item) for item in expected_type)
    return {
        "object": isinstance(value, dict),
        "array": isinstance(value, list),
        "string": isinstance(value, str),
        "integer": isinstance(value, int) and not isinstance(value, bool),
        "number": isinstance(value, (int, float)) and not isinstance(value, bool),
        "boolean": isinstance(value, bool),
        "null": value is None,
    }.get(expected_type, True)


def _is_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True
