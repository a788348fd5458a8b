"""Normalization for incoming request payloads."""

from __future__ import annotations

import re
from typing import Any

# Keys whose values are keyed by domain names, not by field names.
_OPAQUE_KEYS = frozenset({"deadlines", "progress_per_domain"})

# Resource and task field names used by the resource editor.
_ITEM_ALIASES = {
    "type": "resource_type",
    "is_primary_material": "is_primary",
    "book_source": "source",
    "video_source": "source",
}

_FIELD_ALIASES = {
    "total_study_time_minutes": "total_budget_minutes",
    "is_rest_day_override": "is_rest_override",
    "are_special_topics_interleaved": "interleave_special_topics",
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_IDENTIFIER = re.compile(r"^[a-z][A-Za-z0-9]*$")


def to_snake_case(key: str) -> str:
    """``durationMinutes`` -> ``duration_minutes``; anything not camelCase is kept."""
    if not _IDENTIFIER.match(key):
        return key
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _normalize_node(value: Any) -> Any:
    if isinstance(value, list):
        return [_normalize_node(item) for item in value]
    if not isinstance(value, dict):
        return value

    keys = {raw_key: to_snake_case(str(raw_key)) for raw_key in value}
    aliases = {**_FIELD_ALIASES, **_ITEM_ALIASES} if "duration_minutes" in keys.values() else _FIELD_ALIASES

    normalized: dict[str, Any] = {}
    for raw_key, item in value.items():
        key = aliases.get(keys[raw_key], keys[raw_key])
        if key in _OPAQUE_KEYS and isinstance(item, dict):
            normalized[key] = {name: _normalize_node(inner) for name, inner in item.items()}
        elif key == "source" and key in normalized and normalized[key]:
            continue
        else:
            normalized[key] = _normalize_node(item)
    return normalized


def normalize_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Return a normalized snake_case copy of an input request."""
    normalized = _normalize_node(payload)
    if "schema_version" not in normalized:
        normalized["schema_version"] = "1.0"
    return normalized
