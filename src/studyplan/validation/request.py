"""Validation for the top-level request shape before referenced files are loaded."""

from __future__ import annotations

from typing import Any

from .errors import ValidationError

# field -> its file-reference alternative
_REQUIRED_FIELDS = {
    "generate": {"resource_pool": "resource_pool_path"},
    "rebalance": {"resource_pool": "resource_pool_path", "prior_plan": "prior_plan_path"},
}


def validate_plan_request(payload: dict[str, Any], command: str = "generate") -> list[ValidationError]:
    """Each required input must be given inline or as a non-empty ``*_path``."""
    errors: list[ValidationError] = []

    for field, path_field in _REQUIRED_FIELDS[command].items():
        if field in payload:
            continue
        value = payload.get(path_field)
        if value is None:
            errors.append(
                ValidationError(
                    code="missing_field",
                    message=f"Missing required field: {field} (or {path_field})",
                    path=f"$.{field}",
                )
            )
        elif not isinstance(value, str) or not value.strip():
            errors.append(
                ValidationError(
                    code="invalid_type",
                    message=f"Field must be a non-empty string path: {path_field}",
                    path=f"$.{path_field}",
                )
            )

    return errors
