"""Resolve the effective engine configuration from defaults and request overrides."""

from __future__ import annotations

from typing import Any

from studyplan.validation import ValidationReport

DEFAULT_ENGINE_CONFIG: dict[str, Any] = {
    "default_budget_minutes": 840,
    "max_chunk_minutes": 240,
    "min_part_minutes": 30,
    "quota_min_day_minutes": 30,
    "quota_share_factor": 0.5,
    "mop_up_utilization_threshold": 0.9,
    "mop_up_example_titles": 5,
    "daily_quota_start_day": 6,
    "budget_max_passes": None,
}

_ALLOWED_OVERRIDE_KEYS = set(DEFAULT_ENGINE_CONFIG)

# key -> (lower bound, upper bound or None)
_NUMERIC_BOUNDS: dict[str, tuple[float, float | None]] = {
    "default_budget_minutes": (0, 24 * 60),
    "max_chunk_minutes": (1, None),
    "min_part_minutes": (1, None),
    "quota_min_day_minutes": (0, None),
    "quota_share_factor": (0.0, 1.0),
    "mop_up_utilization_threshold": (0.0, 1.0),
    "mop_up_example_titles": (1, None),
    "daily_quota_start_day": (0, None),
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_engine_config(overrides: Any, validation_report: ValidationReport) -> dict[str, Any]:
    """Build an ordered, engine-ready configuration.

    Unknown keys are rejected as errors; out-of-range values are clamped and
    reported as infos.
    """
    config = dict(DEFAULT_ENGINE_CONFIG)
    if isinstance(overrides, dict):
        config.update(_filter_allowed_overrides(overrides, validation_report))

    for key, (low, high) in _NUMERIC_BOUNDS.items():
        value = config.get(key)
        if not _is_number(value):
            if value is not None:
                validation_report.add_error(
                    code="INVALID_CONFIG_VALUE",
                    message=f"{key} must be a number",
                    field_path=f"$.config.{key}",
                )
            config[key] = DEFAULT_ENGINE_CONFIG[key]
            continue
        clamped = max(low, value)
        if high is not None:
            clamped = min(high, clamped)
        if clamped != value:
            config[key] = type(value)(clamped)
            validation_report.add_info(
                code="INFO_CONFIG_CLAMPED",
                message=f"{key} was clamped into range",
                field_path=f"$.config.{key}",
                extra={"applied_value": config[key]},
            )

    if config["max_chunk_minutes"] < config["min_part_minutes"]:
        config["max_chunk_minutes"] = config["min_part_minutes"]
        validation_report.add_info(
            code="INFO_CONFIG_CLAMPED",
            message="max_chunk_minutes was raised to min_part_minutes",
            field_path="$.config.max_chunk_minutes",
            extra={"applied_value": config["max_chunk_minutes"]},
        )

    passes = config.get("budget_max_passes")
    if passes is not None and (not _is_number(passes) or passes < 1):
        config["budget_max_passes"] = None
        validation_report.add_info(
            code="INFO_CONFIG_CLAMPED",
            message="budget_max_passes falls back to the number of days",
            field_path="$.config.budget_max_passes",
        )

    return config


def _filter_allowed_overrides(overrides: dict[str, Any], validation_report: ValidationReport) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        if key in _ALLOWED_OVERRIDE_KEYS:
            filtered[key] = value
            continue

        validation_report.add_error(
            code="INVALID_OVERRIDE_KEY",
            message=f"Override key {key!r} is not allowed",
            field_path=f"$.config.{key}",
            suggested_fix=f"Use one of: {', '.join(sorted(_ALLOWED_OVERRIDE_KEYS))}",
        )

    return filtered
