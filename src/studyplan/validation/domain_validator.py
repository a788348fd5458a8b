"""Cross-field validation rules that a structural schema cannot express."""

from __future__ import annotations

from datetime import date
from typing import Any

from .errors import ValidationReport


def validate_domain_inputs(payload: dict[str, Any], command: str = "generate") -> ValidationReport:
    """Validate request coherence; all issues are collected, nothing short-circuits."""
    report = ValidationReport()

    resources = [item for item in payload.get("resource_pool", []) if isinstance(item, dict)]
    _validate_resources(resources, report)
    _validate_exception_rules(payload.get("exception_rules", []), report)

    if command == "generate":
        start = _parse_date(payload.get("start_date"))
        end = _parse_date(payload.get("end_date"))
        if start and end and start > end:
            report.add_error(
                code="INVALID_DATE_WINDOW",
                message="start_date must be <= end_date",
                field_path="$",
                suggested_fix="Swap the dates or adjust the study window.",
            )
        _validate_deadlines(payload.get("deadlines"), report)
    else:
        _validate_rebalance_options(payload.get("options"), report)

    return report


def _validate_resources(resources: list[dict[str, Any]], report: ValidationReport) -> None:
    resource_ids: set[str] = set()
    for idx, resource in enumerate(resources):
        resource_id = resource.get("id")
        if isinstance(resource_id, str):
            if resource_id in resource_ids:
                report.add_error(
                    code="DUPLICATE_RESOURCE_ID",
                    message=f"Duplicate resource id: {resource_id}",
                    field_path=f"$.resource_pool[{idx}].id",
                )
            resource_ids.add(resource_id)

        duration = resource.get("duration_minutes")
        if isinstance(duration, int) and not isinstance(duration, bool) and duration <= 0:
            report.add_info(
                code="INFO_NON_POSITIVE_DURATION",
                message=f"Resource {resource_id!r} has no schedulable duration and will not be placed",
                field_path=f"$.resource_pool[{idx}].duration_minutes",
            )

    for idx, resource in enumerate(resources):
        for paired_id in resource.get("paired_resource_ids") or []:
            if paired_id not in resource_ids:
                report.add_info(
                    code="INFO_UNKNOWN_PAIRING",
                    message=f"Paired resource {paired_id!r} is not in the pool and is ignored",
                    field_path=f"$.resource_pool[{idx}].paired_resource_ids",
                )


def _validate_exception_rules(rules: Any, report: ValidationReport) -> None:
    if not isinstance(rules, list):
        return
    seen: set[str] = set()
    for idx, rule in enumerate(rules):
        if not isinstance(rule, dict):
            continue
        raw = rule.get("date")
        if isinstance(raw, str) and raw in seen:
            report.add_info(
                code="INFO_EXCEPTION_RULE_OVERRIDDEN",
                message=f"Several exception rules target {raw}; the last one applies",
                field_path=f"$.exception_rules[{idx}].date",
            )
        if isinstance(raw, str):
            seen.add(raw)


def _validate_deadlines(deadlines: Any, report: ValidationReport) -> None:
    if not isinstance(deadlines, dict):
        return
    for key, raw in deadlines.items():
        if not isinstance(raw, str) or _parse_date(raw) is None:
            report.add_error(
                code="INVALID_DATE_FORMAT",
                message=f"Deadline for {key!r} must be an ISO date",
                field_path=f"$.deadlines.{key}",
            )


def _validate_rebalance_options(options: Any, report: ValidationReport) -> None:
    if not isinstance(options, dict) or options.get("type") != "topic-time":
        return
    topics = options.get("topics")
    if not isinstance(topics, list) or not 1 <= len(topics) <= 4:
        report.add_error(
            code="INVALID_TOPIC_COUNT",
            message="topic-time rebalance needs between 1 and 4 topics",
            field_path="$.options.topics",
        )
    if "date" not in options:
        report.add_error(
            code="MISSING_REQUIRED_FIELD",
            message="topic-time rebalance needs a date",
            field_path="$.options.date",
        )


def _parse_date(raw: Any) -> date | None:
    if not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None
