"""Reshape an external optimizer's day/resource payload into a ``Plan``.

Only the result shape is handled here; reaching the optimizer is the
caller's business.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from studyplan.models import Day, ExceptionRule, Plan, Resource, Task

from .calendar_builder import EmptyWindowError, resolve_exception_rules
from .classifier import DEFAULT_TOPIC_ORDER, classify_resource
from .ordering import finalize_order
from .progress import compute_domain_progress

DEFAULT_OPTIMIZER_BUDGET_MINUTES = 840

RESOURCE_TYPE_MAPPING: dict[str, str] = {
    "VIDEO_LECTURE": "Video Lecture",
    "HIGH_YIELD_VIDEO": "High-Yield Video",
    "READING_TEXTBOOK": "Textbook Reading",
    "CASE_COMPANION": "Case Review",
    "QUESTIONS": "Question Bank",
    "REVIEW_QUESTIONS": "Review Questions",
    "PRACTICE_EXAM": "Exam Simulation",
    "AUDIO": "Audio",
    "OTHER": "Other",
}

DOMAIN_MAPPING: dict[str, str] = {
    "THORACIC_IMAGING": "Thoracic Imaging",
    "CARDIOVASCULAR_IMAGING": "Cardiac & Vascular",
    "GASTROINTESTINAL_IMAGING": "GI Imaging",
    "GENITOURINARY_IMAGING": "GU Imaging",
    "MUSCULOSKELETAL_IMAGING": "MSK Imaging",
    "NEURORADIOLOGY": "Neuroradiology",
    "PEDIATRIC_RADIOLOGY": "Pediatric Radiology",
    "BREAST_IMAGING": "Breast Imaging",
    "NUCLEAR_MEDICINE": "Nuclear Medicine",
    "INTERVENTIONAL_RADIOLOGY": "IR",
    "ULTRASOUND_IMAGING": "Ultrasound Imaging",
    "PHYSICS": "Physics",
    "MIXED_REVIEW": "Mixed Review",
    "GENERAL": "High Yield",
}


def original_resource_id(resource_id: str) -> str:
    return resource_id.split("_part_", 1)[0] if "_part_" in resource_id else resource_id


def _task_from_optimizer(item: dict[str, Any], counter: int) -> Task:
    resource_id = str(item.get("id", ""))
    is_primary = bool(item.get("is_primary_material", False))
    resource = Resource(
        id=resource_id,
        title=str(item.get("title", resource_id)),
        domain=DOMAIN_MAPPING.get(str(item.get("domain", "")), "High Yield"),
        resource_type=RESOURCE_TYPE_MAPPING.get(str(item.get("type", "")), "Other"),
        duration_minutes=int(item.get("duration_minutes", 0) or 0),
        is_primary=is_primary,
        source=str(item.get("video_source") or item.get("book_source") or ""),
    )
    return Task(
        id=f"task_{resource_id}_{counter}",
        resource_id=resource_id,
        original_resource_id=original_resource_id(resource_id),
        title=resource.title,
        domain=resource.domain,
        resource_type=resource.resource_type,
        category=classify_resource(resource),
        duration_minutes=resource.duration_minutes,
        order=int(item.get("order", counter) or 0),
        is_optional=not is_primary,
        is_primary=is_primary,
        question_count=item.get("question_count"),
        covered_topics=[str(topic) for topic in item.get("covered_topics") or []],
    )


def plan_from_optimizer_output(
    payload: dict[str, Any],
    *,
    start_date: date,
    end_date: date,
    exception_rules: list[ExceptionRule],
    default_budget_minutes: int = DEFAULT_OPTIMIZER_BUDGET_MINUTES,
) -> Plan:
    """Map ``{"schedule": [{"date", "resources": [...]}, ...]}`` onto the window.

    Dates the optimizer skipped become rest days unless an exception rule
    says otherwise; dates outside the window are ignored.
    """
    if end_date < start_date:
        raise EmptyWindowError(f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}")

    rules = resolve_exception_rules(exception_rules)
    returned: dict[date, list[dict[str, Any]]] = {}
    for raw_day in payload.get("schedule", []):
        if not isinstance(raw_day, dict):
            continue
        returned[date.fromisoformat(str(raw_day["date"]))] = [
            item for item in raw_day.get("resources", []) if isinstance(item, dict)
        ]

    counter = 0
    schedule: list[Day] = []
    cursor = start_date
    while cursor <= end_date:
        rule = rules.get(cursor)
        if cursor in returned:
            tasks = []
            for item in returned[cursor]:
                counter += 1
                tasks.append(_task_from_optimizer(item, counter))
            budget = rule.target_minutes if rule and rule.target_minutes is not None else default_budget_minutes
            is_rest = rule.is_rest_override if rule else False
        else:
            tasks = []
            budget = rule.target_minutes if rule and rule.target_minutes is not None else 0
            is_rest = rule.is_rest_override if rule else True
        schedule.append(
            Day(
                date=cursor,
                tasks=tasks,
                total_budget_minutes=0 if is_rest else budget,
                is_rest_day=is_rest,
                is_manually_modified=rule is not None,
            )
        )
        cursor += timedelta(days=1)

    finalize_order(schedule)
    return Plan(
        schedule=schedule,
        progress_per_domain=compute_domain_progress(schedule),
        start_date=start_date,
        end_date=end_date,
        topic_order=list(DEFAULT_TOPIC_ORDER),
    )
