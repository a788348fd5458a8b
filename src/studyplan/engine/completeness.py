"""Mop-up pass: force-place required resources the placer left behind."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from studyplan.models import SEVERITY_WARNING, Day, Notification, Resource
from studyplan.reporting.decision_trace import RULE_MOP_UP, DecisionTraceCollector

from .classifier import MOP_UP_PRIORITY, classify_resource, is_required
from .placer import TaskIdFactory, build_task

logger = logging.getLogger(__name__)

_MOP_UP_RANK = {category: rank for rank, category in enumerate(MOP_UP_PRIORITY)}


@dataclass(slots=True)
class MopUpResult:
    remaining: dict[str, int]
    notifications: list[Notification] = field(default_factory=list)
    # Resource ids whose titles appear in the summary warning.
    named_ids: list[str] = field(default_factory=list)


def _utilization(day: Day) -> float:
    if day.budget <= 0:
        return 1.0
    return day.used_minutes / day.budget


def _candidate_days(days: list[Day], threshold: float) -> list[Day]:
    return sorted(
        days,
        key=lambda d: (_utilization(d) >= threshold, -d.remaining_minutes, d.date),
    )


def _placed_parts(days: list[Day], resource_id: str) -> int:
    return sum(1 for day in days for task in day.tasks if task.resource_id == resource_id)


def resolve_completeness(
    days: list[Day],
    arena: dict[str, Resource],
    remaining: dict[str, int],
    *,
    task_ids: TaskIdFactory,
    utilization_threshold: float,
    example_title_count: int,
    trace: DecisionTraceCollector | None = None,
) -> MopUpResult:
    """Place each required leftover whole into the best day that can absorb it.

    The result carries the updated ``remaining`` mapping, at most one warning
    listing required resources that found no room, and the ids it names.
    """
    left = dict(remaining)
    candidates: list[tuple[int, int, str, Resource, str]] = []
    for resource_id, minutes in left.items():
        resource = arena.get(resource_id)
        if minutes <= 0 or resource is None:
            continue
        category = classify_resource(resource)
        if not is_required(resource, category):
            continue
        sequence = resource.sequence_order if resource.sequence_order is not None else 10**9
        rank = _MOP_UP_RANK.get(category, len(MOP_UP_PRIORITY))
        candidates.append((rank, sequence, resource_id, resource, category))
    candidates.sort(key=lambda item: item[:3])

    stuck: list[Resource] = []
    for _, _, resource_id, resource, category in candidates:
        minutes = left[resource_id]
        target = next(
            (day for day in _candidate_days(days, utilization_threshold) if day.remaining_minutes >= minutes),
            None,
        )
        if target is None:
            stuck.append(resource)
            continue

        already = _placed_parts(days, resource_id)
        target.tasks.append(
            build_task(
                resource,
                minutes=minutes,
                category=category,
                task_ids=task_ids,
                order=len(target.tasks),
                part_number=already + 1 if already else None,
            )
        )
        left[resource_id] = 0
        if trace is not None:
            trace.record(day=target.date, resource_id=resource_id, minutes=minutes, rule=RULE_MOP_UP)

    result = MopUpResult(remaining=left)
    if stuck:
        named = stuck[:example_title_count]
        result.named_ids = [resource.id for resource in named]
        examples = ", ".join(f'"{resource.title}"' for resource in named)
        more = len(stuck) - example_title_count
        suffix = f" and {more} more" if more > 0 else ""
        result.notifications.append(
            Notification(
                severity=SEVERITY_WARNING,
                code="WARN_MOP_UP_INCOMPLETE",
                message=f"{len(stuck)} required resource(s) could not be placed: {examples}{suffix}.",
            )
        )
    logger.debug("Mop-up placed %d of %d required leftovers", len(candidates) - len(stuck), len(candidates))
    return result
