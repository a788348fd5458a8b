"""Bring over-budget days back under budget by relocating low-priority tasks."""

from __future__ import annotations

import logging

from studyplan.models import SEVERITY_WARNING, Day, Notification, Task
from studyplan.reporting.decision_trace import (
    RULE_BUDGET_RELOCATE,
    RULE_BUDGET_RESIDUAL,
    DecisionTraceCollector,
)

from .classifier import LOW_PRIORITY_CATEGORIES, task_category, type_priority

logger = logging.getLogger(__name__)


def removal_key(task: Task) -> tuple[bool, bool, int, bool, int]:
    """Smallest key is removed first."""
    return (
        task.is_synthetic,
        task_category(task) not in LOW_PRIORITY_CATEGORIES,
        -type_priority(task.resource_type),
        not task.is_optional,
        -task.duration_minutes,
    )


def _overshoot(day: Day) -> int:
    return day.used_minutes - day.budget


def _relocation_target(days: list[Day], source: Day, minutes: int) -> Day | None:
    best: Day | None = None
    for day in days:
        if day is source or day.is_rest_day or day.remaining_minutes < minutes:
            continue
        if best is None or day.remaining_minutes > best.remaining_minutes:
            best = day
    return best


def _relieve_day(day: Day, days: list[Day], trace: DecisionTraceCollector | None) -> int:
    moved = 0
    tried: set[int] = set()
    while _overshoot(day) > 0:
        movable = [task for task in day.tasks if not task.is_completed and id(task) not in tried]
        if not movable:
            break
        task = min(movable, key=removal_key)
        tried.add(id(task))
        target = _relocation_target(days, day, task.duration_minutes)
        if target is None:
            continue
        day.tasks.remove(task)
        task.order = len(target.tasks)
        target.tasks.append(task)
        moved += 1
        if trace is not None:
            trace.record(
                day=target.date,
                resource_id=task.resource_id,
                minutes=task.duration_minutes,
                rule=RULE_BUDGET_RELOCATE,
                note=f"moved from {day.date.isoformat()}",
            )
    return moved


def enforce_budgets(
    days: list[Day],
    *,
    max_passes: int | None = None,
    trace: DecisionTraceCollector | None = None,
) -> list[Notification]:
    """Relocate tasks until every day fits, or passes run out.

    Completed tasks never move. Ties between equally spare target days go to
    the earliest date. Any remaining overshoot is reported per day.
    """
    passes = len(days) if max_passes is None else min(max_passes, len(days))
    for _ in range(max(passes, 0)):
        over = [day for day in days if _overshoot(day) > 0]
        if not over:
            break
        moved = sum(_relieve_day(day, days, trace) for day in over)
        if moved == 0:
            break

    notifications: list[Notification] = []
    for day in days:
        excess = _overshoot(day)
        if excess <= 0:
            continue
        notifications.append(
            Notification(
                severity=SEVERITY_WARNING,
                code="WARN_DAY_OVER_BUDGET",
                message=f"{day.date.isoformat()} remains {excess} min over its {day.budget} min budget.",
            )
        )
        if trace is not None:
            trace.record(day=day.date, resource_id="", minutes=excess, rule=RULE_BUDGET_RESIDUAL)
    logger.debug("Budget enforcement left %d day(s) over budget", len(notifications))
    return notifications
