"""Plan metrics collector."""

from __future__ import annotations

from collections import defaultdict
from statistics import mean, pstdev
from typing import Any

from studyplan.models import SEVERITY_ERROR, SEVERITY_WARNING, GenerationOutcome


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def collect_metrics(outcome: GenerationOutcome) -> dict[str, Any]:
    """Compute normalized plan metrics, ratios clamped in [0,1]."""
    schedule = outcome.plan.schedule

    utilization_by_day: dict[str, float] = {}
    over_budget_days = 0
    rest_days = 0
    planned_minutes = 0
    completed_minutes = 0
    synthetic_units = 0
    minutes_by_category: dict[str, int] = defaultdict(int)

    for day in schedule:
        used = day.used_minutes
        planned_minutes += used
        if day.is_rest_day:
            rest_days += 1
        else:
            utilization_by_day[day.date.isoformat()] = round(_clamp01(used / max(1, day.budget)), 4)
        if used > day.budget:
            over_budget_days += 1
        for task in day.tasks:
            minutes_by_category[task.category or "unclassified"] += task.duration_minutes
            if task.is_completed:
                completed_minutes += task.duration_minutes
            if task.is_synthetic:
                synthetic_units += int(task.question_count or 0)

    utilization_values = list(utilization_by_day.values())
    unplaced_minutes = sum(max(0, minutes) for minutes in outcome.unplaced.values())
    coverage = planned_minutes / max(1, planned_minutes + unplaced_minutes)

    return {
        "days_total": len(schedule),
        "rest_days": rest_days,
        "planned_minutes": planned_minutes,
        "completed_minutes": completed_minutes,
        "unplaced_minutes": unplaced_minutes,
        "coverage": round(_clamp01(coverage if schedule else 0.0), 4),
        "utilization_mean": round(mean(utilization_values), 4) if utilization_values else 0.0,
        "utilization_stdev": round(pstdev(utilization_values), 4) if utilization_values else 0.0,
        "utilization_by_day": utilization_by_day,
        "over_budget_days": over_budget_days,
        "synthetic_quota_units": synthetic_units,
        "minutes_by_category": dict(sorted(minutes_by_category.items())),
        "warning_count": sum(1 for item in outcome.notifications if item.severity == SEVERITY_WARNING),
        "error_count": sum(1 for item in outcome.notifications if item.severity == SEVERITY_ERROR),
    }
