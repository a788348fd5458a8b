"""Synthetic aggregate-quota tasks spread over the remaining day capacity."""

from __future__ import annotations

import logging
import math

from studyplan.models import Day, QuotaPool, Task
from studyplan.reporting.decision_trace import RULE_QUOTA_SYNTHESIZED, DecisionTraceCollector

from .classifier import AGGREGATE_QUOTA, topic_index
from .placer import TaskIdFactory

logger = logging.getLogger(__name__)


def quota_target(
    *,
    remaining_quota: int,
    remaining_days: int,
    remaining_budget: int,
    share_factor: float,
    minutes_per_unit: float,
) -> int:
    """Units to schedule today: even spread, capped by the day's share and what is left."""
    if remaining_quota <= 0 or remaining_days <= 0 or minutes_per_unit <= 0:
        return 0
    return max(
        0,
        min(
            math.ceil(remaining_quota / remaining_days),
            math.floor(remaining_budget * share_factor / minutes_per_unit),
            remaining_quota,
        ),
    )


def synthesize_quota_tasks(
    days: list[Day],
    pools: list[QuotaPool],
    *,
    task_ids: TaskIdFactory,
    min_day_minutes: int,
    share_factor: float,
    topic_order: list[str],
    trace: DecisionTraceCollector | None = None,
) -> dict[str, int]:
    """Append one synthetic task per pool per eligible study day.

    ``days`` must be the study days in ascending date order. Returns the
    number of units scheduled per pool id.
    """
    remaining = {pool.pool_id: max(0, pool.total_units) for pool in pools}
    placed = {pool.pool_id: 0 for pool in pools}
    covered: set[str] = set()

    for idx, day in enumerate(days):
        covered.update(task.domain for task in day.tasks if task.domain and not task.is_synthetic)
        remaining_days = len(days) - idx

        for pool in pools:
            free = day.remaining_minutes
            if free < min_day_minutes or remaining[pool.pool_id] <= 0:
                continue
            target = quota_target(
                remaining_quota=remaining[pool.pool_id],
                remaining_days=remaining_days,
                remaining_budget=free,
                share_factor=share_factor,
                minutes_per_unit=pool.minutes_per_unit,
            )
            if target <= 0:
                continue

            minutes = max(1, math.floor(target * pool.minutes_per_unit))
            day.tasks.append(
                Task(
                    id=task_ids.next_id(pool.pool_id),
                    resource_id=pool.pool_id,
                    original_resource_id=pool.pool_id,
                    title=f"{pool.title} ({target} questions)",
                    domain=pool.domain,
                    resource_type=pool.resource_type,
                    category=AGGREGATE_QUOTA,
                    duration_minutes=minutes,
                    order=len(day.tasks),
                    is_primary=True,
                    is_synthetic=True,
                    question_count=target,
                    covered_topics=sorted(covered, key=lambda d: (topic_index(d, topic_order), d)),
                )
            )
            remaining[pool.pool_id] -= target
            placed[pool.pool_id] += target
            if trace is not None:
                trace.record(
                    day=day.date,
                    resource_id=pool.pool_id,
                    minutes=minutes,
                    rule=RULE_QUOTA_SYNTHESIZED,
                    note=f"{target} units, {remaining[pool.pool_id]} left",
                )

    logger.debug("Synthesized quota units: %s", placed)
    return placed
