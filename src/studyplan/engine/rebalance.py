"""Rebalance an existing plan from a cutover date, keeping earlier days verbatim."""

from __future__ import annotations

import copy
import logging
from datetime import date
from typing import Any

from studyplan.models import (
    SEVERITY_ERROR,
    ExceptionRule,
    GenerationOutcome,
    Plan,
    QuotaPool,
    RebalanceOptions,
    Resource,
    StandardRebalance,
    TopicTimeRebalance,
)
from studyplan.reporting.warnings import fatal, info

from .classifier import DEFAULT_TOPIC_ORDER
from .progress import compute_domain_progress
from .replan import (
    carry_forward_completed,
    clamp_cutover,
    completed_minutes_by_resource,
    plan_window,
    split_prior_schedule,
    unconsumed_pool,
)
from .runner import GenerationRequest, generate_plan

logger = logging.getLogger(__name__)


def resolve_cutover(
    options: RebalanceOptions,
    *,
    start: date,
    end: date,
    today: date,
) -> tuple[date, list[ExceptionRule], tuple[str, ...]]:
    """Return the clamped cutover, extra exception rules and priority topics."""
    match options:
        case StandardRebalance(cutover=chosen):
            cutover = chosen if chosen is not None and chosen <= today else today
            return clamp_cutover(cutover, start, end), [], ()
        case TopicTimeRebalance(date=day, topics=topics, total_time_minutes=minutes):
            cutover = clamp_cutover(day, start, end)
            override = ExceptionRule(date=cutover, day_type="topic-time", target_minutes=max(0, minutes))
            return cutover, [override], tuple(topics)
        case _:
            raise TypeError(f"Unsupported rebalance options: {options!r}")


def _revision_prefix(prior_plan: Plan, cutover: date) -> str:
    """Task id prefix for this rebalance, unused by any task already in the plan."""
    taken = {task.id for day in prior_plan.schedule for task in day.tasks}
    revision = 1
    while any(task_id.startswith(f"task_{cutover:%Y%m%d}r{revision}_") for task_id in taken):
        revision += 1
    return f"task_{cutover:%Y%m%d}r{revision}"


def _rebalance(
    prior_plan: Plan,
    options: RebalanceOptions,
    exception_rules: list[ExceptionRule],
    resource_pool: list[Resource],
    *,
    quota_pools: list[QuotaPool],
    config: dict[str, Any],
    today: date,
) -> GenerationOutcome:
    start, end = plan_window(prior_plan)
    cutover, extra_rules, priority_topics = resolve_cutover(options, start=start, end=end, today=today)

    preserved, replannable = split_prior_schedule(prior_plan.schedule, cutover)
    completed = completed_minutes_by_resource(prior_plan.schedule)
    request = GenerationRequest(
        resource_pool=unconsumed_pool(resource_pool, completed),
        start_date=cutover,
        end_date=end,
        exception_rules=[*exception_rules, *extra_rules],
        topic_order=list(prior_plan.topic_order or DEFAULT_TOPIC_ORDER),
        deadlines=dict(prior_plan.deadlines),
        interleave_special_topics=prior_plan.interleave_special_topics,
        quota_pools=list(quota_pools),
        config=dict(config),
        priority_topics=priority_topics,
        pinned_tasks=carry_forward_completed(replannable),
        task_id_prefix=_revision_prefix(prior_plan, cutover),
    )
    suffix = generate_plan(request)
    errors = [item for item in suffix.notifications if item.severity == SEVERITY_ERROR]
    if errors:
        return GenerationOutcome(plan=copy.deepcopy(prior_plan), notifications=errors)

    schedule = [*preserved, *suffix.plan.schedule]
    plan = Plan(
        schedule=schedule,
        progress_per_domain=compute_domain_progress(schedule),
        start_date=start,
        end_date=end,
        topic_order=list(request.topic_order),
        deadlines=dict(prior_plan.deadlines),
        interleave_special_topics=prior_plan.interleave_special_topics,
    )
    notifications = [
        info(
            "INFO_REBALANCE_CUTOVER",
            f"Kept {len(preserved)} day(s) before {cutover.isoformat()}, regenerated {len(suffix.plan.schedule)}.",
        ),
        *suffix.notifications,
    ]
    return GenerationOutcome(plan=plan, notifications=notifications, unplaced=suffix.unplaced, trace=suffix.trace)


def rebalance_plan(
    prior_plan: Plan,
    options: RebalanceOptions,
    exception_rules: list[ExceptionRule],
    resource_pool: list[Resource],
    *,
    quota_pools: list[QuotaPool] | None = None,
    config: dict[str, Any] | None = None,
    today: date | None = None,
) -> GenerationOutcome:
    """Regenerate days at or after the cutover and stitch them after the kept prefix.

    ``prior_plan`` is never mutated. On any failure the prior plan comes back
    unchanged together with one error notification.
    """
    try:
        return _rebalance(
            prior_plan,
            options,
            exception_rules,
            resource_pool,
            quota_pools=list(quota_pools or []),
            config=dict(config or {}),
            today=today or date.today(),
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Rebalance failed; returning the prior plan unchanged")
        return GenerationOutcome(
            plan=copy.deepcopy(prior_plan),
            notifications=[fatal("ERR_REBALANCE_FAILED", f"Rebalance failed: {exc}")],
        )
