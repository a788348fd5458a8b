"""Generation pipeline: chunk, classify, assemble, place, synthesize, mop up, enforce, order."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any

from studyplan.models import (
    Day,
    ExceptionRule,
    GenerationOutcome,
    Notification,
    Plan,
    QuotaPool,
    Resource,
    Task,
)
from studyplan.normalization.config_resolver import DEFAULT_ENGINE_CONFIG
from studyplan.reporting.decision_trace import DecisionTraceCollector
from studyplan.reporting.warnings import (
    build_deadline_warnings,
    build_summary_infos,
    build_unplaced_warnings,
    fatal,
    info,
)

from .blocks import assemble_blocks
from .budget import enforce_budgets
from .calendar_builder import build_calendar, study_days
from .chunker import chunk_resources
from .classifier import DEFAULT_TOPIC_ORDER, classify_pool
from .completeness import resolve_completeness
from .ordering import finalize_order
from .placer import TaskIdFactory, place_blocks
from .progress import compute_domain_progress
from .quota import synthesize_quota_tasks

logger = logging.getLogger(__name__)


def _window_bound(raw: Any) -> date | str:
    if isinstance(raw, date):
        return raw
    return str(raw or "")


@dataclass(slots=True)
class GenerationRequest:
    """Everything one generation run needs; nothing is retained between runs."""

    resource_pool: list[Resource]
    start_date: date | str
    end_date: date | str
    exception_rules: list[ExceptionRule] = field(default_factory=list)
    topic_order: list[str] = field(default_factory=lambda: list(DEFAULT_TOPIC_ORDER))
    deadlines: dict[str, str] = field(default_factory=dict)
    interleave_special_topics: bool = True
    quota_pools: list[QuotaPool] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    priority_topics: tuple[str, ...] = ()
    # Completed tasks carried forward by a rebalance, pinned on their date.
    pinned_tasks: dict[date, list[Task]] = field(default_factory=dict)
    task_id_prefix: str = "task"

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "GenerationRequest":
        return cls(
            resource_pool=[Resource.from_dict(item) for item in payload.get("resource_pool", []) if isinstance(item, dict)],
            start_date=_window_bound(payload.get("start_date")),
            end_date=_window_bound(payload.get("end_date")),
            exception_rules=[
                ExceptionRule.from_dict(item) for item in payload.get("exception_rules", []) if isinstance(item, dict)
            ],
            topic_order=[str(item) for item in payload.get("topic_order") or DEFAULT_TOPIC_ORDER],
            deadlines={str(key): str(value) for key, value in (payload.get("deadlines") or {}).items()},
            interleave_special_topics=bool(payload.get("interleave_special_topics", True)),
            quota_pools=[QuotaPool.from_dict(item) for item in payload.get("quota_pools", []) if isinstance(item, dict)],
            config=dict(payload.get("config") or {}),
        )


def _empty_outcome(request: GenerationRequest, notification: Notification) -> GenerationOutcome:
    start = request.start_date if isinstance(request.start_date, date) else None
    end = request.end_date if isinstance(request.end_date, date) else None
    plan = Plan(
        schedule=[],
        start_date=start,
        end_date=end,
        topic_order=list(request.topic_order),
        deadlines=dict(request.deadlines),
        interleave_special_topics=request.interleave_special_topics,
    )
    return GenerationOutcome(plan=plan, notifications=[notification])


def _pin_tasks(calendar: list[Day], pinned: dict[date, list[Task]]) -> list[Notification]:
    notifications: list[Notification] = []
    for day in calendar:
        tasks = pinned.get(day.date)
        if not tasks:
            continue
        day.tasks.extend(replace(task, covered_topics=list(task.covered_topics)) for task in tasks)
        minutes = sum(task.duration_minutes for task in tasks)
        if day.is_rest_day:
            day.is_rest_day = False
            notifications.append(
                info(
                    "INFO_REST_DAY_REOPENED",
                    f"{day.date.isoformat()} holds completed work and is no longer a rest day.",
                )
            )
        day.total_budget_minutes = max(day.total_budget_minutes, minutes)
    return notifications


def generate_plan(request: GenerationRequest) -> GenerationOutcome:
    """Run the full generation pipeline and return the plan plus notifications."""
    config = {**DEFAULT_ENGINE_CONFIG, **request.config}

    try:
        calendar = build_calendar(
            start_date=request.start_date,
            end_date=request.end_date,
            exception_rules=request.exception_rules,
            default_budget_minutes=int(config["default_budget_minutes"]),
        )
    except ValueError as exc:
        logger.warning("Rejected study window: %s", exc)
        return _empty_outcome(request, fatal("ERR_INVALID_WINDOW", f"Invalid study window: {exc}"))

    notifications = _pin_tasks(calendar, request.pinned_tasks)
    days = study_days(calendar)
    if not days:
        return _empty_outcome(request, fatal("ERR_NO_STUDY_DAYS", "The requested window contains no study days."))

    trace = DecisionTraceCollector(start_timestamp=datetime.now(timezone.utc))
    task_ids = TaskIdFactory(request.task_id_prefix)

    active = [resource for resource in request.resource_pool if not resource.is_archived]
    titles = {resource.id: resource.title for resource in active}
    chunked, chunk_notes = chunk_resources(
        active,
        max_chunk_minutes=int(config["max_chunk_minutes"]),
        min_part_minutes=int(config["min_part_minutes"]),
    )
    notifications.extend(chunk_notes)

    arena = {resource.id: resource for resource in chunked}
    remaining = {resource.id: resource.duration_minutes for resource in chunked if resource.duration_minutes > 0}
    classified = classify_pool((arena[rid] for rid in remaining), request.topic_order)

    blocks = assemble_blocks(classified, arena, remaining)
    placement = place_blocks(
        blocks=blocks,
        days=days,
        remaining=remaining,
        min_part_minutes=int(config["min_part_minutes"]),
        task_ids=task_ids,
        interleave_special_topics=request.interleave_special_topics,
        daily_quota_start_day=int(config["daily_quota_start_day"]),
        priority_topics=request.priority_topics,
        trace=trace,
    )

    quota_placed = synthesize_quota_tasks(
        days,
        request.quota_pools,
        task_ids=task_ids,
        min_day_minutes=int(config["quota_min_day_minutes"]),
        share_factor=float(config["quota_share_factor"]),
        topic_order=request.topic_order,
        trace=trace,
    )

    mop_up = resolve_completeness(
        days,
        arena,
        placement.remaining,
        task_ids=task_ids,
        utilization_threshold=float(config["mop_up_utilization_threshold"]),
        example_title_count=int(config["mop_up_example_titles"]),
        trace=trace,
    )

    budget_notes = enforce_budgets(calendar, max_passes=config.get("budget_max_passes"), trace=trace)
    finalize_order(calendar)

    unplaced = {rid: minutes for rid, minutes in mop_up.remaining.items() if minutes > 0}
    # Resources the mop-up summary already names get no second warning.
    named_roots = {arena[rid].root_id for rid in mop_up.named_ids}
    unnamed = {
        rid: minutes
        for rid, minutes in unplaced.items()
        if rid not in arena or arena[rid].root_id not in named_roots
    }
    notifications.extend(build_unplaced_warnings(unnamed, arena, titles))
    notifications.extend(mop_up.notifications)
    notifications.extend(budget_notes)
    notifications.extend(build_deadline_warnings(calendar, request.deadlines))

    unplaced_roots = {arena[rid].root_id for rid in unplaced if rid in arena}
    placeable_roots = {arena[rid].root_id for rid in arena if arena[rid].duration_minutes > 0}
    notifications.extend(
        build_summary_infos(
            days_processed=len(calendar),
            study_days=len(days),
            resources_placed=len(placeable_roots - unplaced_roots),
            resources_total=len(placeable_roots),
            quota_placed=sum(quota_placed.values()),
            quota_total=sum(max(0, pool.total_units) for pool in request.quota_pools),
            blocks_placed=placement.placed_blocks,
            blocks_total=len(blocks),
        )
    )

    plan = Plan(
        schedule=calendar,
        progress_per_domain=compute_domain_progress(calendar),
        start_date=calendar[0].date,
        end_date=calendar[-1].date,
        topic_order=list(request.topic_order),
        deadlines=dict(request.deadlines),
        interleave_special_topics=request.interleave_special_topics,
    )
    logger.info(
        "Generated plan %s..%s: %d study days, %d resource(s) unplaced",
        plan.start_date,
        plan.end_date,
        len(days),
        len(unplaced_roots),
    )
    return GenerationOutcome(plan=plan, notifications=notifications, unplaced=unplaced, trace=trace.as_list())
