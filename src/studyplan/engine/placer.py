"""Deterministic greedy placement of blocks onto study days.

Phases:
1) blocks in category precedence, each starting at a round-robin cursor,
2) domain-exclusive and daily-quota content on per-domain daily cursors
   when special topics are interleaved.

Rule preserved: a block never revisits a day it already walked past.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from studyplan.models import Block, Day, Resource, Task
from studyplan.reporting.decision_trace import (
    RULE_PLACE_FULL,
    RULE_PLACE_SPLIT,
    RULE_UNPLACED,
    DecisionTraceCollector,
)

from .classifier import DAILY_CATEGORIES, DAILY_QUOTA, REQUIRED_CATEGORIES

logger = logging.getLogger(__name__)


class TaskIdFactory:
    """Sequential task ids, local to one engine invocation."""

    def __init__(self, prefix: str = "task") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def next_id(self, resource_id: str) -> str:
        return f"{self._prefix}_{resource_id}_{next(self._counter)}"


def build_task(
    resource: Resource,
    *,
    minutes: int,
    category: str,
    task_ids: TaskIdFactory,
    order: int,
    part_number: int | None = None,
) -> Task:
    title = resource.title if part_number is None else f"{resource.title} (Part {part_number})"
    return Task(
        id=task_ids.next_id(resource.id),
        resource_id=resource.id,
        original_resource_id=resource.root_id,
        title=title,
        domain=resource.domain,
        resource_type=resource.resource_type,
        category=category,
        duration_minutes=minutes,
        order=order,
        is_optional=resource.is_optional,
        is_primary=resource.is_primary or category in REQUIRED_CATEGORIES,
        chapter_number=resource.chapter_number,
        start_page=resource.start_page,
        question_count=resource.question_count,
    )


@dataclass(slots=True)
class PlacementResult:
    remaining: dict[str, int]
    placed_blocks: int = 0
    incomplete_blocks: list[str] = field(default_factory=list)


def _order_blocks(blocks: list[Block], priority_topics: tuple[str, ...]) -> list[Block]:
    if not priority_topics:
        return list(blocks)
    wanted = set(priority_topics)
    first = [block for block in blocks if block.domain in wanted]
    rest = [block for block in blocks if block.domain not in wanted]
    return first + rest


def _place_block(
    block: Block,
    *,
    start: int,
    days: list[Day],
    remaining: dict[str, int],
    min_part_minutes: int,
    task_ids: TaskIdFactory,
    part_counters: dict[str, int],
    trace: DecisionTraceCollector | None,
) -> bool:
    """Walk forward from ``start`` and place every member; True when fully placed."""
    total_days = len(days)
    offset = 0
    complete = True

    for resource in block.members:
        left = remaining.get(resource.id, 0)
        while left > 0 and offset < total_days:
            day = days[(start + offset) % total_days]
            free = day.remaining_minutes

            if free >= left:
                split = part_counters.get(resource.id, 0) > 0
                part_number = part_counters[resource.id] + 1 if split else None
                day.tasks.append(
                    build_task(
                        resource,
                        minutes=left,
                        category=block.category,
                        task_ids=task_ids,
                        order=len(day.tasks),
                        part_number=part_number,
                    )
                )
                if trace is not None:
                    trace.record(
                        day=day.date,
                        resource_id=resource.id,
                        minutes=left,
                        rule=RULE_PLACE_SPLIT if split else RULE_PLACE_FULL,
                        note=f"block {block.anchor_id}",
                    )
                left = 0
                break

            if resource.is_splittable and free >= min_part_minutes:
                part = free
                rest = left - part
                if 0 < rest < min_part_minutes:
                    part = left - min_part_minutes
                if part >= min_part_minutes:
                    part_counters[resource.id] = part_counters.get(resource.id, 0) + 1
                    day.tasks.append(
                        build_task(
                            resource,
                            minutes=part,
                            category=block.category,
                            task_ids=task_ids,
                            order=len(day.tasks),
                            part_number=part_counters[resource.id],
                        )
                    )
                    if trace is not None:
                        trace.record(
                            day=day.date,
                            resource_id=resource.id,
                            minutes=part,
                            rule=RULE_PLACE_SPLIT,
                            note=f"block {block.anchor_id}, {left - part} min left",
                        )
                    left -= part

            offset += 1

        remaining[resource.id] = left
        if left > 0:
            complete = False
            if trace is not None:
                trace.record(
                    day=None,
                    resource_id=resource.id,
                    minutes=left,
                    rule=RULE_UNPLACED,
                    note="Study days exhausted before the resource was fully placed.",
                )

    return complete


def place_blocks(
    *,
    blocks: list[Block],
    days: list[Day],
    remaining: dict[str, int],
    min_part_minutes: int,
    task_ids: TaskIdFactory,
    interleave_special_topics: bool = True,
    daily_quota_start_day: int = 0,
    priority_topics: tuple[str, ...] = (),
    trace: DecisionTraceCollector | None = None,
) -> PlacementResult:
    """Place blocks greedily onto ``days`` (study days only, ascending dates).

    ``remaining`` maps resource id to minutes still to place; the updated
    mapping is returned in a new dict.
    """
    left = dict(remaining)
    result = PlacementResult(remaining=left)
    if not days:
        return result

    total_days = len(days)
    cursor = 0
    daily_cursors: dict[tuple[str, str], int] = {}
    part_counters: dict[str, int] = {}

    for block in _order_blocks(blocks, priority_topics):
        if interleave_special_topics and block.category in DAILY_CATEGORIES:
            key = (block.category, block.domain)
            if key not in daily_cursors:
                offset = daily_quota_start_day if block.category == DAILY_QUOTA else 0
                daily_cursors[key] = min(max(0, offset), total_days - 1)
            start = daily_cursors[key]
            daily_cursors[key] = (start + 1) % total_days
        else:
            start = cursor
            cursor = (cursor + 1) % total_days

        complete = _place_block(
            block,
            start=start,
            days=days,
            remaining=left,
            min_part_minutes=min_part_minutes,
            task_ids=task_ids,
            part_counters=part_counters,
            trace=trace,
        )
        if complete:
            result.placed_blocks += 1
        else:
            result.incomplete_blocks.append(block.anchor_id)

    logger.debug(
        "Placed %d/%d blocks over %d study days",
        result.placed_blocks,
        len(blocks),
        total_days,
    )
    return result


__all__ = [
    "PlacementResult",
    "TaskIdFactory",
    "build_task",
    "place_blocks",
]
