"""Utilities for cutover-based replanning of an existing plan."""

from __future__ import annotations

import copy
from collections import defaultdict
from datetime import date

from studyplan.models import Day, Plan, Resource, Task


def plan_window(plan: Plan) -> tuple[date, date]:
    """Return the first and last date of ``plan``; raise when it has no days."""
    dates = [day.date for day in plan.schedule]
    start = plan.start_date or (min(dates) if dates else None)
    end = plan.end_date or (max(dates) if dates else None)
    if start is None or end is None:
        raise ValueError("Prior plan has no days to rebalance")
    return start, end


def clamp_cutover(cutover: date, start: date, end: date) -> date:
    return min(max(cutover, start), end)


def split_prior_schedule(schedule: list[Day], cutover: date) -> tuple[list[Day], list[Day]]:
    """Split into a deep-copied preserved prefix (< cutover) and the replannable rest."""
    preserved: list[Day] = []
    replannable: list[Day] = []
    for day in schedule:
        if day.date < cutover:
            preserved.append(copy.deepcopy(day))
        else:
            replannable.append(day)
    return preserved, replannable


def completed_minutes_by_resource(schedule: list[Day]) -> dict[str, int]:
    """Completed minutes per original resource id (split parts are summed)."""
    done: dict[str, int] = defaultdict(int)
    for day in schedule:
        for task in day.tasks:
            if task.is_completed:
                done[task.original_resource_id or task.resource_id] += task.duration_minutes
    return dict(done)


def carry_forward_completed(replannable: list[Day]) -> dict[date, list[Task]]:
    """Completed tasks on or after the cutover, pinned on the date they were done."""
    pinned: dict[date, list[Task]] = {}
    for day in replannable:
        completed = [copy.deepcopy(task) for task in day.tasks if task.is_completed]
        if completed:
            pinned[day.date] = completed
    return pinned


def unconsumed_pool(resources: list[Resource], completed: dict[str, int]) -> list[Resource]:
    """Drop archived and fully completed resources; shorten partially completed ones."""
    pool: list[Resource] = []
    for resource in resources:
        if resource.is_archived:
            continue
        done = completed.get(resource.id, 0)
        if done <= 0:
            pool.append(resource)
        elif done < resource.duration_minutes:
            pool.append(resource.with_duration(resource.duration_minutes - done))
    return pool
