"""Notification builders for generation and rebalance output."""

from __future__ import annotations

from datetime import date
from typing import Any

from studyplan.models import (
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    Day,
    Notification,
    Resource,
)

DEADLINE_ALL = "all"


def _to_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


def fatal(code: str, message: str) -> Notification:
    return Notification(severity=SEVERITY_ERROR, code=code, message=message)


def info(code: str, message: str) -> Notification:
    return Notification(severity=SEVERITY_INFO, code=code, message=message)


def build_unplaced_warnings(
    unplaced: dict[str, int],
    arena: dict[str, Resource],
    titles: dict[str, str],
) -> list[Notification]:
    """One warning per original resource that still has minutes left.

    ``unplaced`` is keyed by placed resource id (chunk parts included);
    minutes of parts are summed under their parent.
    """
    by_root: dict[str, int] = {}
    for resource_id, minutes in unplaced.items():
        if minutes <= 0:
            continue
        resource = arena.get(resource_id)
        root = resource.root_id if resource is not None else resource_id
        by_root[root] = by_root.get(root, 0) + minutes

    warnings: list[Notification] = []
    for root in sorted(by_root):
        title = titles.get(root, root)
        warnings.append(
            Notification(
                severity=SEVERITY_WARNING,
                code="WARN_RESOURCE_UNPLACED",
                message=f'Resource "{title}" could not be fully placed ({by_root[root]} min unplaced).',
            )
        )
    return warnings


def build_deadline_warnings(schedule: list[Day], deadlines: dict[str, str]) -> list[Notification]:
    """Warn when the last pending task of some content lands after its deadline.

    Keys are domain names, or ``all`` for the whole plan.
    """
    last_by_domain: dict[str, date] = {}
    last_overall: date | None = None
    for day in schedule:
        for task in day.tasks:
            if task.is_completed or task.is_synthetic:
                continue
            last_by_domain[task.domain] = max(day.date, last_by_domain.get(task.domain, day.date))
            last_overall = day.date if last_overall is None else max(last_overall, day.date)

    warnings: list[Notification] = []
    for key in sorted(deadlines):
        deadline = _to_date(deadlines[key])
        if deadline is None:
            continue
        last = last_overall if key == DEADLINE_ALL else last_by_domain.get(key)
        if last is None or last <= deadline:
            continue
        label = "All content" if key == DEADLINE_ALL else f"{key} content"
        warnings.append(
            Notification(
                severity=SEVERITY_WARNING,
                code="WARN_DEADLINE_MISSED",
                message=f"{label} is scheduled until {last.isoformat()}, after its deadline {deadline.isoformat()}.",
            )
        )
    return warnings


def build_summary_infos(
    *,
    days_processed: int,
    study_days: int,
    resources_placed: int,
    resources_total: int,
    quota_placed: int,
    quota_total: int,
    blocks_placed: int,
    blocks_total: int,
) -> list[Notification]:
    infos = [
        info("INFO_DAYS_PROCESSED", f"{days_processed} day(s) processed, {study_days} study day(s)."),
        info("INFO_RESOURCES_PLACED", f"{resources_placed}/{resources_total} resource(s) fully placed."),
    ]
    if quota_total > 0:
        percent = round(100.0 * quota_placed / quota_total, 1)
        infos.append(
            info("INFO_QUOTA_COMPLETION", f"Aggregate quota: {quota_placed}/{quota_total} units scheduled ({percent}%).")
        )
    if blocks_total > 0:
        rate = round(100.0 * blocks_placed / blocks_total, 1)
        infos.append(info("INFO_BLOCK_PLACEMENT_RATE", f"{blocks_placed}/{blocks_total} block(s) fully placed ({rate}%)."))
    return infos
