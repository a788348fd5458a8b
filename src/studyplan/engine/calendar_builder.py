"""Build the deterministic list of study days for a window.

Day budgets come from:
- the default daily budget,
- per-date exception rules (custom budget or forced rest day).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from studyplan.models import Day, ExceptionRule


class EmptyWindowError(ValueError):
    """Raised when the requested window ends before it starts."""


def _to_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def _iter_days(start: date, end: date) -> list[date]:
    days: list[date] = []
    cursor = start
    while cursor <= end:
        days.append(cursor)
        cursor += timedelta(days=1)
    return days


def resolve_exception_rules(exception_rules: list[ExceptionRule]) -> dict[date, ExceptionRule]:
    """Return one rule per date; later rules win on conflict."""
    resolved: dict[date, ExceptionRule] = {}
    for rule in exception_rules:
        resolved[rule.date] = rule
    return resolved


def build_calendar(
    *,
    start_date: str | date,
    end_date: str | date,
    exception_rules: list[ExceptionRule],
    default_budget_minutes: int,
) -> list[Day]:
    """Build one ``Day`` per date in ``[start_date, end_date]``.

    Deterministic behaviour:
    - days are iterated in ascending date order,
    - exactly one exception rule applies per date (the last one given).
    """

    start = _to_date(start_date)
    end = _to_date(end_date)
    if end < start:
        raise EmptyWindowError(f"End date {end.isoformat()} is before start date {start.isoformat()}")

    rules = resolve_exception_rules(exception_rules)

    days: list[Day] = []
    for day in _iter_days(start, end):
        rule = rules.get(day)
        if rule is None:
            days.append(Day(date=day, total_budget_minutes=max(0, int(default_budget_minutes))))
            continue

        is_rest = bool(rule.is_rest_override)
        if is_rest:
            budget = 0
        elif rule.target_minutes is not None:
            budget = max(0, int(rule.target_minutes))
        else:
            budget = max(0, int(default_budget_minutes))
        days.append(
            Day(
                date=day,
                total_budget_minutes=budget,
                is_rest_day=is_rest,
                is_manually_modified=True,
            )
        )

    return days


def study_days(days: list[Day]) -> list[Day]:
    return [day for day in days if not day.is_rest_day and day.total_budget_minutes > 0]
