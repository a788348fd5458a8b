"""Deterministic in-day task ordering."""

from __future__ import annotations

from studyplan.models import Day, Task

from .classifier import category_rank, task_category, type_priority


def task_priority_key(task: Task) -> tuple[int, int, int, int, int, str]:
    """Return the global in-day ordering key.

    Order:
    1) category precedence rank
    2) task-type priority
    3) original placement order
    4) chapter, then start page (missing last)
    5) title
    """

    chapter = task.chapter_number if task.chapter_number is not None else 10**9
    page = task.start_page if task.start_page is not None else 10**9
    return (
        category_rank(task_category(task)),
        type_priority(task.resource_type),
        task.order,
        chapter,
        page,
        task.title,
    )


def finalize_order(days: list[Day]) -> None:
    for day in days:
        day.tasks.sort(key=task_priority_key)
        for position, task in enumerate(day.tasks):
            task.order = position
