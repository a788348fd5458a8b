"""Per-domain progress totals over a schedule."""

from __future__ import annotations

from studyplan.models import Day


def compute_domain_progress(schedule: list[Day]) -> dict[str, dict[str, int]]:
    """Completed and total scheduled minutes per domain, domains sorted by name.

    Formulas:
    - total_minutes = sum of task durations in the domain
    - completed_minutes = same sum restricted to completed tasks
    """

    progress: dict[str, dict[str, int]] = {}
    for day in schedule:
        for task in day.tasks:
            bucket = progress.setdefault(task.domain or "Unassigned", {"completed_minutes": 0, "total_minutes": 0})
            bucket["total_minutes"] += task.duration_minutes
            if task.is_completed:
                bucket["completed_minutes"] += task.duration_minutes
    return {domain: progress[domain] for domain in sorted(progress)}
