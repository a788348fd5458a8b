from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from studyplan.engine import GenerationRequest, generate_plan, rebalance_plan
from studyplan.metrics import collect_metrics
from studyplan.models import ExceptionRule, QuotaPool, Resource, StandardRebalance

START = date(2026, 1, 1)
END = date(2026, 1, 7)


def _pool() -> list[Resource]:
    return [
        Resource(
            id="lec1",
            title="Breast lecture",
            domain="Breast Imaging",
            resource_type="Video Lecture",
            duration_minutes=600,
            is_splittable=True,
            source="Titan Radiology",
            paired_resource_ids=["ctc1"],
        ),
        Resource(
            id="ctc1",
            title="Breast chapter",
            domain="Breast Imaging",
            resource_type="Textbook Reading",
            duration_minutes=90,
            source="Crack the Core",
        ),
        Resource(id="nis1", title="NIS module", domain="NIS", resource_type="Study Guide Reading", duration_minutes=30),
        Resource(id="nucs1", title="Nucs cases", domain="Nuclear Medicine", resource_type="Case Review", duration_minutes=45),
        Resource(
            id="gen1",
            title="Physics review",
            domain="Physics",
            resource_type="Textbook Reading",
            duration_minutes=120,
            is_splittable=True,
        ),
        Resource(id="big", title="Big atlas", domain="GI Imaging", resource_type="Textbook Reading", duration_minutes=500),
        Resource(
            id="arch",
            title="Archived video",
            domain="Physics",
            resource_type="Video Lecture",
            duration_minutes=60,
            is_archived=True,
        ),
        Resource(id="zero", title="Empty entry", domain="Physics", resource_type="Video Lecture", duration_minutes=0),
        Resource(
            id="supp",
            title="Extra reading",
            domain="GI Imaging",
            resource_type="Textbook Reading",
            duration_minutes=40,
            source="Core Radiology",
        ),
    ]


def _request(**overrides: object) -> GenerationRequest:
    payload: dict = {
        "resource_pool": _pool(),
        "start_date": START,
        "end_date": END,
        "exception_rules": [ExceptionRule(date=date(2026, 1, 4), is_rest_override=True)],
        "quota_pools": [QuotaPool(pool_id="bv", title="Board questions", total_units=100)],
        "config": {"default_budget_minutes": 300},
    }
    payload.update(overrides)
    return GenerationRequest(**payload)


def _root(resource_id: str) -> str:
    return resource_id.split("_part_")[0]


def test_determinism_same_input_same_output() -> None:
    first = generate_plan(_request())
    second = generate_plan(_request())

    assert first.plan.as_dict() == second.plan.as_dict()
    assert first.notifications == second.notifications
    assert first.unplaced == second.unplaced


def test_split_parts_conserve_total_duration() -> None:
    outcome = generate_plan(_request())

    placed: dict[str, int] = defaultdict(int)
    for day in outcome.plan.schedule:
        for task in day.tasks:
            if not task.is_synthetic:
                placed[task.original_resource_id] += task.duration_minutes
    missing: dict[str, int] = defaultdict(int)
    for resource_id, minutes in outcome.unplaced.items():
        missing[_root(resource_id)] += minutes

    for resource in _pool():
        if resource.is_archived or resource.duration_minutes <= 0:
            assert placed.get(resource.id, 0) == 0
            continue
        assert placed.get(resource.id, 0) + missing.get(resource.id, 0) == resource.duration_minutes


def test_no_day_exceeds_its_budget_and_rest_days_stay_empty() -> None:
    outcome = generate_plan(_request())

    for day in outcome.plan.schedule:
        assert day.used_minutes <= day.budget
        if day.is_rest_day:
            assert day.tasks == []


def test_every_unplaced_resource_is_reported_by_title_once() -> None:
    outcome = generate_plan(_request())
    titles = {resource.id: resource.title for resource in _pool()}
    codes = {"WARN_RESOURCE_UNPLACED", "WARN_MOP_UP_INCOMPLETE"}
    messages = [item.message for item in outcome.notifications if item.code in codes]

    assert outcome.unplaced
    roots = {_root(resource_id) for resource_id in outcome.unplaced}
    for root in roots:
        assert sum(f'"{titles[root]}"' in message for message in messages) == 1


def test_task_order_is_contiguous_per_day() -> None:
    outcome = generate_plan(_request())

    for day in outcome.plan.schedule:
        assert [task.order for task in day.tasks] == list(range(len(day.tasks)))
        assert len({task.id for task in day.tasks}) == len(day.tasks)


def test_metrics_are_clipped_in_0_1() -> None:
    metrics = collect_metrics(generate_plan(_request()))

    assert 0.0 <= metrics["coverage"] <= 1.0
    assert 0.0 <= metrics["utilization_mean"] <= 1.0
    assert all(0.0 <= value <= 1.0 for value in metrics["utilization_by_day"].values())


def test_rebalance_never_touches_days_before_cutover() -> None:
    prior = generate_plan(_request()).plan
    for day in prior.schedule[:2]:
        for task in day.tasks:
            task.status = "completed"

    for offset in range(len(prior.schedule)):
        cutover = START + timedelta(days=offset)
        outcome = rebalance_plan(
            prior,
            StandardRebalance(),
            [ExceptionRule(date=date(2026, 1, 4), is_rest_override=True)],
            _pool(),
            quota_pools=[QuotaPool(pool_id="bv", title="Board questions", total_units=100)],
            config={"default_budget_minutes": 300},
            today=cutover,
        )

        assert outcome.plan.schedule[:offset] == prior.schedule[:offset]
        assert [day.date for day in outcome.plan.schedule] == [day.date for day in prior.schedule]
        assert not [item for item in outcome.notifications if item.severity == "error"]
