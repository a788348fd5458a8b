from __future__ import annotations

from datetime import date

from studyplan.engine import GenerationRequest, generate_plan, rebalance_plan
from studyplan.engine.rebalance import resolve_cutover
from studyplan.models import ExceptionRule, Plan, Resource, StandardRebalance, TopicTimeRebalance

START = date(2026, 1, 1)
END = date(2026, 1, 5)


def _pool() -> list[Resource]:
    return [
        Resource(
            id=f"r{idx}",
            title=f"Resource {idx}",
            domain="Physics",
            resource_type="Video Lecture",
            duration_minutes=100,
            sequence_order=idx,
        )
        for idx in range(1, 6)
    ]


def _prior_plan(completed_dates: tuple[date, ...] = ()) -> Plan:
    outcome = generate_plan(
        GenerationRequest(
            resource_pool=_pool(),
            start_date=START,
            end_date=END,
            config={"default_budget_minutes": 120},
        )
    )
    for day in outcome.plan.schedule:
        if day.date in completed_dates:
            for task in day.tasks:
                task.status = "completed"
    return outcome.plan


def _resource_ids(plan: Plan) -> list[list[str]]:
    return [[task.resource_id for task in day.tasks] for day in plan.schedule]


def test_prior_plan_places_one_resource_per_day() -> None:
    plan = _prior_plan()

    assert _resource_ids(plan) == [["r1"], ["r2"], ["r3"], ["r4"], ["r5"]]


def test_standard_rebalance_keeps_prefix_and_regenerates_suffix() -> None:
    prior = _prior_plan(completed_dates=(date(2026, 1, 1), date(2026, 1, 2)))
    before = prior.as_dict()

    outcome = rebalance_plan(
        prior,
        StandardRebalance(),
        [],
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 3),
    )

    assert prior.as_dict() == before
    assert outcome.plan.schedule[:2] == prior.schedule[:2]
    assert _resource_ids(outcome.plan) == [["r1"], ["r2"], ["r3"], ["r4"], ["r5"]]
    assert all(task.id.startswith("task_20260103r1_") for day in outcome.plan.schedule[2:] for task in day.tasks)
    assert outcome.notifications[0].code == "INFO_REBALANCE_CUTOVER"
    assert outcome.plan.progress_per_domain["Physics"] == {"completed_minutes": 200, "total_minutes": 500}


def test_completed_task_after_cutover_stays_pinned_on_its_date() -> None:
    prior = _prior_plan(completed_dates=(date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 4)))

    outcome = rebalance_plan(
        prior,
        StandardRebalance(),
        [],
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 3),
    )

    assert _resource_ids(outcome.plan)[2:] == [["r3"], ["r4"], ["r5"]]
    pinned = outcome.plan.schedule[3].tasks[0]
    assert pinned.is_completed
    assert pinned.id == prior.schedule[3].tasks[0].id


def test_pinned_completed_work_reopens_rest_day() -> None:
    prior = _prior_plan(completed_dates=(date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 4)))

    outcome = rebalance_plan(
        prior,
        StandardRebalance(),
        [ExceptionRule(date=date(2026, 1, 4), is_rest_override=True)],
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 3),
    )

    reopened = outcome.plan.schedule[3]
    assert not reopened.is_rest_day
    assert reopened.total_budget_minutes == 100
    assert [task.resource_id for task in reopened.tasks] == ["r4"]
    assert "INFO_REST_DAY_REOPENED" in {item.code for item in outcome.notifications}


def test_resolve_cutover_never_moves_past_today_and_stays_in_window() -> None:
    today = date(2026, 1, 3)

    later, _, _ = resolve_cutover(StandardRebalance(cutover=date(2026, 1, 4)), start=START, end=END, today=today)
    earlier, _, _ = resolve_cutover(StandardRebalance(cutover=date(2026, 1, 2)), start=START, end=END, today=today)
    clamped, _, _ = resolve_cutover(StandardRebalance(), start=START, end=END, today=date(2026, 2, 1))

    assert later == today
    assert earlier == date(2026, 1, 2)
    assert clamped == END


def test_topic_time_rebalance_overrides_the_day_budget() -> None:
    prior = _prior_plan(completed_dates=(date(2026, 1, 1),))

    outcome = rebalance_plan(
        prior,
        TopicTimeRebalance(date=date(2026, 1, 3), topics=("Physics",), total_time_minutes=60),
        [],
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 2),
    )

    target = outcome.plan.schedule[2]
    assert target.date == date(2026, 1, 3)
    assert target.total_budget_minutes == 60
    assert target.is_manually_modified
    assert outcome.plan.schedule[:2] == prior.schedule[:2]


def test_topic_time_date_before_window_overrides_the_clamped_day() -> None:
    prior = _prior_plan()

    outcome = rebalance_plan(
        prior,
        TopicTimeRebalance(date=date(2025, 12, 30), topics=("Physics",), total_time_minutes=60),
        [],
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 3),
    )

    first = outcome.plan.schedule[0]
    assert first.date == START
    assert first.total_budget_minutes == 60
    assert first.is_manually_modified
    assert all(day.total_budget_minutes == 120 for day in outcome.plan.schedule[1:])


def test_repeated_rebalance_on_same_cutover_keeps_task_ids_unique() -> None:
    prior = _prior_plan(completed_dates=(date(2026, 1, 1), date(2026, 1, 2)))
    options = {"config": {"default_budget_minutes": 120}, "today": date(2026, 1, 3)}
    first = rebalance_plan(prior, StandardRebalance(), [], _pool(), **options).plan
    for task in first.schedule[3].tasks:
        task.status = "completed"

    second = rebalance_plan(first, StandardRebalance(), [], _pool(), **options).plan

    ids = [task.id for day in second.schedule for task in day.tasks]
    assert len(ids) == len(set(ids))
    assert second.schedule[3].tasks[0].id.startswith("task_20260103r1_")
    pending = [task for day in second.schedule[2:] for task in day.tasks if not task.is_completed]
    assert pending
    assert all(task.id.startswith("task_20260103r2_") for task in pending)


def test_rebalance_of_empty_plan_returns_prior_plan_with_error() -> None:
    prior = Plan(schedule=[])

    outcome = rebalance_plan(prior, StandardRebalance(), [], _pool(), today=date(2026, 1, 3))

    assert outcome.plan == prior
    assert outcome.plan is not prior
    assert [item.code for item in outcome.notifications] == ["ERR_REBALANCE_FAILED"]


def test_rebalance_without_study_days_keeps_prior_plan() -> None:
    prior = _prior_plan()
    rest = [ExceptionRule(date=date(2026, 1, day), is_rest_override=True) for day in (3, 4, 5)]

    outcome = rebalance_plan(
        prior,
        StandardRebalance(),
        rest,
        _pool(),
        config={"default_budget_minutes": 120},
        today=date(2026, 1, 3),
    )

    assert outcome.plan == prior
    assert [item.code for item in outcome.notifications] == ["ERR_NO_STUDY_DAYS"]
