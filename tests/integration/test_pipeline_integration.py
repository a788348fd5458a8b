from __future__ import annotations

import json
from datetime import date
from pathlib import Path

from studyplan.cli import main, run_command
from studyplan.engine import GenerationRequest, generate_plan
from studyplan.metrics import collect_metrics
from studyplan.models import ExceptionRule, QuotaPool, Resource


def _write(path: Path, payload: dict) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def _camel_pool() -> dict:
    return {
        "resourcePool": [
            {
                "id": f"r{idx}",
                "title": f"Resource {idx}",
                "domain": "Physics",
                "type": "Video Lecture",
                "durationMinutes": 100,
                "sequenceOrder": idx,
            }
            for idx in range(1, 6)
        ]
    }


def _codes(outcome) -> list[str]:
    return [item.code for item in outcome.notifications]


def test_two_resources_fill_two_days_without_warnings() -> None:
    outcome = generate_plan(
        GenerationRequest(
            resource_pool=[
                Resource(
                    id="r1",
                    title="Long lecture",
                    domain="Physics",
                    resource_type="Video Lecture",
                    duration_minutes=200,
                    is_splittable=True,
                ),
                Resource(id="r2", title="Reading", domain="Physics", resource_type="Textbook Reading", duration_minutes=150),
            ],
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 2),
            config={"default_budget_minutes": 300},
        )
    )

    assert [[task.resource_id for task in day.tasks] for day in outcome.plan.schedule] == [["r1"], ["r2"]]
    assert outcome.unplaced == {}
    assert not [item for item in outcome.notifications if item.severity != "info"]


def test_resource_larger_than_any_day_is_reported_once() -> None:
    outcome = generate_plan(
        GenerationRequest(
            resource_pool=[
                Resource(id="r", title="Marathon", domain="Physics", resource_type="Video Lecture", duration_minutes=90)
            ],
            start_date="2026-01-01",
            end_date="2026-01-01",
            config={"default_budget_minutes": 60},
        )
    )

    warnings = [item for item in outcome.notifications if item.code == "WARN_RESOURCE_UNPLACED"]
    assert len(warnings) == 1
    assert '"Marathon"' in warnings[0].message
    assert outcome.unplaced == {"r": 90}
    assert outcome.plan.schedule[0].tasks == []


def test_required_resource_that_cannot_fit_is_warned_once() -> None:
    outcome = generate_plan(
        GenerationRequest(
            resource_pool=[
                Resource(
                    id="r",
                    title="Marathon",
                    domain="Physics",
                    resource_type="Video Lecture",
                    duration_minutes=90,
                    is_primary=True,
                )
            ],
            start_date="2026-01-01",
            end_date="2026-01-01",
            config={"default_budget_minutes": 60},
        )
    )

    warnings = [item for item in outcome.notifications if item.severity == "warning"]
    assert len(warnings) == 1
    assert warnings[0].code == "WARN_MOP_UP_INCOMPLETE"
    assert '"Marathon"' in warnings[0].message
    assert "WARN_RESOURCE_UNPLACED" not in _codes(outcome)
    assert outcome.unplaced == {"r": 90}


def test_full_pipeline_with_blocks_quota_and_rest_day() -> None:
    pool = [
        Resource(
            id="lec",
            title="Breast lecture",
            domain="Breast Imaging",
            resource_type="Video Lecture",
            duration_minutes=120,
            source="Titan Radiology",
            paired_resource_ids=["ctc"],
        ),
        Resource(
            id="ctc",
            title="Breast chapter",
            domain="Breast Imaging",
            resource_type="Textbook Reading",
            duration_minutes=60,
            source="Crack the Core",
        ),
        Resource(
            id="nucs",
            title="Nucs cases",
            domain="Nuclear Medicine",
            resource_type="Case Review",
            duration_minutes=30,
        ),
        Resource(
            id="extra",
            title="Extra notes",
            domain="Physics",
            resource_type="Personal Notes",
            duration_minutes=45,
            source="Core Radiology",
        ),
    ]

    outcome = generate_plan(
        GenerationRequest(
            resource_pool=pool,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 3),
            exception_rules=[ExceptionRule(date=date(2026, 1, 2), is_rest_override=True)],
            quota_pools=[QuotaPool(pool_id="bv", title="Board questions", total_units=40)],
            config={"default_budget_minutes": 300},
        )
    )

    first, rest, last = outcome.plan.schedule
    assert rest.is_rest_day and rest.tasks == []
    assert [task.resource_id for task in first.tasks][:2] == ["lec", "ctc"]
    assert all(day.used_minutes <= day.budget for day in outcome.plan.schedule)
    synthetic = [task for day in (first, last) for task in day.tasks if task.is_synthetic]
    assert sum(task.question_count or 0 for task in synthetic) == 40
    assert outcome.unplaced == {}
    assert "INFO_QUOTA_COMPLETION" in _codes(outcome)

    metrics = collect_metrics(outcome)
    assert metrics["rest_days"] == 1
    assert metrics["synthetic_quota_units"] == 40
    assert metrics["coverage"] == 1.0
    assert metrics["over_budget_days"] == 0


def test_cli_generate_then_rebalance_from_previous_report(tmp_path: Path) -> None:
    _write(tmp_path / "pool.json", _camel_pool())
    _write(
        tmp_path / "generate.json",
        {
            "resourcePoolPath": "pool.json",
            "startDate": "2026-01-01",
            "endDate": "2026-01-05",
            "config": {"defaultBudgetMinutes": 120},
        },
    )

    exit_code = run_command("generate", str(tmp_path / "generate.json"), str(tmp_path / "out" / "plan.json"))

    assert exit_code == 0
    generated = _read(tmp_path / "out" / "plan.json")
    assert generated["status"] == "ok"
    assert [len(day["tasks"]) for day in generated["plan"]["schedule"]] == [1, 1, 1, 1, 1]
    assert generated["effective_config"]["default_budget_minutes"] == 120

    _write(
        tmp_path / "rebalance.json",
        {
            "priorPlanPath": "out/plan.json",
            "resourcePoolPath": "pool.json",
            "today": "2026-01-03",
            "options": {"type": "standard"},
            "config": {"defaultBudgetMinutes": 120},
        },
    )

    exit_code = main(
        ["rebalance", "--request", str(tmp_path / "rebalance.json"), "--output", str(tmp_path / "rebalanced.json")]
    )

    assert exit_code == 0
    rebalanced = _read(tmp_path / "rebalanced.json")
    assert rebalanced["command"] == "rebalance"
    assert rebalanced["plan"]["schedule"][:2] == generated["plan"]["schedule"][:2]
    assert rebalanced["notifications"][0]["code"] == "INFO_REBALANCE_CUTOVER"
    assert len(rebalanced["plan"]["schedule"]) == 5


def test_cli_rejects_missing_inputs_with_exit_code_2(tmp_path: Path) -> None:
    _write(tmp_path / "request.json", {"startDate": "2026-01-01", "endDate": "2026-01-05"})

    exit_code = run_command("generate", str(tmp_path / "request.json"), str(tmp_path / "out.json"))

    assert exit_code == 2
    report = _read(tmp_path / "out.json")
    assert report["status"] == "error"
    assert report["error"]["details"][0]["code"] == "missing_field"


def test_cli_reports_unreadable_referenced_file(tmp_path: Path) -> None:
    _write(
        tmp_path / "request.json",
        {"resourcePoolPath": "missing.json", "startDate": "2026-01-01", "endDate": "2026-01-05"},
    )

    exit_code = run_command("generate", str(tmp_path / "request.json"), str(tmp_path / "out.json"))

    assert exit_code == 2
    assert _read(tmp_path / "out.json")["error"]["code"] == "input_load_error"


def test_cli_validation_errors_are_aggregated(tmp_path: Path) -> None:
    _write(
        tmp_path / "request.json",
        {
            "resourcePool": [{"id": "a", "durationMinutes": 30}, {"id": "a", "durationMinutes": 30}],
            "startDate": "2026-01-05",
            "endDate": "2026-01-01",
            "config": {"unknownKnob": 1},
        },
    )

    exit_code = run_command("generate", str(tmp_path / "request.json"), str(tmp_path / "out.json"))

    assert exit_code == 2
    report = _read(tmp_path / "out.json")
    assert report["error"]["code"] == "validation_error"
    assert sorted(item["code"] for item in report["error"]["details"]) == [
        "DUPLICATE_RESOURCE_ID",
        "INVALID_DATE_WINDOW",
        "INVALID_OVERRIDE_KEY",
    ]
