from __future__ import annotations

from studyplan.normalization import DEFAULT_ENGINE_CONFIG, normalize_request, resolve_engine_config, to_snake_case
from studyplan.validation import (
    ValidationReport,
    validate_domain_inputs,
    validate_inputs_with_schema,
    validate_plan_request,
)


def _resource(rid: str, **overrides: object) -> dict:
    payload: dict = {"id": rid, "title": rid, "duration_minutes": 60}
    payload.update(overrides)
    return payload


def _generate_payload(**overrides: object) -> dict:
    payload: dict = {
        "resource_pool": [_resource("a"), _resource("b")],
        "start_date": "2026-01-01",
        "end_date": "2026-01-10",
    }
    payload.update(overrides)
    return payload


def test_to_snake_case_converts_camel_case_only() -> None:
    assert to_snake_case("durationMinutes") == "duration_minutes"
    assert to_snake_case("isRestDayOverride") == "is_rest_day_override"
    assert to_snake_case("already_snake") == "already_snake"
    assert to_snake_case("Breast Imaging") == "Breast Imaging"


def test_normalize_request_maps_editor_aliases_on_resources_only() -> None:
    payload = {
        "resourcePool": [
            {"id": "a", "type": "Video Lecture", "durationMinutes": 30, "isPrimaryMaterial": True, "videoSource": "X"}
        ],
        "exceptionRules": [{"date": "2026-01-02", "isRestDayOverride": True}],
        "options": {"type": "standard"},
        "deadlines": {"Breast Imaging": "2026-01-05"},
        "areSpecialTopicsInterleaved": False,
    }

    normalized = normalize_request(payload)

    resource = normalized["resource_pool"][0]
    assert resource == {
        "id": "a",
        "resource_type": "Video Lecture",
        "duration_minutes": 30,
        "is_primary": True,
        "source": "X",
    }
    assert normalized["exception_rules"] == [{"date": "2026-01-02", "is_rest_override": True}]
    assert normalized["options"] == {"type": "standard"}
    assert normalized["deadlines"] == {"Breast Imaging": "2026-01-05"}
    assert normalized["interleave_special_topics"] is False
    assert normalized["schema_version"] == "1.0"


def test_resolve_engine_config_rejects_unknown_keys_and_clamps_ranges() -> None:
    report = ValidationReport()

    config = resolve_engine_config(
        {"quota_share_factor": 1.5, "min_part_minutes": 60, "max_chunk_minutes": 45, "shuffle": True},
        report,
    )

    assert config["quota_share_factor"] == 1.0
    assert config["max_chunk_minutes"] == 60
    assert config["default_budget_minutes"] == DEFAULT_ENGINE_CONFIG["default_budget_minutes"]
    assert [issue.code for issue in report.errors] == ["INVALID_OVERRIDE_KEY"]
    assert [issue.code for issue in report.infos] == ["INFO_CONFIG_CLAMPED", "INFO_CONFIG_CLAMPED"]


def test_resolve_engine_config_reports_non_numeric_values() -> None:
    report = ValidationReport()

    config = resolve_engine_config({"min_part_minutes": "thirty"}, report)

    assert config["min_part_minutes"] == DEFAULT_ENGINE_CONFIG["min_part_minutes"]
    assert [issue.code for issue in report.errors] == ["INVALID_CONFIG_VALUE"]


def test_plan_request_needs_inline_input_or_path() -> None:
    assert validate_plan_request({"resource_pool_path": "pool.json"}, "generate") == []

    errors = validate_plan_request({"resource_pool": [], "prior_plan_path": ""}, "rebalance")

    assert [(err.code, err.path) for err in errors] == [("invalid_type", "$.prior_plan_path")]


def test_schema_validation_collects_every_issue() -> None:
    payload = _generate_payload(
        resource_pool=[{"id": "", "duration_minutes": "long"}],
        start_date="2026-13-01",
        exception_rules=[{"target_minutes": -5}],
    )

    report = validate_inputs_with_schema(payload, "generate")

    codes = sorted(issue.code for issue in report.errors)
    assert codes == [
        "INVALID_DATE_FORMAT",
        "INVALID_TYPE",
        "MISSING_REQUIRED_FIELD",
        "MISSING_REQUIRED_FIELD",
        "OUT_OF_RANGE",
    ]


def test_schema_validation_bounds_topic_time_topics() -> None:
    payload = {
        "prior_plan": {"schedule": []},
        "resource_pool": [],
        "options": {"type": "topic-time", "date": "2026-01-02", "topics": []},
    }

    report = validate_inputs_with_schema(payload, "rebalance")

    assert [issue.code for issue in report.errors] == ["ARRAY_TOO_SHORT"]


def test_domain_validation_flags_duplicates_and_inverted_window() -> None:
    payload = _generate_payload(
        resource_pool=[_resource("a"), _resource("a", paired_resource_ids=["ghost"]), _resource("z", duration_minutes=0)],
        start_date="2026-01-10",
        end_date="2026-01-01",
        deadlines={"all": "soon"},
        exception_rules=[{"date": "2026-01-03"}, {"date": "2026-01-03", "is_rest_override": True}],
    )

    report = validate_domain_inputs(payload, "generate")

    assert sorted(issue.code for issue in report.errors) == [
        "DUPLICATE_RESOURCE_ID",
        "INVALID_DATE_FORMAT",
        "INVALID_DATE_WINDOW",
    ]
    assert sorted(issue.code for issue in report.infos) == [
        "INFO_EXCEPTION_RULE_OVERRIDDEN",
        "INFO_NON_POSITIVE_DURATION",
        "INFO_UNKNOWN_PAIRING",
    ]


def test_domain_validation_requires_topic_time_date() -> None:
    payload = {"resource_pool": [], "options": {"type": "topic-time", "topics": ["a", "b", "c", "d", "e"]}}

    report = validate_domain_inputs(payload, "rebalance")

    assert sorted(issue.code for issue in report.errors) == ["INVALID_TOPIC_COUNT", "MISSING_REQUIRED_FIELD"]
