"""CLI entrypoint for studyplan."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Any

from studyplan.engine import GenerationRequest, generate_plan, rebalance_plan
from studyplan.io import read_json, write_json
from studyplan.logging_config import configure_logging
from studyplan.metrics import collect_metrics
from studyplan.models import (
    ExceptionRule,
    GenerationOutcome,
    Plan,
    QuotaPool,
    Resource,
    parse_rebalance_options,
)
from studyplan.normalization import normalize_request, resolve_engine_config
from studyplan.reporting import (
    build_error_report,
    build_error_report_with_validation,
    build_success_report,
)
from studyplan.validation import (
    ValidationError,
    ValidationReport,
    validate_domain_inputs,
    validate_inputs_with_schema,
    validate_plan_request,
)

logger = logging.getLogger(__name__)

# path field -> loaded field
_REFERENCE_FIELDS = {
    "resource_pool_path": "resource_pool",
    "exception_rules_path": "exception_rules",
    "quota_pools_path": "quota_pools",
    "prior_plan_path": "prior_plan",
}


def _resolve_input_path(request_file: Path, value: str) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return (request_file.parent / path).resolve()


def _extract_reference(target_field: str, payload: dict[str, Any]) -> Any:
    if target_field == "prior_plan":
        # A previous CLI report can be fed back as is.
        return payload.get("plan", payload)
    return payload.get(target_field, [])


def _load_referenced_inputs(request_file: Path, request: dict[str, Any]) -> tuple[dict[str, Any], list[ValidationError]]:
    loaded = dict(request)
    errors: list[ValidationError] = []

    for path_field, target_field in _REFERENCE_FIELDS.items():
        if target_field in request or not isinstance(request.get(path_field), str):
            continue
        resolved = _resolve_input_path(request_file, request[path_field])
        try:
            loaded[target_field] = _extract_reference(target_field, normalize_request(read_json(resolved)))
        except FileNotFoundError:
            errors.append(
                ValidationError(
                    code="file_not_found",
                    message=f"Referenced file not found: {resolved}",
                    path=f"$.{path_field}",
                )
            )
        except ValueError as exc:
            errors.append(
                ValidationError(
                    code="invalid_json",
                    message=str(exc),
                    path=f"$.{path_field}",
                )
            )

    return loaded, errors


def _run_engine(command: str, payload: dict[str, Any], config: dict[str, Any]) -> GenerationOutcome:
    if command == "generate":
        return generate_plan(GenerationRequest.from_dict({**payload, "config": config}))

    today = payload.get("today")
    return rebalance_plan(
        Plan.from_dict(payload["prior_plan"]),
        parse_rebalance_options(payload.get("options")),
        [ExceptionRule.from_dict(item) for item in payload.get("exception_rules", []) if isinstance(item, dict)],
        [Resource.from_dict(item) for item in payload.get("resource_pool", []) if isinstance(item, dict)],
        quota_pools=[QuotaPool.from_dict(item) for item in payload.get("quota_pools", []) if isinstance(item, dict)],
        config=config,
        today=date.fromisoformat(today) if isinstance(today, str) else None,
    )


def run_command(command: str, request_path: str, output_path: str) -> int:
    validation_report = ValidationReport()

    try:
        request_payload = read_json(request_path)
    except Exception as exc:  # noqa: BLE001
        error = build_error_report(
            [ValidationError(code="invalid_request", message=str(exc), path="$.request")],
            code="request_read_error",
        )
        write_json(output_path, error)
        return 2

    request_payload = normalize_request(request_payload)
    errors = validate_plan_request(request_payload, command)

    if errors:
        write_json(output_path, build_error_report(errors))
        return 2

    loaded_request, load_errors = _load_referenced_inputs(Path(request_path), request_payload)
    if load_errors:
        write_json(
            output_path,
            build_error_report_with_validation(
                load_errors,
                validation_report=validation_report,
                code="input_load_error",
            ),
        )
        return 2

    config = resolve_engine_config(loaded_request.get("config"), validation_report)
    validation_report.extend(validate_inputs_with_schema(loaded_request, command))
    validation_report.extend(validate_domain_inputs(loaded_request, command))

    if validation_report.has_errors:
        write_json(
            output_path,
            build_error_report_with_validation(
                validation_report.as_errors(),
                validation_report=validation_report,
                code="validation_error",
            ),
        )
        return 2

    outcome = _run_engine(command, loaded_request, config)
    report = build_success_report(
        outcome,
        collect_metrics(outcome),
        validation_report,
        command=command,
        effective_config=config,
    )
    write_json(output_path, report)
    logger.info("Wrote %s report to %s", command, output_path)
    return 0 if report["status"] == "ok" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="studyplan", description="Study plan allocation CLI")
    parser.add_argument("--log-level", default=None, help="Overrides STUDYPLAN_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser("generate", help="Generate a plan from a request JSON")
    generate_parser.add_argument("--request", required=True, help="Path to the generation request JSON")
    generate_parser.add_argument("--output", required=True, help="Path to the report JSON")

    rebalance_parser = subparsers.add_parser("rebalance", help="Rebalance an existing plan from a cutover date")
    rebalance_parser.add_argument("--request", required=True, help="Path to the rebalance request JSON")
    rebalance_parser.add_argument("--output", required=True, help="Path to the report JSON")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command in ("generate", "rebalance"):
        return run_command(args.command, args.request, args.output)

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
