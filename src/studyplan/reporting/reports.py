"""Build CLI reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from studyplan.models import SEVERITY_ERROR, GenerationOutcome
from studyplan.validation import ValidationError, ValidationReport


def build_error_report(errors: list[ValidationError], code: str = "validation_error") -> dict[str, Any]:
    """Return a JSON-serializable error report."""
    return {
        "status": "error",
        "error": {
            "code": code,
            "count": len(errors),
            "details": [
                {"code": err.code, "message": err.message, "path": err.path}
                for err in errors
            ],
        },
    }


def build_error_report_with_validation(
    errors: list[ValidationError],
    validation_report: ValidationReport,
    code: str = "validation_error",
) -> dict[str, Any]:
    payload = build_error_report(errors, code=code)
    payload["validation_report"] = validation_report.as_dict()
    return payload


def build_success_report(
    outcome: GenerationOutcome,
    metrics: dict[str, Any],
    validation_report: ValidationReport,
    *,
    command: str,
    effective_config: dict[str, Any],
) -> dict[str, Any]:
    """Return a JSON-serializable report for a finished engine run.

    ``status`` is ``failed`` when the engine itself reported an error
    notification (empty window, failed rebalance).
    """
    generated_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    failed = any(item.severity == SEVERITY_ERROR for item in outcome.notifications)
    return {
        "status": "failed" if failed else "ok",
        "command": command,
        "schema_version": "1.0.0",
        "generated_at": generated_at,
        "plan": outcome.plan.as_dict(),
        "notifications": [item.as_dict() for item in outcome.notifications],
        "unplaced": dict(outcome.unplaced),
        "metrics": metrics,
        "decision_trace": list(outcome.trace),
        "effective_config": effective_config,
        "validation_report": validation_report.as_dict(),
    }
