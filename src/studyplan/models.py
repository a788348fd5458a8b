"""Plan data model shared by the engine, the CLI and the reports."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any

TASK_PENDING = "pending"
TASK_COMPLETED = "completed"

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


def _to_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _known_kwargs(cls: type, payload: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in payload.items() if key in names}


@dataclass(slots=True)
class Resource:
    """One unit of study content with a fixed total duration."""

    id: str
    title: str
    domain: str
    resource_type: str
    duration_minutes: int
    is_primary: bool = False
    is_splittable: bool = False
    is_archived: bool = False
    is_optional: bool = False
    paired_resource_ids: list[str] = field(default_factory=list)
    sequence_order: int | None = None
    source: str = ""
    category: str | None = None
    pages: int | None = None
    start_page: int | None = None
    end_page: int | None = None
    question_count: int | None = None
    case_count: int | None = None
    chapter_number: int | None = None
    original_resource_id: str | None = None

    @property
    def root_id(self) -> str:
        return self.original_resource_id or self.id

    def with_duration(self, minutes: int) -> "Resource":
        return replace(self, duration_minutes=minutes, paired_resource_ids=list(self.paired_resource_ids))

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Resource":
        kwargs = _known_kwargs(cls, payload)
        kwargs["id"] = str(kwargs.get("id", ""))
        kwargs["title"] = str(kwargs.get("title", kwargs["id"]))
        kwargs["domain"] = str(kwargs.get("domain", ""))
        kwargs["resource_type"] = str(kwargs.get("resource_type", ""))
        kwargs["duration_minutes"] = int(kwargs.get("duration_minutes", 0) or 0)
        kwargs["paired_resource_ids"] = [str(item) for item in kwargs.get("paired_resource_ids") or []]
        kwargs["source"] = str(kwargs.get("source") or "")
        return cls(**kwargs)

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True)
class Task:
    """A placed (possibly partial) occurrence of a resource on one day."""

    id: str
    resource_id: str
    original_resource_id: str
    title: str
    domain: str
    resource_type: str
    category: str
    duration_minutes: int
    status: str = TASK_PENDING
    order: int = 0
    is_optional: bool = False
    is_primary: bool = False
    is_synthetic: bool = False
    chapter_number: int | None = None
    start_page: int | None = None
    question_count: int | None = None
    covered_topics: list[str] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_COMPLETED

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Task":
        kwargs = _known_kwargs(cls, payload)
        kwargs["resource_id"] = str(kwargs.get("resource_id", ""))
        kwargs.setdefault("id", f"task_{kwargs['resource_id']}")
        kwargs["duration_minutes"] = int(kwargs.get("duration_minutes", 0) or 0)
        kwargs.setdefault("original_resource_id", kwargs.get("resource_id", ""))
        kwargs.setdefault("title", kwargs.get("resource_id", ""))
        kwargs.setdefault("domain", "")
        kwargs.setdefault("resource_type", "")
        kwargs.setdefault("category", "")
        kwargs["covered_topics"] = list(kwargs.get("covered_topics") or [])
        return cls(**kwargs)

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True)
class Day:
    """One calendar date of the plan."""

    date: date
    tasks: list[Task] = field(default_factory=list)
    total_budget_minutes: int = 0
    is_rest_day: bool = False
    is_manually_modified: bool = False

    @property
    def used_minutes(self) -> int:
        return sum(task.duration_minutes for task in self.tasks)

    @property
    def remaining_minutes(self) -> int:
        if self.is_rest_day:
            return 0
        return self.total_budget_minutes - self.used_minutes

    @property
    def budget(self) -> int:
        return 0 if self.is_rest_day else self.total_budget_minutes

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Day":
        return cls(
            date=_to_date(payload["date"]),
            tasks=[Task.from_dict(item) for item in payload.get("tasks", []) if isinstance(item, dict)],
            total_budget_minutes=int(payload.get("total_budget_minutes", 0) or 0),
            is_rest_day=bool(payload.get("is_rest_day", False)),
            is_manually_modified=bool(payload.get("is_manually_modified", False)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "tasks": [task.as_dict() for task in self.tasks],
            "total_budget_minutes": self.total_budget_minutes,
            "is_rest_day": self.is_rest_day,
            "is_manually_modified": self.is_manually_modified,
        }


@dataclass(slots=True)
class ExceptionRule:
    """Per-date override of the default day budget."""

    date: date
    day_type: str = "exception"
    is_rest_override: bool = False
    target_minutes: int | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ExceptionRule":
        target = payload.get("target_minutes")
        return cls(
            date=_to_date(payload["date"]),
            day_type=str(payload.get("day_type", "exception")),
            is_rest_override=bool(payload.get("is_rest_override", False)),
            target_minutes=None if target is None else int(target),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "day_type": self.day_type,
            "is_rest_override": self.is_rest_override,
            "target_minutes": self.target_minutes,
        }


@dataclass(slots=True)
class Block:
    """Transient group of an anchor resource and its topically paired resources."""

    anchor_id: str
    members: list[Resource]
    category: str

    @property
    def total_minutes(self) -> int:
        return sum(member.duration_minutes for member in self.members)

    @property
    def domain(self) -> str:
        return self.members[0].domain if self.members else ""


@dataclass(slots=True)
class QuotaPool:
    """Shared quantity (e.g. a question bank) spread over the study days."""

    pool_id: str
    title: str
    total_units: int
    minutes_per_unit: float = 1.0
    domain: str = "Mixed Review"
    resource_type: str = "Question Bank"

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "QuotaPool":
        kwargs = _known_kwargs(cls, payload)
        kwargs["pool_id"] = str(kwargs.get("pool_id", "quota"))
        kwargs["title"] = str(kwargs.get("title", kwargs["pool_id"]))
        kwargs["total_units"] = int(kwargs.get("total_units", 0) or 0)
        kwargs["minutes_per_unit"] = float(kwargs.get("minutes_per_unit", 1.0) or 1.0)
        return cls(**kwargs)


@dataclass(slots=True)
class Plan:
    """Full engine output: the ordered days plus carried-over settings."""

    schedule: list[Day]
    progress_per_domain: dict[str, dict[str, int]] = field(default_factory=dict)
    start_date: date | None = None
    end_date: date | None = None
    topic_order: list[str] = field(default_factory=list)
    deadlines: dict[str, str] = field(default_factory=dict)
    interleave_special_topics: bool = True

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Plan":
        start = payload.get("start_date")
        end = payload.get("end_date")
        return cls(
            schedule=[Day.from_dict(item) for item in payload.get("schedule", []) if isinstance(item, dict)],
            progress_per_domain={
                str(domain): {key: int(value) for key, value in values.items()}
                for domain, values in (payload.get("progress_per_domain") or {}).items()
            },
            start_date=_to_date(start) if start else None,
            end_date=_to_date(end) if end else None,
            topic_order=[str(item) for item in payload.get("topic_order", [])],
            deadlines={str(key): str(value) for key, value in (payload.get("deadlines") or {}).items()},
            interleave_special_topics=bool(payload.get("interleave_special_topics", True)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "schedule": [day.as_dict() for day in self.schedule],
            "progress_per_domain": {domain: dict(values) for domain, values in self.progress_per_domain.items()},
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "topic_order": list(self.topic_order),
            "deadlines": dict(self.deadlines),
            "interleave_special_topics": self.interleave_special_topics,
        }


@dataclass(frozen=True, slots=True)
class Notification:
    severity: str
    code: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"severity": self.severity, "code": self.code, "message": self.message}


@dataclass(slots=True)
class GenerationOutcome:
    plan: Plan
    notifications: list[Notification] = field(default_factory=list)
    unplaced: dict[str, int] = field(default_factory=dict)
    trace: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan.as_dict(),
            "notifications": [item.as_dict() for item in self.notifications],
            "unplaced": dict(self.unplaced),
            "trace": list(self.trace),
        }


@dataclass(frozen=True, slots=True)
class StandardRebalance:
    """Regenerate from today, or from an earlier date chosen by the user."""

    cutover: date | None = None


@dataclass(frozen=True, slots=True)
class TopicTimeRebalance:
    """Regenerate from ``date`` with a one-day budget and up to four priority topics."""

    date: date
    topics: tuple[str, ...]
    total_time_minutes: int


RebalanceOptions = StandardRebalance | TopicTimeRebalance


def parse_rebalance_options(payload: dict[str, Any] | None) -> RebalanceOptions:
    """Build the tagged rebalance variant from a ``{"type": ...}`` payload."""
    payload = payload or {"type": "standard"}
    kind = str(payload.get("type", "standard"))
    if kind == "standard":
        raw = payload.get("cutover") or payload.get("rebalance_date")
        return StandardRebalance(cutover=_to_date(raw) if raw else None)
    if kind == "topic-time":
        topics = tuple(str(item) for item in payload.get("topics", []))
        if not 1 <= len(topics) <= 4:
            raise ValueError("topic-time rebalance needs between 1 and 4 topics")
        return TopicTimeRebalance(
            date=_to_date(payload["date"]),
            topics=topics,
            total_time_minutes=int(payload.get("total_time_minutes", 0) or 0),
        )
    raise ValueError(f"Unknown rebalance type: {kind!r}")
