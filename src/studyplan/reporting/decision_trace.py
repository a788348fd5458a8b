"""Decision trace utilities for placement runtime events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

RULE_PLACE_FULL = "RULE_PLACE_FULL"
RULE_PLACE_SPLIT = "RULE_PLACE_SPLIT"
RULE_UNPLACED = "RULE_UNPLACED"
RULE_QUOTA_SYNTHESIZED = "RULE_QUOTA_SYNTHESIZED"
RULE_MOP_UP = "RULE_MOP_UP"
RULE_BUDGET_RELOCATE = "RULE_BUDGET_RELOCATE"
RULE_BUDGET_RESIDUAL = "RULE_BUDGET_RESIDUAL"


@dataclass(slots=True)
class DecisionTraceCollector:
    """Collect placement decisions while the engine phases are executed."""

    start_timestamp: datetime
    _sequence: int = 0
    _items: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.start_timestamp.tzinfo is None:
            self.start_timestamp = self.start_timestamp.replace(tzinfo=timezone.utc)

    def record(
        self,
        *,
        day: date | None,
        resource_id: str,
        minutes: int,
        rule: str,
        note: str = "",
    ) -> None:
        self._sequence += 1
        timestamp = self.start_timestamp + timedelta(seconds=self._sequence)
        self._items.append(
            {
                "decision_id": f"d-{self._sequence:06d}",
                "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
                "date": day.isoformat() if day is not None else None,
                "resource_id": resource_id,
                "minutes": int(minutes),
                "rule": rule,
                "note": note,
            }
        )

    def count(self, rule: str) -> int:
        return sum(1 for item in self._items if item["rule"] == rule)

    def as_list(self) -> list[dict[str, Any]]:
        """Return trace sorted in deterministic chronological order."""
        return sorted(self._items, key=lambda item: (str(item["timestamp"]), str(item["decision_id"])))
