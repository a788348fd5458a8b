"""Planning engine."""

from .calendar_builder import EmptyWindowError, build_calendar
from .external import plan_from_optimizer_output
from .rebalance import rebalance_plan
from .runner import GenerationRequest, generate_plan

__all__ = [
    "EmptyWindowError",
    "GenerationRequest",
    "build_calendar",
    "generate_plan",
    "plan_from_optimizer_output",
    "rebalance_plan",
]
