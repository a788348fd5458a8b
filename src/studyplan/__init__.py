"""Study plan allocation engine."""

from .engine import GenerationRequest, generate_plan, plan_from_optimizer_output, rebalance_plan
from .models import Plan, Resource, parse_rebalance_options

__all__ = [
    "GenerationRequest",
    "Plan",
    "Resource",
    "generate_plan",
    "parse_rebalance_options",
    "plan_from_optimizer_output",
    "rebalance_plan",
]

__version__ = "0.1.0"
