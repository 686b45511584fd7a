"""
Payoff definitions.

Provides:
- Enumerations of option, payoff, averaging and barrier types
- Path statistics (materialized or streamed) and payoff evaluation
"""

from exotic_pricing.options.payoffs.base import (
    ALL_PAYOFF_TYPES,
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
    intrinsic,
)
from exotic_pricing.options.payoffs.path_dependent import (
    PathAccumulator,
    PathStatistics,
    PayoffTerms,
    barrier_hit,
    evaluate_payoff,
    evaluate_payoffs,
)

__all__ = [
    # Enumerations
    "ALL_PAYOFF_TYPES",
    "AveragingType",
    "BarrierDirection",
    "OptionType",
    "PayoffType",
    "intrinsic",
    # Evaluation
    "PathAccumulator",
    "PathStatistics",
    "PayoffTerms",
    "barrier_hit",
    "evaluate_payoff",
    "evaluate_payoffs",
]
