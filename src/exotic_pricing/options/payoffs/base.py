"""
Enumerations and intrinsic-value helpers shared by all payoffs.

The set of payoff types is closed: every evaluator handles each member explicitly.
"""

from enum import Enum

import numpy as np


class OptionType(Enum):
    """Option type enumeration."""

    CALL = "call"
    PUT = "put"


class PayoffType(Enum):
    """Payoff types priced by the engine."""

    PLAIN_VANILLA = "plain_vanilla"
    ASIAN = "asian"
    KNOCKOUT = "knockout"
    KNOCKIN = "knockin"
    LOOKBACK = "lookback"
    ALK = "alk"  # Asian payoff, knocked out by the barrier


class AveragingType(Enum):
    """Averaging used by Asian-style payoffs."""

    ARITHMETIC = "arithmetic"
    GEOMETRIC = "geometric"


class BarrierDirection(Enum):
    """
    Side of the spot the barrier sits on.

    [T1] Touching the barrier counts as crossing it:
    UP is hit when S >= B, DOWN is hit when S <= B.
    """

    UP = "up"
    DOWN = "down"

    @classmethod
    def from_levels(cls, spot: float, barrier: float) -> "BarrierDirection":
        """Barrier at or above spot is an up barrier, below spot a down barrier."""
        return cls.UP if barrier >= spot else cls.DOWN

    def is_hit(self, level: np.ndarray, barrier: float) -> np.ndarray:
        """
        Check barrier hits against a running extremum.

        Parameters
        ----------
        level : np.ndarray
            Running maximum for UP, running minimum for DOWN
        barrier : float
            Barrier level

        Returns
        -------
        np.ndarray
            Boolean hit flags (same shape as level)
        """
        if self is BarrierDirection.UP:
            return level >= barrier
        return level <= barrier


ALL_PAYOFF_TYPES: tuple[PayoffType, ...] = tuple(PayoffType)


def intrinsic(
    underlying: np.ndarray,
    strike: float,
    option_type: OptionType,
) -> np.ndarray:
    """
    Vectorized intrinsic value.

    [T1] Call payoff: max(S - K, 0)
    [T1] Put payoff: max(K - S, 0)

    Parameters
    ----------
    underlying : np.ndarray
        Terminal prices or path averages
    strike : float
        Strike price
    option_type : OptionType
        Call or put

    Returns
    -------
    np.ndarray
        Intrinsic values, same shape and dtype as ``underlying``
    """
    strike = underlying.dtype.type(strike)
    if option_type is OptionType.CALL:
        return np.maximum(underlying - strike, 0)
    elif option_type is OptionType.PUT:
        return np.maximum(strike - underlying, 0)
    raise ValueError(f"CRITICAL: unknown option type {option_type!r}")
