"""
Path-dependent payoff evaluation.

Reduces each simulated path to the statistics its payoffs need (terminal price,
average, running extrema) and evaluates every payoff type from those statistics.
Statistics come either from a materialized block of paths or from a streaming
accumulator fed one time step at a time; payoffs are identical either way.

Conventions [T1]:
- The average is taken over the n_steps monitoring dates after t0 (spot excluded)
- Running minimum/maximum and barrier monitoring include t0
- Touching the barrier counts as crossing it (see BarrierDirection)
- Lookback payoffs are floating strike: call S_T - min(S), put max(S) - S_T

See: Hull (2021) Ch. 26 "Exotic Options"
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

import numpy as np

from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
    intrinsic,
)

if TYPE_CHECKING:
    from exotic_pricing.options.contract import OptionContract


@dataclass(frozen=True)
class PayoffTerms:
    """
    Contract terms needed to evaluate payoffs.

    Attributes
    ----------
    strike : float
        Strike price
    barrier : float
        Barrier level
    direction : BarrierDirection
        Up or down barrier
    option_type : OptionType
        Call or put
    averaging : AveragingType
        Arithmetic or geometric averaging
    """

    strike: float
    barrier: float
    direction: BarrierDirection
    option_type: OptionType
    averaging: AveragingType = AveragingType.ARITHMETIC

    @classmethod
    def from_contract(cls, contract: "OptionContract") -> "PayoffTerms":
        return cls(
            strike=contract.strike,
            barrier=contract.barrier,
            direction=contract.barrier_direction,
            option_type=contract.option_type,
            averaging=contract.averaging,
        )


@dataclass(frozen=True)
class PathStatistics:
    """
    Per-path statistics of a block of simulations.

    Attributes
    ----------
    terminal : np.ndarray
        Price at maturity, shape (n_paths,)
    average : np.ndarray
        Arithmetic or geometric average over the monitoring dates
    minimum : np.ndarray
        Running minimum including the spot
    maximum : np.ndarray
        Running maximum including the spot
    """

    terminal: np.ndarray
    average: np.ndarray
    minimum: np.ndarray
    maximum: np.ndarray

    @property
    def n_paths(self) -> int:
        return self.terminal.shape[0]

    @property
    def finite_mask(self) -> np.ndarray:
        """True for paths whose statistics are all finite."""
        return (
            np.isfinite(self.terminal)
            & np.isfinite(self.average)
            & np.isfinite(self.minimum)
            & np.isfinite(self.maximum)
        )

    @classmethod
    def from_paths(
        cls,
        paths: np.ndarray,
        averaging: AveragingType = AveragingType.ARITHMETIC,
    ) -> "PathStatistics":
        """
        Compute statistics from materialized paths.

        Parameters
        ----------
        paths : np.ndarray
            Paths including the spot column, shape (n_paths, n_steps + 1)
        averaging : AveragingType
            Averaging used for the ``average`` statistic
        """
        if paths.ndim != 2 or paths.shape[1] < 2:
            raise ValueError(
                f"CRITICAL: paths must have shape (n_paths, n_steps + 1), got {paths.shape}"
            )
        observed = paths[:, 1:]
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            if averaging is AveragingType.ARITHMETIC:
                average = observed.mean(axis=1)
            elif averaging is AveragingType.GEOMETRIC:
                average = np.exp(np.log(observed).mean(axis=1))
            else:
                raise ValueError(f"CRITICAL: unknown averaging {averaging!r}")

        return cls(
            terminal=paths[:, -1],
            average=average,
            minimum=paths.min(axis=1),
            maximum=paths.max(axis=1),
        )


class PathAccumulator:
    """
    Streaming accumulator of path statistics.

    Keeps only running sums and extrema; prices are fed one time step at a
    time and discarded by the caller.

    Parameters
    ----------
    spot : float
        Initial spot (included in the running extrema)
    n_paths : int
        Number of paths accumulated side by side
    averaging : AveragingType
        Averaging used for the ``average`` statistic
    dtype : type
        Working precision

    Examples
    --------
    >>> acc = PathAccumulator(spot=100.0, n_paths=1)
    >>> acc.update(np.array([110.0]))
    >>> acc.update(np.array([90.0]))
    >>> stats = acc.finalize()
    >>> float(stats.average[0]), float(stats.minimum[0]), float(stats.maximum[0])
    (100.0, 90.0, 110.0)
    """

    def __init__(
        self,
        spot: float,
        n_paths: int,
        averaging: AveragingType = AveragingType.ARITHMETIC,
        dtype: type = np.float64,
    ):
        self.averaging = averaging
        self.dtype = dtype
        self.n_observations = 0
        self._running_sum = np.zeros(n_paths, dtype=dtype)
        self._terminal = np.full(n_paths, spot, dtype=dtype)
        self._minimum = np.full(n_paths, spot, dtype=dtype)
        self._maximum = np.full(n_paths, spot, dtype=dtype)

    def update(self, prices: np.ndarray) -> None:
        """Fold one monitoring date into the running statistics."""
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            if self.averaging is AveragingType.ARITHMETIC:
                self._running_sum += prices
            elif self.averaging is AveragingType.GEOMETRIC:
                self._running_sum += np.log(prices)
            else:
                raise ValueError(f"CRITICAL: unknown averaging {self.averaging!r}")
        np.minimum(self._minimum, prices, out=self._minimum)
        np.maximum(self._maximum, prices, out=self._maximum)
        self._terminal = prices.copy()
        self.n_observations += 1

    def finalize(self) -> PathStatistics:
        """Statistics over every date seen so far."""
        if self.n_observations == 0:
            raise ValueError("CRITICAL: no monitoring dates accumulated")
        count = self.dtype(self.n_observations)
        with np.errstate(over="ignore", invalid="ignore"):
            average = self._running_sum / count
            if self.averaging is AveragingType.GEOMETRIC:
                average = np.exp(average)
        return PathStatistics(
            terminal=self._terminal,
            average=average,
            minimum=self._minimum.copy(),
            maximum=self._maximum.copy(),
        )


def barrier_hit(stats: PathStatistics, terms: PayoffTerms) -> np.ndarray:
    """Boolean flags of paths that touched or crossed the barrier."""
    if terms.direction is BarrierDirection.UP:
        return terms.direction.is_hit(stats.maximum, terms.barrier)
    return terms.direction.is_hit(stats.minimum, terms.barrier)


def _lookback(stats: PathStatistics, option_type: OptionType) -> np.ndarray:
    if option_type is OptionType.CALL:
        return stats.terminal - stats.minimum
    elif option_type is OptionType.PUT:
        return stats.maximum - stats.terminal
    raise ValueError(f"CRITICAL: unknown option type {option_type!r}")


def evaluate_payoff(
    payoff_type: PayoffType,
    stats: PathStatistics,
    terms: PayoffTerms,
) -> np.ndarray:
    """
    Undiscounted payoff of one type for every path.

    [T1] knockin + knockout == plain vanilla on every path.

    Parameters
    ----------
    payoff_type : PayoffType
        Payoff to evaluate
    stats : PathStatistics
        Per-path statistics
    terms : PayoffTerms
        Strike, barrier, direction, option type

    Returns
    -------
    np.ndarray
        Payoffs, shape (n_paths,), dtype of the statistics
    """
    zero = stats.terminal.dtype.type(0)
    with np.errstate(over="ignore", invalid="ignore"):
        if payoff_type is PayoffType.PLAIN_VANILLA:
            return intrinsic(stats.terminal, terms.strike, terms.option_type)
        elif payoff_type is PayoffType.ASIAN:
            return intrinsic(stats.average, terms.strike, terms.option_type)
        elif payoff_type is PayoffType.LOOKBACK:
            return _lookback(stats, terms.option_type)
        elif payoff_type is PayoffType.KNOCKOUT:
            vanilla = intrinsic(stats.terminal, terms.strike, terms.option_type)
            return np.where(barrier_hit(stats, terms), zero, vanilla)
        elif payoff_type is PayoffType.KNOCKIN:
            vanilla = intrinsic(stats.terminal, terms.strike, terms.option_type)
            return np.where(barrier_hit(stats, terms), vanilla, zero)
        elif payoff_type is PayoffType.ALK:
            asian = intrinsic(stats.average, terms.strike, terms.option_type)
            return np.where(barrier_hit(stats, terms), zero, asian)
    raise ValueError(f"CRITICAL: unknown payoff type {payoff_type!r}")


def evaluate_payoffs(
    stats: PathStatistics,
    terms: PayoffTerms,
    payoff_types: Iterable[PayoffType],
) -> dict[PayoffType, np.ndarray]:
    """Evaluate several payoff types on the same statistics."""
    return {payoff_type: evaluate_payoff(payoff_type, stats, terms) for payoff_type in payoff_types}
