"""
Reduction of per-path payoffs into price estimates.

Partial results are (count, mean, M2) moments accumulated in float64 whatever the
working precision. Merging two moments is associative and commutative up to
floating-point rounding, so a pairwise tree of partial reductions (parallel
strategy) and a left fold over blocks (sequential strategy) estimate the same
quantity.

[T1] Chan, Golub & LeVeque (1979) pairwise update:
    n = n_a + n_b
    mean = mean_a + δ n_b / n
    M2 = M2_a + M2_b + δ² n_a n_b / n,   δ = mean_b - mean_a
"""

from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, Iterable, Sequence, TypeVar

import numpy as np

from exotic_pricing.options.payoffs.base import PayoffType

T = TypeVar("T")

#: 95% normal quantile for confidence intervals
_Z_95 = 1.96


@dataclass(frozen=True)
class RunningMoments:
    """
    Count, mean and sum of squared deviations of a sample.

    Attributes
    ----------
    count : int
        Number of samples
    mean : float
        Sample mean
    m2 : float
        Sum of squared deviations from the mean
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    @classmethod
    def from_samples(cls, values: np.ndarray) -> "RunningMoments":
        """
        Moments of a sample, computed in float64.

        Samples are scaled by their largest magnitude before summing, so a sample
        of finite values near the top of the float64 range still has a finite
        mean. M2 overflows only when the sum of squared deviations itself is not
        representable.
        """
        x = np.asarray(values, dtype=np.float64)
        if x.size == 0:
            return cls()
        scale = float(np.max(np.abs(x)))
        if scale == 0.0 or not np.isfinite(scale):
            mean = float(x.mean())
            m2 = float(np.square(x - mean).sum())
            return cls(count=int(x.size), mean=mean, m2=m2)
        y = x / scale
        y_mean = y.mean()
        mean = float(y_mean) * scale
        # Left to right: a zero sum stays zero instead of 0 * inf
        m2 = float(np.square(y - y_mean).sum()) * scale * scale
        return cls(count=int(x.size), mean=mean, m2=m2)

    def merge(self, other: "RunningMoments") -> "RunningMoments":
        """Combine two disjoint samples."""
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        count = self.count + other.count
        delta = other.mean - self.mean
        mean = self.mean + delta * (other.count / count)
        m2 = self.m2 + other.m2 + delta * delta * (self.count * other.count / count)
        return RunningMoments(count=count, mean=mean, m2=m2)

    @property
    def variance(self) -> float:
        """Unbiased sample variance (0 for fewer than two samples)."""
        if self.count < 2:
            return 0.0
        return max(self.m2, 0.0) / (self.count - 1)

    @property
    def standard_error(self) -> float:
        """Standard error of the mean."""
        if self.count == 0:
            return float("nan")
        return float(np.sqrt(self.variance / self.count))


@dataclass(frozen=True)
class BlockPartial:
    """
    Partial reduction of one or more blocks.

    Attributes
    ----------
    moments : dict[PayoffType, RunningMoments]
        Undiscounted payoff moments over the finite paths
    n_paths : int
        Paths simulated (finite and excluded)
    n_excluded : int
        Paths excluded because a statistic was not finite
    """

    moments: dict[PayoffType, RunningMoments] = field(default_factory=dict)
    n_paths: int = 0
    n_excluded: int = 0

    def merge(self, other: "BlockPartial") -> "BlockPartial":
        """Combine partials over disjoint blocks."""
        keys = self.moments.keys() | other.moments.keys()
        moments = {
            key: self.moments.get(key, RunningMoments()).merge(
                other.moments.get(key, RunningMoments())
            )
            for key in keys
        }
        return BlockPartial(
            moments=moments,
            n_paths=self.n_paths + other.n_paths,
            n_excluded=self.n_excluded + other.n_excluded,
        )


def reduce_block(
    payoffs: dict[PayoffType, np.ndarray],
    finite_mask: np.ndarray,
) -> BlockPartial:
    """
    Reduce one block's payoffs, dropping non-finite paths.

    Parameters
    ----------
    payoffs : dict[PayoffType, np.ndarray]
        Undiscounted payoffs per type, shape (n_paths,)
    finite_mask : np.ndarray
        True for paths that enter the estimate

    Returns
    -------
    BlockPartial
        Moments per payoff type and the excluded-path count
    """
    n_paths = int(finite_mask.shape[0])
    n_excluded = n_paths - int(np.count_nonzero(finite_mask))
    moments = {
        payoff_type: RunningMoments.from_samples(values[finite_mask])
        for payoff_type, values in payoffs.items()
    }
    return BlockPartial(moments=moments, n_paths=n_paths, n_excluded=n_excluded)


def tree_reduce(items: Sequence[T], combine: Callable[[T, T], T]) -> T:
    """
    Pairwise (tree) reduction.

    Combines neighbours level by level: ((a+b)+(c+d))+... Requires every item
    to be available, i.e. called after all producing tasks completed.
    """
    if not items:
        raise ValueError("CRITICAL: cannot reduce an empty sequence")
    level = list(items)
    while len(level) > 1:
        paired = [combine(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
        if len(level) % 2:
            paired.append(level[-1])
        level = paired
    return level[0]


def sequential_reduce(items: Iterable[T], combine: Callable[[T, T], T]) -> T:
    """
    Left fold: (((a+b)+c)+d)+...

    Consumes ``items`` lazily, so a generator of partials is reduced one block at
    a time.
    """
    iterator = iter(items)
    try:
        first = next(iterator)
    except StopIteration:
        raise ValueError("CRITICAL: cannot reduce an empty sequence") from None
    return reduce(combine, iterator, first)


@dataclass(frozen=True)
class MCEstimate:
    """
    Monte Carlo price estimate of one payoff type.

    Attributes
    ----------
    price : float
        Discounted mean payoff
    standard_error : float
        Standard error of the discounted estimate
    confidence_interval : tuple[float, float]
        95% confidence interval
    n_paths : int
        Paths entering the estimate
    n_excluded : int
        Non-finite paths left out of the estimate
    discount_factor : float
        Discount factor used
    """

    price: float
    standard_error: float
    confidence_interval: tuple[float, float]
    n_paths: int
    n_excluded: int
    discount_factor: float

    @classmethod
    def from_moments(
        cls,
        moments: RunningMoments,
        discount_factor: float,
        n_excluded: int = 0,
    ) -> "MCEstimate":
        """Discount undiscounted payoff moments: price = exp(-rT) * mean."""
        price = discount_factor * moments.mean
        se = discount_factor * moments.standard_error
        return cls(
            price=price,
            standard_error=se,
            confidence_interval=(price - _Z_95 * se, price + _Z_95 * se),
            n_paths=moments.count,
            n_excluded=n_excluded,
            discount_factor=discount_factor,
        )

    @property
    def sample_std(self) -> float:
        """Standard deviation of the discounted payoff (SE · √n)."""
        return float(self.standard_error * np.sqrt(self.n_paths))

    @property
    def relative_error(self) -> float:
        """Relative standard error (SE / price)."""
        if abs(self.price) < 1e-10:
            return float("inf")
        return self.standard_error / abs(self.price)

    @property
    def ci_width(self) -> float:
        """Width of 95% confidence interval."""
        return self.confidence_interval[1] - self.confidence_interval[0]
