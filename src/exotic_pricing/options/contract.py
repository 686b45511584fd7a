"""
Option contract: market/contract parameters plus result slots.

The contract is a value object. It holds no simulation state; pricing engines read
its parameters and write the result slots owned by the strategy they run.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
)


class Precision(Enum):
    """Working precision of one contract/engine pairing."""

    SINGLE = "single"
    DOUBLE = "double"

    @property
    def dtype(self) -> type:
        """NumPy scalar type used for path accumulation."""
        return np.float32 if self is Precision.SINGLE else np.float64


class Strategy(Enum):
    """Execution strategies that write result slots."""

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class ResultSlot(Enum):
    """Result slots on the contract (value is the attribute name)."""

    ASIAN = "value_asian"
    PLAIN_VANILLA = "value_plain_vanilla"
    PLAIN_VANILLA_CPU = "value_plain_vanilla_cpu"
    KNOCKOUT = "value_knockout"
    KNOCKIN = "value_knockin"
    LOOKBACK = "value_lookback"
    ALK = "value_alk"


#: Slot written by the parallel strategy for each payoff type
PARALLEL_SLOTS: dict[PayoffType, ResultSlot] = {
    PayoffType.PLAIN_VANILLA: ResultSlot.PLAIN_VANILLA,
    PayoffType.ASIAN: ResultSlot.ASIAN,
    PayoffType.KNOCKOUT: ResultSlot.KNOCKOUT,
    PayoffType.KNOCKIN: ResultSlot.KNOCKIN,
    PayoffType.LOOKBACK: ResultSlot.LOOKBACK,
    PayoffType.ALK: ResultSlot.ALK,
}

#: Slots written by the sequential reference strategy
SEQUENTIAL_SLOTS: dict[PayoffType, ResultSlot] = {
    PayoffType.PLAIN_VANILLA: ResultSlot.PLAIN_VANILLA_CPU,
}

STRATEGY_SLOTS: dict[Strategy, dict[PayoffType, ResultSlot]] = {
    Strategy.PARALLEL: PARALLEL_SLOTS,
    Strategy.SEQUENTIAL: SEQUENTIAL_SLOTS,
}

_PARAMETER_FIELDS = frozenset(
    {
        "spot",
        "strike",
        "rate",
        "volatility",
        "tenor",
        "dt",
        "barrier",
        "option_type",
        "precision",
        "averaging",
        "golden",
    }
)


@dataclass
class OptionContract:
    """
    Path-dependent option contract on a single underlying.

    Parameters are immutable once set; result slots are written once per run by
    the owning strategy (see ``begin_run`` and ``record``).

    Attributes
    ----------
    spot : float
        Initial spot price
    strike : float
        Strike price
    rate : float
        Risk-free rate (annualized, continuously compounded)
    volatility : float
        Volatility (annualized). Zero gives the deterministic drift path.
    tenor : float
        Time to maturity in years
    dt : float
        Time-step size in years
    barrier : float
        Barrier level for knock-in, knock-out and ALK payoffs
    option_type : OptionType
        Call or put
    precision : Precision
        Working precision of the simulation
    averaging : AveragingType
        Arithmetic or geometric averaging for Asian-style payoffs
    golden : float, optional
        Caller-supplied reference value for the Asian slot

    Examples
    --------
    >>> contract = OptionContract(
    ...     spot=40.0, strike=35.0, rate=0.03, volatility=0.20,
    ...     tenor=1.0 / 3.0, dt=1.0 / 261, barrier=45.0, option_type=OptionType.CALL,
    ... )
    >>> contract.n_steps
    87
    """

    spot: float
    strike: float
    rate: float
    volatility: float
    tenor: float
    dt: float
    barrier: float
    option_type: OptionType
    precision: Precision = Precision.DOUBLE
    averaging: AveragingType = AveragingType.ARITHMETIC
    golden: Optional[float] = None

    # Result slots
    value_asian: Optional[float] = field(default=None, init=False)
    value_plain_vanilla: Optional[float] = field(default=None, init=False)
    value_plain_vanilla_cpu: Optional[float] = field(default=None, init=False)
    value_knockout: Optional[float] = field(default=None, init=False)
    value_knockin: Optional[float] = field(default=None, init=False)
    value_lookback: Optional[float] = field(default=None, init=False)
    value_alk: Optional[float] = field(default=None, init=False)

    _written: set = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate parameters."""
        for name in ("spot", "strike", "rate", "volatility", "tenor", "dt", "barrier"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"CRITICAL: {name} must be finite, got {value}")
        if self.spot <= 0:
            raise ValueError(f"CRITICAL: spot must be > 0, got {self.spot}")
        if self.strike <= 0:
            raise ValueError(f"CRITICAL: strike must be > 0, got {self.strike}")
        if self.volatility < 0:
            raise ValueError(f"CRITICAL: volatility must be >= 0, got {self.volatility}")
        if self.tenor <= 0:
            raise ValueError(f"CRITICAL: tenor must be > 0, got {self.tenor}")
        if self.dt <= 0 or self.dt > self.tenor:
            raise ValueError(f"CRITICAL: dt must be in (0, tenor], got {self.dt}")
        if self.barrier < 0:
            raise ValueError(f"CRITICAL: barrier must be >= 0, got {self.barrier}")
        if not isinstance(self.option_type, OptionType):
            raise ValueError(f"CRITICAL: option_type must be OptionType, got {self.option_type!r}")
        if not isinstance(self.precision, Precision):
            raise ValueError(f"CRITICAL: precision must be Precision, got {self.precision!r}")
        if not isinstance(self.averaging, AveragingType):
            raise ValueError(f"CRITICAL: averaging must be AveragingType, got {self.averaging!r}")

    def __setattr__(self, name: str, value: object) -> None:
        if name in _PARAMETER_FIELDS and name in self.__dict__:
            raise AttributeError(f"CRITICAL: contract parameter '{name}' is immutable once set")
        object.__setattr__(self, name, value)

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def n_steps(self) -> int:
        """
        Number of simulation steps: ceil(tenor / dt).

        A ratio within 1e-9 (relative) of an integer counts as that integer, so
        tenor=1/3 with dt=1/261 gives 87 steps.
        """
        ratio = self.tenor / self.dt
        nearest = round(ratio)
        if abs(ratio - nearest) <= 1e-9 * max(1.0, ratio):
            return max(int(nearest), 1)
        return math.ceil(ratio)

    @property
    def discount_factor(self) -> float:
        """Discount factor exp(-r * tenor)."""
        return math.exp(-self.rate * self.tenor)

    @property
    def barrier_direction(self) -> BarrierDirection:
        """Up barrier when barrier >= spot, down barrier otherwise."""
        return BarrierDirection.from_levels(self.spot, self.barrier)

    @property
    def dtype(self) -> type:
        """NumPy scalar type of the working precision."""
        return self.precision.dtype

    # -------------------------------------------------------------------------
    # Result slots
    # -------------------------------------------------------------------------

    def begin_run(self, strategy: Strategy) -> None:
        """Clear the slots owned by ``strategy`` before a new run writes them."""
        for slot in STRATEGY_SLOTS[strategy].values():
            object.__setattr__(self, slot.value, None)
            self._written.discard(slot)

    def record(self, slot: ResultSlot, value: float) -> None:
        """
        Write a result slot once per run.

        The value is rounded to the working precision.

        Raises
        ------
        RuntimeError
            If the slot was already written since the last ``begin_run``
        """
        if slot in self._written:
            raise RuntimeError(
                f"CRITICAL: result slot {slot.value} already written in this run"
            )
        object.__setattr__(self, slot.value, float(self.dtype(value)))
        self._written.add(slot)

    def value(self, slot: ResultSlot) -> Optional[float]:
        """Read a result slot."""
        return getattr(self, slot.value)

    def results(self) -> dict[str, Optional[float]]:
        """All result slots keyed by attribute name."""
        return {slot.value: self.value(slot) for slot in ResultSlot}
