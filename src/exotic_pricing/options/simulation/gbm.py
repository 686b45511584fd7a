"""
Geometric Brownian Motion (GBM) path generation.

Implements the exact log-normal discretization used by both execution strategies:
- Whole-block path matrices for the parallel strategy
- A step-by-step stepper for the sequential strategy, which keeps only current prices

[T1] GBM SDE: dS = rS dt + σS dW
[T1] S(t+dt) = S(t) * exp((r - σ²/2)dt + σ√dt * Z)

All arithmetic runs in the working precision of the contract; nothing is promoted.

See: Glasserman (2003) "Monte Carlo Methods in Financial Engineering"
"""

from dataclasses import dataclass

import numpy as np

from exotic_pricing.options.contract import OptionContract, Precision
from exotic_pricing.options.simulation.random_streams import BlockSpec, block_normals


@dataclass(frozen=True)
class GBMParams:
    """
    Parameters for GBM simulation.

    Attributes
    ----------
    spot : float
        Initial spot price
    rate : float
        Risk-free rate (annualized, decimal)
    volatility : float
        Volatility (annualized, decimal)
    dt : float
        Time-step size in years
    n_steps : int
        Number of steps per path
    precision : Precision
        Working precision
    """

    spot: float
    rate: float
    volatility: float
    dt: float
    n_steps: int
    precision: Precision = Precision.DOUBLE

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.spot <= 0:
            raise ValueError(f"CRITICAL: spot must be > 0, got {self.spot}")
        if self.volatility < 0:
            raise ValueError(f"CRITICAL: volatility must be >= 0, got {self.volatility}")
        if self.dt <= 0:
            raise ValueError(f"CRITICAL: dt must be > 0, got {self.dt}")
        if self.n_steps <= 0:
            raise ValueError(f"CRITICAL: n_steps must be > 0, got {self.n_steps}")

    @classmethod
    def from_contract(cls, contract: OptionContract) -> "GBMParams":
        """Extract simulation parameters from a contract."""
        return cls(
            spot=contract.spot,
            rate=contract.rate,
            volatility=contract.volatility,
            dt=contract.dt,
            n_steps=contract.n_steps,
            precision=contract.precision,
        )

    @property
    def dtype(self) -> type:
        return self.precision.dtype

    @property
    def drift_per_step(self):
        """Log drift per step (r - σ²/2)dt, in the working precision."""
        return self.dtype((self.rate - 0.5 * self.volatility**2) * self.dt)

    @property
    def vol_per_step(self):
        """Log diffusion scale per step σ√dt, in the working precision."""
        return self.dtype(self.volatility * np.sqrt(self.dt))

    @property
    def times(self) -> np.ndarray:
        """Observation times, shape (n_steps + 1,)."""
        return np.arange(self.n_steps + 1, dtype=np.float64) * self.dt


def generate_block_paths(params: GBMParams, seed: int, block: BlockSpec) -> np.ndarray:
    """
    Generate every path of one block.

    Parameters
    ----------
    params : GBMParams
        GBM parameters
    seed : int
        Run seed
    block : BlockSpec
        Block of simulation indices

    Returns
    -------
    np.ndarray
        Paths including the spot column, shape (block.n_paths, n_steps + 1),
        dtype of the working precision
    """
    dtype = params.dtype
    z = block_normals(seed, block, params.n_steps, dtype)

    log_returns = params.drift_per_step + params.vol_per_step * z
    cum_log_returns = np.cumsum(log_returns, axis=1, dtype=dtype)

    # Build paths: S(t) = S(0) * exp(cumulative log-returns)
    paths = np.empty((block.n_paths, params.n_steps + 1), dtype=dtype)
    paths[:, 0] = dtype(params.spot)
    with np.errstate(over="ignore", invalid="ignore"):
        paths[:, 1:] = dtype(params.spot) * np.exp(cum_log_returns)
    return paths


class GBMStepper:
    """
    Advances a vector of spot prices one step at a time.

    Used by the sequential strategy to stream a block without materializing its
    paths. The update is multiplicative: S *= exp(drift + vol * Z).

    Examples
    --------
    >>> params = GBMParams(spot=40.0, rate=0.03, volatility=0.0, dt=0.25, n_steps=4)
    >>> stepper = GBMStepper(params, n_paths=2)
    >>> prices = stepper.step(np.zeros(2))
    >>> bool(np.allclose(prices, 40.0 * np.exp(0.03 * 0.25)))
    True
    """

    def __init__(self, params: GBMParams, n_paths: int):
        if n_paths <= 0:
            raise ValueError(f"CRITICAL: n_paths must be > 0, got {n_paths}")
        self.params = params
        self.prices = np.full(n_paths, params.spot, dtype=params.dtype)
        self._drift = params.drift_per_step
        self._vol = params.vol_per_step

    def step(self, z: np.ndarray) -> np.ndarray:
        """Advance one step with increments ``z``; returns the new prices."""
        with np.errstate(over="ignore", invalid="ignore"):
            self.prices = self.prices * np.exp(self._drift + self._vol * z)
        return self.prices
