"""
Frozen configuration settings for path-dependent option pricing.

All configuration is immutable (frozen dataclasses) to ensure reproducibility.
The pricing core never reads these values on its own; they supply defaults to the
benchmark harness and the command-line script only.
"""

import logging
import os
from dataclasses import dataclass

from exotic_pricing.config.tolerances import (
    GOLDEN_VALUE_TOLERANCE,
    MC_Z_SCORE,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Engine Configuration
# =============================================================================


def _resolve_workers() -> int:
    """
    Resolve the default worker count with environment variable override.

    Priority:
    1. EXOTIC_PRICING_WORKERS environment variable (if set to an integer)
    2. Default: number of CPUs visible to the process

    A non-integer override is ignored with a warning. Non-positive counts pass
    through and are rejected by ``DeviceConfig.validate`` as a setup failure.

    Returns
    -------
    int
        Default worker count
    """
    env_workers = os.environ.get("EXOTIC_PRICING_WORKERS")
    if env_workers:
        try:
            return int(env_workers)
        except ValueError:
            logger.warning(
                f"Ignoring EXOTIC_PRICING_WORKERS={env_workers!r}: not an integer; "
                f"using the CPU count"
            )
    return os.cpu_count() or 1


def _resolve_backend() -> str:
    """Resolve the default worker backend (EXOTIC_PRICING_BACKEND, default "thread")."""
    return os.environ.get("EXOTIC_PRICING_BACKEND", "thread").lower()


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine defaults. [T3: Assumptions]

    Attributes
    ----------
    n_sims : int
        Number of simulated paths
    seed : int
        Random seed for reproducibility
    paths_per_block : int
        Parallel granularity: paths simulated by one task
    n_workers : int
        Worker pool size. Override with EXOTIC_PRICING_WORKERS.
    backend : str
        "thread" or "process". Override with EXOTIC_PRICING_BACKEND.
    max_block_bytes : int
        Memory budget for one materialized block of paths
    """

    n_sims: int = 1_000_000
    seed: int = 1234
    paths_per_block: int = 4096
    n_workers: int = None  # type: ignore[assignment]  # Set in __post_init__
    backend: str = None  # type: ignore[assignment]  # Set in __post_init__
    max_block_bytes: int = 512 * 1024 * 1024  # 512 MiB

    def __post_init__(self) -> None:
        """Initialize environment-dependent fields."""
        # Frozen dataclass workaround: use object.__setattr__
        if self.n_workers is None:
            object.__setattr__(self, "n_workers", _resolve_workers())
        if self.backend is None:
            object.__setattr__(self, "backend", _resolve_backend())


# =============================================================================
# Reference Scenario
# =============================================================================


@dataclass(frozen=True)
class ScenarioConfig:
    """
    Reference scenario priced by the benchmark harness. [T2]

    The golden value is a high-confidence arithmetic Asian call price for these
    parameters.
    """

    spot: float = 40.0
    strike: float = 35.0
    rate: float = 0.03
    volatility: float = 0.20
    tenor: float = 1.0 / 3.0
    trading_days_per_year: int = 261
    barrier: float = 45.0
    golden_asian: float = 5.162534

    @property
    def dt(self) -> float:
        """One trading day in years."""
        return 1.0 / self.trading_days_per_year


# =============================================================================
# Validation Configuration
# =============================================================================


@dataclass(frozen=True)
class ValidationConfig:
    """
    Immutable validation configuration.

    Attributes
    ----------
    golden_tolerance : float
        Absolute tolerance of the golden value check
    z_score : float
        Number of standard errors allowed between MC estimates
    halt_on_excluded_paths : bool
        Whether excluded non-finite paths HALT validation (otherwise WARN)
    """

    golden_tolerance: float = GOLDEN_VALUE_TOLERANCE
    z_score: float = MC_Z_SCORE
    halt_on_excluded_paths: bool = False


# =============================================================================
# Master Configuration
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """
    Master frozen configuration combining all sub-configs.

    Usage
    -----
    >>> from exotic_pricing.config.settings import SETTINGS
    >>> SETTINGS.scenario.golden_asian
    5.162534
    """

    engine: EngineConfig = EngineConfig()
    scenario: ScenarioConfig = ScenarioConfig()
    validation: ValidationConfig = ValidationConfig()


# Singleton instance - import this
SETTINGS = Settings()
