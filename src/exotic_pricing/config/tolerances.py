"""
Centralized tolerance framework for path-dependent option pricing.

All tolerances are derived from precision requirements, not ad hoc tuning.

Tolerance Tiers:
    Tier 1 (Analytical): Machine-precision achievable, deterministic results
    Tier 2 (Precision): Single vs double working precision
    Tier 3 (Stochastic): CLT-derived, Monte Carlo estimates
    Tier 4 (Reference): Golden values and closed forms at a fixed path count

References:
    [T1] Higham (2002) "Accuracy and Stability of Numerical Algorithms"
    [T1] Glasserman (2003) Ch. 3-4 - Monte Carlo error bounds
"""

from typing import Final

import numpy as np

# =============================================================================
# Tier 1: Analytical Tolerances (Deterministic)
# =============================================================================

#: No-arbitrage bounds and exact per-path identities (knock-in + knock-out = vanilla)
#: Tolerance: float64 accumulation error over millions of paths
ANTI_PATTERN_TOLERANCE: Final[float] = 1e-10

#: Deterministic (sigma = 0) paths against their closed-form drift values
DETERMINISTIC_PATH_TOLERANCE: Final[float] = 1e-9

#: Put-call parity for the closed-form Black-Scholes reference
PUT_CALL_PARITY_TOLERANCE: Final[float] = 1e-8


# =============================================================================
# Tier 2: Precision Tolerances
# =============================================================================

#: Single vs double working precision on the same draws.
#: float32 eps ~1.2e-7, accumulated over ~100 steps and scaled by spot ~40
SINGLE_PRECISION_TOLERANCE: Final[float] = 2e-3

#: Deterministic paths simulated in single precision
SINGLE_PRECISION_DETERMINISTIC_TOLERANCE: Final[float] = 1e-4


# =============================================================================
# Tier 3: Stochastic Tolerances (CLT-Derived)
# =============================================================================


def mc_tolerance(n_paths: int, sigma: float = 0.20, confidence: float = 3.0) -> float:
    """
    Calculate CLT-derived Monte Carlo tolerance.

    [T1] Standard error of MC estimate is σ/√N.
    3σ gives 99.7% confidence interval.

    Parameters
    ----------
    n_paths : int
        Number of Monte Carlo paths
    sigma : float
        Estimated standard deviation of the payoff (default 0.20)
    confidence : float
        Number of standard deviations (default 3 for 99.7% CI)

    Returns
    -------
    float
        Tolerance for MC vs analytical comparison

    Examples
    --------
    >>> round(mc_tolerance(10_000), 4)
    0.006
    """
    if n_paths <= 0:
        raise ValueError(f"CRITICAL: n_paths must be > 0, got {n_paths}")
    return float(confidence * sigma / np.sqrt(n_paths))


#: Z-score used when comparing two MC estimates or an MC estimate to a closed form
MC_Z_SCORE: Final[float] = 3.0


# =============================================================================
# Tier 4: Reference Tolerances
# =============================================================================

#: Golden value check. Coarse on purpose: catches a broken pipeline, not MC noise.
GOLDEN_VALUE_TOLERANCE: Final[float] = 0.1

#: Vanilla MC estimate vs Black-Scholes at the reference path count
BS_MC_CONVERGENCE_TOLERANCE: Final[float] = 0.1

#: Textbook examples quoted to the cent
HULL_EXAMPLE_TOLERANCE: Final[float] = 0.01

#: Golden file regression (snapshot) testing, relative
GOLDEN_RELATIVE_TOLERANCE: Final[float] = 1e-6


# =============================================================================
# Tolerance Registry (For Dynamic Access)
# =============================================================================

TOLERANCE_REGISTRY: dict[str, float] = {
    # Tier 1: Analytical
    "anti_pattern": ANTI_PATTERN_TOLERANCE,
    "deterministic_path": DETERMINISTIC_PATH_TOLERANCE,
    "put_call_parity": PUT_CALL_PARITY_TOLERANCE,
    # Tier 2: Precision
    "single_precision": SINGLE_PRECISION_TOLERANCE,
    "single_precision_deterministic": SINGLE_PRECISION_DETERMINISTIC_TOLERANCE,
    # Tier 4: Reference
    "golden_value": GOLDEN_VALUE_TOLERANCE,
    "bs_mc_convergence": BS_MC_CONVERGENCE_TOLERANCE,
    "hull_example": HULL_EXAMPLE_TOLERANCE,
    "golden_relative": GOLDEN_RELATIVE_TOLERANCE,
}


def get_tolerance(name: str) -> float:
    """
    Get tolerance by name from registry.

    Parameters
    ----------
    name : str
        Tolerance name (see TOLERANCE_REGISTRY keys)

    Returns
    -------
    float
        Tolerance value

    Raises
    ------
    KeyError
        If tolerance name not found
    """
    if name not in TOLERANCE_REGISTRY:
        available = ", ".join(sorted(TOLERANCE_REGISTRY.keys()))
        raise KeyError(f"Unknown tolerance '{name}'. Available: {available}")
    return TOLERANCE_REGISTRY[name]
