"""
Centralized pytest fixtures for the exotic-pricing test suite.

This module provides shared fixtures used across all test categories:
- anti_patterns/
- unit/
- validation/
- properties/
- golden/
- integration/

Fixture Categories:
1. Tolerance tiers
2. Reference scenario contracts
3. Worker pools and engines sized for the test machine
"""

import os
from dataclasses import dataclass
from typing import Callable

import pytest

from exotic_pricing.config.settings import SETTINGS
from exotic_pricing.config.tolerances import (
    ANTI_PATTERN_TOLERANCE,
    DETERMINISTIC_PATH_TOLERANCE,
    GOLDEN_VALUE_TOLERANCE,
    MC_Z_SCORE,
    SINGLE_PRECISION_DETERMINISTIC_TOLERANCE,
    SINGLE_PRECISION_TOLERANCE,
)
from exotic_pricing.options.contract import OptionContract, Precision
from exotic_pricing.options.payoffs.base import OptionType
from exotic_pricing.options.simulation.device import Backend, DeviceConfig
from exotic_pricing.options.simulation.engine import PricingEngine

# =============================================================================
# TOLERANCE TIERS
# =============================================================================


@dataclass(frozen=True)
class ToleranceTiers:
    """
    Tiered tolerance framework for different test types.

    Derived from precision requirements, not ad hoc.
    """

    # Anti-pattern tests: exact identities up to float64 accumulation
    anti_pattern: float = ANTI_PATTERN_TOLERANCE

    # Zero-volatility paths against closed-form drift values
    deterministic: float = DETERMINISTIC_PATH_TOLERANCE

    # Single vs double precision on identical draws
    single_precision: float = SINGLE_PRECISION_TOLERANCE

    # Single precision zero-volatility paths against closed-form drift values
    single_precision_deterministic: float = SINGLE_PRECISION_DETERMINISTIC_TOLERANCE

    # Golden value / Black-Scholes check at 1M paths
    golden: float = GOLDEN_VALUE_TOLERANCE

    # Standard errors allowed between two MC estimates
    z_score: float = MC_Z_SCORE


TOLERANCES = ToleranceTiers()

#: Worker count every test machine can provide
TEST_WORKERS = min(2, os.cpu_count() or 1)


@pytest.fixture(scope="session")
def tolerances() -> ToleranceTiers:
    """Provide tiered tolerance settings for all tests."""
    return TOLERANCES


# =============================================================================
# CONTRACTS
# =============================================================================


def make_scenario_contract(**overrides) -> OptionContract:
    """Reference scenario (spot 40, strike 35, barrier 45, call) with overrides."""
    scenario = SETTINGS.scenario
    params = {
        "spot": scenario.spot,
        "strike": scenario.strike,
        "rate": scenario.rate,
        "volatility": scenario.volatility,
        "tenor": scenario.tenor,
        "dt": scenario.dt,
        "barrier": scenario.barrier,
        "option_type": OptionType.CALL,
        "precision": Precision.DOUBLE,
        "golden": scenario.golden_asian,
    }
    params.update(overrides)
    return OptionContract(**params)


@pytest.fixture
def scenario_contract() -> OptionContract:
    """Fresh reference scenario contract, double precision."""
    return make_scenario_contract()


@pytest.fixture
def contract_factory() -> Callable[..., OptionContract]:
    """Build reference scenario contracts with parameter overrides."""
    return make_scenario_contract


# =============================================================================
# DEVICES AND ENGINES
# =============================================================================


@pytest.fixture
def thread_device() -> DeviceConfig:
    """Thread pool no wider than the test machine."""
    return DeviceConfig(Backend.THREAD, n_workers=TEST_WORKERS)


@pytest.fixture
def engine_factory(thread_device) -> Callable[..., PricingEngine]:
    """Build engines on the thread device; defaults to 20,000 paths, seed 1234."""

    def _make(
        n_sims: int = 20_000,
        paths_per_block: int = 4096,
        seed: int = 1234,
        **kwargs,
    ) -> PricingEngine:
        kwargs.setdefault("device", thread_device)
        return PricingEngine(
            n_sims=n_sims,
            paths_per_block=paths_per_block,
            seed=seed,
            **kwargs,
        )

    return _make
