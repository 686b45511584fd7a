"""
exotic-pricing: Monte Carlo pricing of path-dependent options.

Prices Asian, knock-in, knock-out, lookback and Asian knock-out options on a single
GBM underlying with a parallel block strategy and a sequential reference strategy.

Quick Start
-----------
>>> from exotic_pricing import (
...     Backend, DeviceConfig, OptionContract, OptionType, PricingEngine,
... )
>>> contract = OptionContract(
...     spot=40.0, strike=35.0, rate=0.03, volatility=0.20,
...     tenor=1.0 / 3.0, dt=1.0 / 261, barrier=45.0, option_type=OptionType.CALL,
... )
>>> engine = PricingEngine(100_000, DeviceConfig(Backend.THREAD, 1), 4096, seed=1234)
>>> run = engine.price_parallel(contract)

Version: 0.1.0
"""

__version__ = "0.1.0"

# =============================================================================
# Contract and payoffs
# =============================================================================
from exotic_pricing.options.contract import (
    OptionContract,
    Precision,
    ResultSlot,
    Strategy,
)
from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
)

# =============================================================================
# Engine
# =============================================================================
from exotic_pricing.options.simulation.device import Backend, DeviceConfig
from exotic_pricing.options.simulation.engine import (
    NonFinitePolicy,
    PricingEngine,
    PricingRun,
)
from exotic_pricing.options.simulation.reduction import MCEstimate

# =============================================================================
# Closed forms
# =============================================================================
from exotic_pricing.options.pricing import (
    black_scholes_call,
    black_scholes_put,
    closed_form_prices,
    geometric_asian_price,
)

# =============================================================================
# Errors, validation, harness
# =============================================================================
from exotic_pricing.errors import (
    FailureStage,
    NumericError,
    PricingError,
    SetupError,
    ValidationError,
)
from exotic_pricing.validation import (
    PricingReporter,
    ValidationEngine,
    ensure_valid,
    validate_contract,
)
from exotic_pricing.benchmark import (
    BenchmarkConfig,
    BenchmarkOutcome,
    reference_contract,
    run_benchmark,
)

__all__ = [
    "__version__",
    # Contract and payoffs
    "OptionContract",
    "Precision",
    "ResultSlot",
    "Strategy",
    "AveragingType",
    "BarrierDirection",
    "OptionType",
    "PayoffType",
    # Engine
    "Backend",
    "DeviceConfig",
    "NonFinitePolicy",
    "PricingEngine",
    "PricingRun",
    "MCEstimate",
    # Closed forms
    "black_scholes_call",
    "black_scholes_put",
    "closed_form_prices",
    "geometric_asian_price",
    # Errors
    "FailureStage",
    "NumericError",
    "PricingError",
    "SetupError",
    "ValidationError",
    # Validation and harness
    "PricingReporter",
    "ValidationEngine",
    "ensure_valid",
    "validate_contract",
    "BenchmarkConfig",
    "BenchmarkOutcome",
    "reference_contract",
    "run_benchmark",
]
