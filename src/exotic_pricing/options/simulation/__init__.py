"""
Monte Carlo simulation for path-dependent option pricing.

Provides:
- Counter-based random streams partitioned by block
- GBM path generation (whole blocks or step by step)
- Associative reduction of per-path payoffs
- Pricing engine with parallel and reference strategies
"""

from exotic_pricing.options.simulation.device import Backend, DeviceConfig
from exotic_pricing.options.simulation.engine import (
    NonFinitePolicy,
    PricingEngine,
    PricingRun,
    convergence_analysis,
)
from exotic_pricing.options.simulation.gbm import (
    GBMParams,
    GBMStepper,
    generate_block_paths,
)
from exotic_pricing.options.simulation.random_streams import (
    BlockSpec,
    block_normals,
    partition_simulations,
    path_increments,
)
from exotic_pricing.options.simulation.reduction import (
    BlockPartial,
    MCEstimate,
    RunningMoments,
    sequential_reduce,
    tree_reduce,
)

__all__ = [
    # Device
    "Backend",
    "DeviceConfig",
    # Engine
    "NonFinitePolicy",
    "PricingEngine",
    "PricingRun",
    "convergence_analysis",
    # GBM
    "GBMParams",
    "GBMStepper",
    "generate_block_paths",
    # Random streams
    "BlockSpec",
    "block_normals",
    "partition_simulations",
    "path_increments",
    # Reduction
    "BlockPartial",
    "MCEstimate",
    "RunningMoments",
    "sequential_reduce",
    "tree_reduce",
]
