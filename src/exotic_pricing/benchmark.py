"""
Benchmark harness for the reference scenario.

[T2] Prices the reference contract with both strategies, times each run, validates
the result slots and reports which stage failed, if any.

The harness is the only place where pricing failures are turned into values: setup
and numeric errors raised by the engine become a ``BenchmarkOutcome`` with the
matching ``FailureStage`` rather than propagating.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from exotic_pricing.config.settings import SETTINGS
from exotic_pricing.errors import FailureStage, PricingError
from exotic_pricing.options.contract import OptionContract, Precision
from exotic_pricing.options.payoffs.base import OptionType
from exotic_pricing.options.simulation.device import DeviceConfig
from exotic_pricing.options.simulation.engine import (
    NonFinitePolicy,
    PricingEngine,
    PricingRun,
)
from exotic_pricing.validation.gates import (
    ClosedFormGate,
    GoldenValueGate,
    BarrierParityGate,
    NumericHealthGate,
    StrategyAgreementGate,
    ValidationEngine,
    ValidationReport,
)

logger = logging.getLogger(__name__)


def _default_device() -> DeviceConfig:
    return DeviceConfig.from_name(SETTINGS.engine.backend, SETTINGS.engine.n_workers)


@dataclass(frozen=True)
class BenchmarkConfig:
    """
    Benchmark run configuration. Defaults come from ``SETTINGS.engine``.

    Attributes
    ----------
    n_sims : int
        Number of simulated paths
    device : DeviceConfig
        Worker pool for the parallel strategy
    paths_per_block : int
        Parallel granularity
    seed : int
        Random seed
    precision : Precision
        Working precision
    nonfinite_policy : NonFinitePolicy
        Handling of non-finite paths
    """

    n_sims: int = SETTINGS.engine.n_sims
    device: DeviceConfig = field(default_factory=_default_device)
    paths_per_block: int = SETTINGS.engine.paths_per_block
    seed: int = SETTINGS.engine.seed
    precision: Precision = Precision.DOUBLE
    nonfinite_policy: NonFinitePolicy = NonFinitePolicy.RAISE


@dataclass(frozen=True)
class BenchmarkOutcome:
    """
    Outcome of one benchmark run.

    Attributes
    ----------
    passed : bool
        True when both strategies ran and no gate halted
    stage : FailureStage, optional
        Stage that failed (None on success)
    report : ValidationReport, optional
        Gate results (None when pricing failed before validation)
    contract : OptionContract
        The priced contract, slots as far as they were written
    runs : tuple[PricingRun, ...]
        Completed strategy runs, parallel first
    error : str, optional
        Message of the setup or numeric error
    """

    passed: bool
    stage: Optional[FailureStage]
    report: Optional[ValidationReport]
    contract: OptionContract
    runs: tuple[PricingRun, ...] = ()
    error: Optional[str] = None

    @property
    def parallel_run(self) -> Optional[PricingRun]:
        return self.runs[0] if self.runs else None

    @property
    def reference_run(self) -> Optional[PricingRun]:
        return self.runs[1] if len(self.runs) > 1 else None


def reference_contract(precision: Precision = Precision.DOUBLE) -> OptionContract:
    """The reference scenario from ``SETTINGS.scenario`` as a call contract."""
    scenario = SETTINGS.scenario
    return OptionContract(
        spot=scenario.spot,
        strike=scenario.strike,
        rate=scenario.rate,
        volatility=scenario.volatility,
        tenor=scenario.tenor,
        dt=scenario.dt,
        barrier=scenario.barrier,
        option_type=OptionType.CALL,
        precision=precision,
        golden=scenario.golden_asian,
    )


def default_validation_engine() -> ValidationEngine:
    """Gates configured from ``SETTINGS.validation``."""
    validation = SETTINGS.validation
    return ValidationEngine(
        gates=[
            GoldenValueGate(tolerance=validation.golden_tolerance),
            ClosedFormGate(z_score=validation.z_score),
            BarrierParityGate(),
            StrategyAgreementGate(z_score=validation.z_score),
            NumericHealthGate(halt_on_excluded=validation.halt_on_excluded_paths),
        ]
    )


def run_benchmark(
    config: Optional[BenchmarkConfig] = None,
    contract: Optional[OptionContract] = None,
    validation_engine: Optional[ValidationEngine] = None,
) -> BenchmarkOutcome:
    """
    Price a contract with both strategies and validate the result slots.

    Parameters
    ----------
    config : BenchmarkConfig, optional
        Run configuration (default: ``SETTINGS.engine``)
    contract : OptionContract, optional
        Contract to price (default: the reference scenario at ``config.precision``)
    validation_engine : ValidationEngine, optional
        Gates to apply (default: ``default_validation_engine()``)

    Returns
    -------
    BenchmarkOutcome
        Pass/fail, failing stage, gate report, contract and completed runs
    """
    config = config or BenchmarkConfig()
    contract = contract if contract is not None else reference_contract(config.precision)
    validation_engine = validation_engine or default_validation_engine()

    logger.info(f"Device: {config.device.describe()}")

    runs: list[PricingRun] = []
    try:
        engine = PricingEngine(
            n_sims=config.n_sims,
            device=config.device,
            paths_per_block=config.paths_per_block,
            seed=config.seed,
            precision=config.precision,
            nonfinite_policy=config.nonfinite_policy,
        )
        runs.append(engine.price_parallel(contract))
        runs.append(engine.price_reference(contract))
    except PricingError as e:
        logger.error(f"Benchmark failed at {e.stage.value} stage: {e}")
        return BenchmarkOutcome(
            passed=False,
            stage=e.stage,
            report=None,
            contract=contract,
            runs=tuple(runs),
            error=str(e),
        )

    parallel_run, reference_run = runs
    logger.info(
        f"Parallel: {parallel_run.elapsed_sec:.3f}s ({parallel_run.paths_per_second:,.0f} paths/s); "
        f"reference: {reference_run.elapsed_sec:.3f}s ({reference_run.paths_per_second:,.0f} paths/s)"
    )

    report = validation_engine.validate(
        contract,
        parallel_run=parallel_run,
        reference_run=reference_run,
    )
    return BenchmarkOutcome(
        passed=report.passed,
        stage=report.failure_stage,
        report=report,
        contract=contract,
        runs=tuple(runs),
    )
