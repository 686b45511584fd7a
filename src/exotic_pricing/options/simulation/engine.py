"""
Monte Carlo pricing engine for path-dependent options.

Two execution strategies price the same contract:
- ``price_parallel``: one task per block of paths on a worker pool, whole-block
  path matrices, pairwise tree reduction. Writes every parallel result slot.
- ``price_reference``: a single thread of control, blocks in index order, paths
  streamed step by step in chunks of rows, left-fold reduction. Writes the CPU
  vanilla slot.

Both consume the same per-block random sub-streams (see random_streams), so for
equal N their estimates agree up to floating-point summation order.

[T1] MC converges to the expected discounted payoff at rate 1/√N

See: Glasserman (2003) "Monte Carlo Methods in Financial Engineering"
"""

import logging
import time
from concurrent.futures import BrokenExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from exotic_pricing.config.tolerances import MC_Z_SCORE, mc_tolerance
from exotic_pricing.errors import NumericError, SetupError
from exotic_pricing.options.contract import (
    PARALLEL_SLOTS,
    SEQUENTIAL_SLOTS,
    OptionContract,
    Precision,
    Strategy,
)
from exotic_pricing.options.payoffs.base import ALL_PAYOFF_TYPES, PayoffType
from exotic_pricing.options.payoffs.path_dependent import (
    PathAccumulator,
    PathStatistics,
    PayoffTerms,
    evaluate_payoffs,
)
from exotic_pricing.options.simulation.device import DeviceConfig
from exotic_pricing.options.simulation.gbm import (
    GBMParams,
    GBMStepper,
    generate_block_paths,
)
from exotic_pricing.options.simulation.random_streams import (
    BlockSpec,
    iter_row_chunks,
    partition_simulations,
)
from exotic_pricing.options.simulation.reduction import (
    BlockPartial,
    MCEstimate,
    reduce_block,
    sequential_reduce,
    tree_reduce,
)

logger = logging.getLogger(__name__)

#: Arrays alive per materialized block: normals, log returns, paths
_BLOCK_ARRAYS = 3

DEFAULT_MAX_BLOCK_BYTES = 512 * 1024 * 1024

#: Paths advanced together by the reference strategy
DEFAULT_STREAM_CHUNK_ROWS = 256


class NonFinitePolicy(Enum):
    """What to do with paths whose statistics are not finite."""

    RAISE = "raise"  # Fatal correctness error
    EXCLUDE = "exclude"  # Drop the paths and report the count


@dataclass(frozen=True)
class PricingRun:
    """
    Result of one strategy invocation.

    Attributes
    ----------
    strategy : Strategy
        Strategy that produced the run
    estimates : dict[PayoffType, MCEstimate]
        Estimate per priced payoff type
    n_sims : int
        Paths simulated
    n_excluded : int
        Non-finite paths left out of every estimate
    elapsed_sec : float
        Wall-clock time of the run
    """

    strategy: Strategy
    estimates: dict[PayoffType, MCEstimate]
    n_sims: int
    n_excluded: int
    elapsed_sec: float

    def price(self, payoff_type: PayoffType) -> float:
        """Discounted price of one payoff type."""
        if payoff_type not in self.estimates:
            raise KeyError(f"{payoff_type.value} was not priced by the {self.strategy.value} run")
        return self.estimates[payoff_type].price

    @property
    def paths_per_second(self) -> float:
        if self.elapsed_sec <= 0:
            return float("inf")
        return self.n_sims / self.elapsed_sec


# =============================================================================
# Block tasks (module level so process pools can pickle them)
# =============================================================================


def simulate_block(
    params: GBMParams,
    terms: PayoffTerms,
    payoff_types: Sequence[PayoffType],
    seed: int,
    block: BlockSpec,
) -> BlockPartial:
    """Parallel task: materialize a block of paths, evaluate, reduce."""
    paths = generate_block_paths(params, seed, block)
    stats = PathStatistics.from_paths(paths, terms.averaging)
    payoffs = evaluate_payoffs(stats, terms, payoff_types)
    return reduce_block(payoffs, stats.finite_mask)


def stream_block(
    params: GBMParams,
    terms: PayoffTerms,
    payoff_types: Sequence[PayoffType],
    seed: int,
    block: BlockSpec,
    chunk_rows: int = DEFAULT_STREAM_CHUNK_ROWS,
) -> BlockPartial:
    """
    Sequential task: stream a block one time step at a time.

    Paths are taken ``chunk_rows`` at a time from the block's sub-stream; for each
    chunk only the draws, the current prices and the running statistics are kept.
    Chunk partials are folded left to right.
    """

    def chunk_partials() -> Iterator[BlockPartial]:
        for z in iter_row_chunks(seed, block, params.n_steps, chunk_rows, params.dtype):
            n_rows = z.shape[0]
            stepper = GBMStepper(params, n_rows)
            accumulator = PathAccumulator(params.spot, n_rows, terms.averaging, params.dtype)
            for step in range(params.n_steps):
                accumulator.update(stepper.step(z[:, step]))
            stats = accumulator.finalize()
            payoffs = evaluate_payoffs(stats, terms, payoff_types)
            yield reduce_block(payoffs, stats.finite_mask)

    return sequential_reduce(chunk_partials(), BlockPartial.merge)


# =============================================================================
# Engine
# =============================================================================


class PricingEngine:
    """
    Monte Carlo pricing engine.

    Configuration is fixed at construction; the engine can price any number of
    contracts of its precision. Concurrent calls against the same contract are not
    supported.

    Parameters
    ----------
    n_sims : int
        Number of simulated paths
    device : DeviceConfig
        Worker pool used by the parallel strategy
    paths_per_block : int
        Parallel granularity: paths per task (and per random sub-stream)
    seed : int
        Non-negative random seed
    precision : Precision, default DOUBLE
        Working precision; contracts must match it
    nonfinite_policy : NonFinitePolicy, default RAISE
        Handling of paths with non-finite statistics
    max_block_bytes : int
        Memory budget of one materialized block
    stream_chunk_rows : int
        Paths the reference strategy advances together

    Examples
    --------
    >>> engine = PricingEngine(100_000, DeviceConfig(Backend.THREAD, 1), 4096, seed=1234)
    >>> run = engine.price_parallel(contract)
    >>> contract.value_asian  # doctest: +SKIP
    """

    def __init__(
        self,
        n_sims: int,
        device: DeviceConfig,
        paths_per_block: int,
        seed: int,
        precision: Precision = Precision.DOUBLE,
        nonfinite_policy: NonFinitePolicy = NonFinitePolicy.RAISE,
        max_block_bytes: int = DEFAULT_MAX_BLOCK_BYTES,
        stream_chunk_rows: int = DEFAULT_STREAM_CHUNK_ROWS,
    ):
        if n_sims <= 0:
            raise ValueError(f"CRITICAL: n_sims must be > 0, got {n_sims}")
        if paths_per_block <= 0:
            raise ValueError(f"CRITICAL: paths_per_block must be > 0, got {paths_per_block}")
        if seed < 0:
            raise ValueError(f"CRITICAL: seed must be >= 0, got {seed}")
        if stream_chunk_rows <= 0:
            raise ValueError(f"CRITICAL: stream_chunk_rows must be > 0, got {stream_chunk_rows}")
        if not isinstance(device, DeviceConfig):
            raise ValueError(f"CRITICAL: device must be DeviceConfig, got {device!r}")

        self._n_sims = int(n_sims)
        self._device = device
        self._paths_per_block = int(paths_per_block)
        self._seed = int(seed)
        self._precision = precision
        self._nonfinite_policy = nonfinite_policy
        self._max_block_bytes = max_block_bytes
        self._stream_chunk_rows = int(stream_chunk_rows)

    @property
    def n_sims(self) -> int:
        return self._n_sims

    @property
    def device(self) -> DeviceConfig:
        return self._device

    @property
    def paths_per_block(self) -> int:
        return self._paths_per_block

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def precision(self) -> Precision:
        return self._precision

    @property
    def nonfinite_policy(self) -> NonFinitePolicy:
        return self._nonfinite_policy

    @property
    def stream_chunk_rows(self) -> int:
        return self._stream_chunk_rows

    def __repr__(self) -> str:
        return (
            f"PricingEngine(n_sims={self.n_sims}, device={self.device}, "
            f"paths_per_block={self.paths_per_block}, seed={self.seed}, "
            f"precision={self.precision.value})"
        )

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def price_parallel(
        self,
        contract: OptionContract,
        payoff_types: Iterable[PayoffType] = ALL_PAYOFF_TYPES,
    ) -> PricingRun:
        """
        Price on the worker pool and write the parallel result slots.

        Parameters
        ----------
        contract : OptionContract
            Contract to price; its parallel slots are cleared, then written once
        payoff_types : Iterable[PayoffType]
            Payoffs to price (default: all)

        Returns
        -------
        PricingRun
            Estimates per payoff type

        Raises
        ------
        SetupError
            Precision mismatch, unavailable workers or oversized blocks; raised
            before any path is simulated
        NumericError
            Non-finite paths under NonFinitePolicy.RAISE, or no finite path at all
        """
        payoff_types = self._check_payoff_types(payoff_types)
        self._check_setup(contract)
        contract.begin_run(Strategy.PARALLEL)

        params = GBMParams.from_contract(contract)
        terms = PayoffTerms.from_contract(contract)
        blocks = partition_simulations(self.n_sims, self.paths_per_block)

        logger.info(
            f"Parallel pricing: {self.n_sims} paths in {len(blocks)} blocks on "
            f"{self.device.n_workers} {self.device.backend.value} workers "
            f"({self.precision.value} precision)"
        )

        start_time = time.perf_counter()
        executor = self.device.create_executor()
        try:
            with executor:
                futures = [
                    executor.submit(simulate_block, params, terms, payoff_types, self.seed, block)
                    for block in blocks
                ]
                # Join: every partial is complete before the reduction reads it
                partials = [future.result() for future in futures]
        except BrokenExecutor as e:
            raise SetupError(f"CRITICAL: worker pool failed during the run: {e}") from e

        total = tree_reduce(partials, BlockPartial.merge)
        elapsed = time.perf_counter() - start_time

        run = self._finalize(Strategy.PARALLEL, total, contract, payoff_types, elapsed)
        for payoff_type, estimate in run.estimates.items():
            contract.record(PARALLEL_SLOTS[payoff_type], estimate.price)

        logger.info(f"Parallel pricing completed in {elapsed:.3f}s")
        return run

    def price_reference(
        self,
        contract: OptionContract,
        payoff_types: Iterable[PayoffType] = (PayoffType.PLAIN_VANILLA,),
    ) -> PricingRun:
        """
        Price on the calling thread and write the CPU vanilla slot.

        Intended as a correctness reference for ``price_parallel``. Only the
        plain-vanilla estimate is written to the contract; other requested payoffs
        are returned in the run.

        Parameters
        ----------
        contract : OptionContract
            Contract to price
        payoff_types : Iterable[PayoffType]
            Payoffs to price (default: plain vanilla only)

        Returns
        -------
        PricingRun
            Estimates per payoff type
        """
        payoff_types = self._check_payoff_types(payoff_types)
        self._check_setup(contract, uses_pool=False)
        contract.begin_run(Strategy.SEQUENTIAL)

        params = GBMParams.from_contract(contract)
        terms = PayoffTerms.from_contract(contract)
        blocks = partition_simulations(self.n_sims, self.paths_per_block)

        logger.info(
            f"Reference pricing: {self.n_sims} paths in {len(blocks)} blocks on one thread "
            f"({self.precision.value} precision)"
        )

        start_time = time.perf_counter()
        total = sequential_reduce(
            (
                stream_block(
                    params, terms, payoff_types, self.seed, block, self.stream_chunk_rows
                )
                for block in blocks
            ),
            BlockPartial.merge,
        )
        elapsed = time.perf_counter() - start_time

        run = self._finalize(Strategy.SEQUENTIAL, total, contract, payoff_types, elapsed)
        for payoff_type, slot in SEQUENTIAL_SLOTS.items():
            if payoff_type in run.estimates:
                contract.record(slot, run.estimates[payoff_type].price)

        logger.info(f"Reference pricing completed in {elapsed:.3f}s")
        return run

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def block_bytes(self, contract: OptionContract) -> int:
        """Peak memory of one materialized block for ``contract``."""
        rows = min(self.paths_per_block, self.n_sims)
        itemsize = np.dtype(self.precision.dtype).itemsize
        return _BLOCK_ARRAYS * rows * (contract.n_steps + 1) * itemsize

    def stream_bytes(self, contract: OptionContract) -> int:
        """Peak draw memory of the reference strategy for ``contract``."""
        rows = min(self.stream_chunk_rows, self.paths_per_block, self.n_sims)
        itemsize = np.dtype(self.precision.dtype).itemsize
        # Draws of one chunk plus prices and four running statistics per path
        return rows * (contract.n_steps + 5) * itemsize

    def _check_setup(self, contract: OptionContract, uses_pool: bool = True) -> None:
        """Fail fast, before any simulation, if the run cannot be executed."""
        if contract.precision is not self.precision:
            raise SetupError(
                f"CRITICAL: contract precision {contract.precision.value} does not match "
                f"engine precision {self.precision.value}"
            )
        if uses_pool:
            self.device.validate()
        block_bytes = self.block_bytes(contract) if uses_pool else self.stream_bytes(contract)
        if block_bytes > self._max_block_bytes:
            raise SetupError(
                f"CRITICAL: one block needs {block_bytes} bytes, above the "
                f"{self._max_block_bytes} byte budget; lower paths_per_block"
            )

    @staticmethod
    def _check_payoff_types(payoff_types: Iterable[PayoffType]) -> tuple[PayoffType, ...]:
        checked = tuple(dict.fromkeys(payoff_types))
        if not checked:
            raise ValueError("CRITICAL: at least one payoff type must be priced")
        for payoff_type in checked:
            if not isinstance(payoff_type, PayoffType):
                raise ValueError(f"CRITICAL: unknown payoff type {payoff_type!r}")
        return checked

    def _finalize(
        self,
        strategy: Strategy,
        total: BlockPartial,
        contract: OptionContract,
        payoff_types: Sequence[PayoffType],
        elapsed: float,
    ) -> PricingRun:
        """Turn the reduced moments into estimates, enforcing the non-finite policy."""
        if total.n_excluded:
            message = (
                f"{total.n_excluded} of {total.n_paths} paths produced non-finite values "
                f"({strategy.value} strategy)"
            )
            if (
                self.nonfinite_policy is NonFinitePolicy.RAISE
                or total.n_excluded == total.n_paths
            ):
                raise NumericError(
                    f"CRITICAL: {message}",
                    n_excluded=total.n_excluded,
                    n_paths=total.n_paths,
                )
            logger.warning(f"Excluding {message}")

        # Finite paths can still overflow the reduction; never record such an estimate
        for payoff_type in payoff_types:
            moments = total.moments[payoff_type]
            if not (np.isfinite(moments.mean) and np.isfinite(moments.m2)):
                raise NumericError(
                    f"CRITICAL: {payoff_type.value} estimate is not finite "
                    f"(mean={moments.mean}, M2={moments.m2}, {strategy.value} strategy)",
                    n_excluded=total.n_excluded,
                    n_paths=total.n_paths,
                )

        estimates = {
            payoff_type: MCEstimate.from_moments(
                total.moments[payoff_type],
                contract.discount_factor,
                n_excluded=total.n_excluded,
            )
            for payoff_type in payoff_types
        }
        for payoff_type, estimate in estimates.items():
            with np.errstate(over="ignore"):
                working = np.asarray(
                    [estimate.price, estimate.standard_error], dtype=self.precision.dtype
                )
            if not np.all(np.isfinite(working)):
                raise NumericError(
                    f"CRITICAL: {payoff_type.value} estimate {estimate.price} does not fit "
                    f"{self.precision.value} precision ({strategy.value} strategy)",
                    n_excluded=total.n_excluded,
                    n_paths=total.n_paths,
                )
        return PricingRun(
            strategy=strategy,
            estimates=estimates,
            n_sims=total.n_paths,
            n_excluded=total.n_excluded,
            elapsed_sec=elapsed,
        )


# =============================================================================
# Convergence analysis
# =============================================================================


def convergence_analysis(
    contract: OptionContract,
    device: DeviceConfig,
    path_counts: Sequence[int] = (10_000, 100_000, 1_000_000),
    paths_per_block: int = 4096,
    seed: int = 1234,
    analytical_price: Optional[float] = None,
    z_score: float = MC_Z_SCORE,
) -> dict:
    """
    Compare the parallel and reference vanilla estimates across path counts.

    [T1] The standard error, and with it the tolerance on the strategy gap,
    shrinks as 1/√N.

    Parameters
    ----------
    contract : OptionContract
        Contract to price (its slots are overwritten on every path count)
    device : DeviceConfig
        Worker pool for the parallel strategy
    path_counts : Sequence[int]
        Number of paths to test
    paths_per_block : int
        Parallel granularity
    seed : int
        Random seed
    analytical_price : float, optional
        Closed-form vanilla price to measure the error against
    z_score : float
        Standard errors allowed between the two strategies

    Returns
    -------
    dict
        Per path count: both estimates, their gap, the combined standard error
        and the z-score tolerance on the gap
    """
    results = []

    for n in path_counts:
        engine = PricingEngine(
            n_sims=n,
            device=device,
            paths_per_block=paths_per_block,
            seed=seed,
            precision=contract.precision,
        )
        parallel = engine.price_parallel(contract, (PayoffType.PLAIN_VANILLA,))
        reference = engine.price_reference(contract)

        par = parallel.estimates[PayoffType.PLAIN_VANILLA]
        ref = reference.estimates[PayoffType.PLAIN_VANILLA]
        entry = {
            "n_paths": n,
            "parallel_price": par.price,
            "reference_price": ref.price,
            "gap": abs(par.price - ref.price),
            "standard_error": float(np.hypot(par.standard_error, ref.standard_error)),
            "tolerance": float(
                np.hypot(
                    mc_tolerance(par.n_paths, sigma=par.sample_std, confidence=z_score),
                    mc_tolerance(ref.n_paths, sigma=ref.sample_std, confidence=z_score),
                )
            ),
        }
        if analytical_price is not None:
            entry["absolute_error"] = abs(par.price - analytical_price)
        results.append(entry)

    return {"results": results}
