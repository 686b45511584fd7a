#!/usr/bin/env python
"""
Price the reference path-dependent option scenario with both strategies.

Usage:
    python scripts/price_path_dependent.py                      # 1M paths, defaults from SETTINGS
    python scripts/price_path_dependent.py --sims 100000 --workers 2
    python scripts/price_path_dependent.py --precision single --backend process
    python scripts/price_path_dependent.py --json               # JSON report on stdout

Exit codes:
    0 = All validation gates passed
    1 = Validation failure (a gate halted)
    2 = Setup failure (worker pool / parallelism unavailable)
    3 = Numeric failure (non-finite paths)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from exotic_pricing.benchmark import BenchmarkConfig, run_benchmark
from exotic_pricing.config.settings import SETTINGS
from exotic_pricing.errors import FailureStage, SetupError
from exotic_pricing.options.contract import Precision
from exotic_pricing.options.simulation.device import DeviceConfig
from exotic_pricing.validation.reporting import PricingReporter

EXIT_CODES = {
    None: 0,
    FailureStage.VALIDATION: 1,
    FailureStage.SETUP: 2,
    FailureStage.NUMERIC: 3,
}


def build_parser() -> argparse.ArgumentParser:
    engine = SETTINGS.engine
    parser = argparse.ArgumentParser(
        description="Monte Carlo pricing of Asian, barrier and lookback options"
    )
    parser.add_argument("--sims", type=int, default=engine.n_sims, help="Number of simulated paths")
    parser.add_argument(
        "--block-size", type=int, default=engine.paths_per_block, help="Paths per parallel block"
    )
    parser.add_argument("--workers", type=int, default=engine.n_workers, help="Worker pool size")
    parser.add_argument(
        "--backend", default=engine.backend, help="Worker pool backend: thread or process"
    )
    parser.add_argument("--seed", type=int, default=engine.seed, help="Random seed")
    parser.add_argument(
        "--precision",
        choices=[p.value for p in Precision],
        default=Precision.DOUBLE.value,
        help="Working precision",
    )
    parser.add_argument("--json", action="store_true", help="Print a JSON report instead of the table")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        device = DeviceConfig.from_name(args.backend, args.workers)
    except SetupError as e:
        print(f"Setup failure: {e}", file=sys.stderr)
        return EXIT_CODES[FailureStage.SETUP]

    config = BenchmarkConfig(
        n_sims=args.sims,
        device=device,
        paths_per_block=args.block_size,
        seed=args.seed,
        precision=Precision(args.precision),
    )
    outcome = run_benchmark(config)
    reporter = PricingReporter()

    if args.json:
        print(
            reporter.to_json(
                outcome.contract,
                report=outcome.report,
                parallel_run=outcome.parallel_run,
                reference_run=outcome.reference_run,
            )
        )
    else:
        print(f"Precision:             {config.precision.value}")
        print(f"Number of simulations: {config.n_sims}")
        print()
        print(reporter.format_table(outcome.contract))
        for run in outcome.runs:
            print(f"Time spent on {run.strategy.value} strategy: {run.elapsed_sec:.3f}s")
        if outcome.report is not None:
            for gate in outcome.report.halted_gates:
                print(f"HALT [{gate.gate_name}]: {gate.message}")

    if outcome.error is not None:
        print(f"{outcome.stage.value.capitalize()} failure: {outcome.error}", file=sys.stderr)

    return EXIT_CODES[outcome.stage]


if __name__ == "__main__":
    sys.exit(main())
