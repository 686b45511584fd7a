"""
Pricing Reporting.

[T2] Renders a priced contract as a fixed-width console table, a Markdown
summary, a JSON document, or a pandas DataFrame (one row per result slot).

Design Principles:
- **Dual Format**: Markdown (human-readable) and JSON (machine-readable)
- **Unpopulated slots**: shown as "n/a" / null, never as zero
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from exotic_pricing.options.contract import (
    PARALLEL_SLOTS,
    SEQUENTIAL_SLOTS,
    OptionContract,
    ResultSlot,
)
from exotic_pricing.options.simulation.engine import PricingRun
from exotic_pricing.validation.gates import ValidationReport

#: Column header and width of each console table column
_TABLE_COLUMNS: tuple[tuple[str, int], ...] = (
    ("Spot", 6),
    ("Strike", 6),
    ("r", 6),
    ("sigma", 5),
    ("tenor", 8),
    ("Call/Put", 8),
    ("AsianValue", 12),
    ("AsiaExpected", 12),
    ("PlainVanilla", 12),
    ("PVCPU", 12),
    ("Knock-Out", 12),
    ("Knock-In", 12),
    ("K-Out+K-In", 12),
    ("Lookback", 12),
    ("AsianLkBkK-O", 12),
)

_SLOT_LABELS: dict[ResultSlot, str] = {
    ResultSlot.ASIAN: "Asian",
    ResultSlot.PLAIN_VANILLA: "Plain vanilla",
    ResultSlot.PLAIN_VANILLA_CPU: "Plain vanilla (reference)",
    ResultSlot.KNOCKOUT: "Knock-out",
    ResultSlot.KNOCKIN: "Knock-in",
    ResultSlot.LOOKBACK: "Lookback",
    ResultSlot.ALK: "Asian lookback knock-out",
}


def _fmt(value: Optional[float], spec: str = ".6f") -> str:
    return "n/a" if value is None else format(value, spec)


def _slot_estimates(
    parallel_run: Optional[PricingRun],
    reference_run: Optional[PricingRun],
) -> dict[ResultSlot, Any]:
    """MCEstimate behind each populated slot, where the run is known."""
    estimates = {}
    for run, slots in ((parallel_run, PARALLEL_SLOTS), (reference_run, SEQUENTIAL_SLOTS)):
        if run is None:
            continue
        for payoff_type, estimate in run.estimates.items():
            if payoff_type in slots:
                estimates[slots[payoff_type]] = estimate
    return estimates


@dataclass
class ReportConfig:
    """
    Configuration for report generation.

    Attributes
    ----------
    title : str
        Report title
    include_gates : bool
        Include the validation gate table
    include_timing : bool
        Include elapsed time and throughput per strategy
    """

    title: str = "Path-Dependent Option Pricing Report"
    include_gates: bool = True
    include_timing: bool = True


class PricingReporter:
    """
    Generates pricing reports for a priced contract.

    Examples
    --------
    >>> reporter = PricingReporter()
    >>> print(reporter.format_table(contract))
    >>> markdown = reporter.to_markdown(contract, report, parallel_run=run)
    """

    def __init__(self, config: Optional[ReportConfig] = None):
        """
        Initialize reporter.

        Parameters
        ----------
        config : Optional[ReportConfig]
            Report configuration. If None, uses defaults.
        """
        self.config = config or ReportConfig()

    def format_table(self, contract: OptionContract) -> str:
        """
        Fixed-width console table: parameters then every result slot.

        The knock-out + knock-in column is n/a unless both slots are populated.
        """
        parity = None
        if contract.value_knockout is not None and contract.value_knockin is not None:
            parity = contract.value_knockout + contract.value_knockin

        cells = [
            _fmt(contract.spot, "g"),
            _fmt(contract.strike, "g"),
            _fmt(contract.rate, "g"),
            _fmt(contract.volatility, "g"),
            _fmt(contract.tenor, ".6f"),
            contract.option_type.value.capitalize(),
            _fmt(contract.value_asian),
            _fmt(contract.golden),
            _fmt(contract.value_plain_vanilla),
            _fmt(contract.value_plain_vanilla_cpu),
            _fmt(contract.value_knockout),
            _fmt(contract.value_knockin),
            _fmt(parity),
            _fmt(contract.value_lookback),
            _fmt(contract.value_alk),
        ]

        header = "|".join(name.center(width) for name, width in _TABLE_COLUMNS) + "|"
        rule = "|".join("-" * width for _, width in _TABLE_COLUMNS) + "|"
        row = "|".join(
            cell.rjust(width) for cell, (_, width) in zip(cells, _TABLE_COLUMNS)
        ) + "|"
        return "\n".join([header, rule, row])

    def _format_slot_table(
        self,
        contract: OptionContract,
        parallel_run: Optional[PricingRun],
        reference_run: Optional[PricingRun],
    ) -> str:
        """Format result slots with standard errors as Markdown table."""
        estimates = _slot_estimates(parallel_run, reference_run)
        lines = [
            "| Payoff | Value | Std Error | 95% CI |",
            "|--------|-------|-----------|----------|",
        ]
        for slot in ResultSlot:
            estimate = estimates.get(slot)
            if estimate is None:
                se_str, ci_str = "-", "-"
            else:
                lo, hi = estimate.confidence_interval
                se_str = f"{estimate.standard_error:.6f}"
                ci_str = f"[{lo:.4f}, {hi:.4f}]"
            lines.append(
                f"| {_SLOT_LABELS[slot]} | {_fmt(contract.value(slot))} | {se_str} | {ci_str} |"
            )
        return "\n".join(lines)

    def _format_gate_table(self, report: ValidationReport) -> str:
        """Format validation gate results as Markdown table."""
        lines = [
            f"**Overall**: {report.overall_status.value.upper()}",
            "",
            "| Gate | Status | Message |",
            "|------|--------|---------|",
        ]
        for r in report.results:
            lines.append(f"| {r.gate_name} | {r.status.value.upper()} | {r.message} |")
        return "\n".join(lines)

    def _format_timing(self, runs: List[PricingRun]) -> str:
        lines = [
            "| Strategy | Paths | Excluded | Time (s) | Paths/s |",
            "|----------|-------|----------|----------|---------|",
        ]
        for run in runs:
            lines.append(
                f"| {run.strategy.value} | {run.n_sims:,} | {run.n_excluded} | "
                f"{run.elapsed_sec:.3f} | {run.paths_per_second:,.0f} |"
            )
        return "\n".join(lines)

    def to_markdown(
        self,
        contract: OptionContract,
        report: Optional[ValidationReport] = None,
        parallel_run: Optional[PricingRun] = None,
        reference_run: Optional[PricingRun] = None,
        title: Optional[str] = None,
    ) -> str:
        """
        Generate complete Markdown report.

        Parameters
        ----------
        contract : OptionContract
            Priced contract
        report : Optional[ValidationReport]
            Validation gate results
        parallel_run, reference_run : Optional[PricingRun]
            Strategy runs (standard errors and timing)
        title : Optional[str]
            Override report title

        Returns
        -------
        str
            Complete Markdown report
        """
        report_title = title or self.config.title
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        sections = [
            f"# {report_title}",
            "",
            f"**Generated**: {timestamp}",
            f"**Precision**: {contract.precision.value}",
            f"**Steps**: {contract.n_steps} (dt = {contract.dt:.6f})",
            f"**Barrier**: {contract.barrier:g} ({contract.barrier_direction.value})",
            "",
            "## Results",
            "",
            self._format_slot_table(contract, parallel_run, reference_run),
            "",
        ]

        runs = [run for run in (parallel_run, reference_run) if run is not None]
        if self.config.include_timing and runs:
            sections.extend(["## Timing", "", self._format_timing(runs), ""])

        if self.config.include_gates and report is not None:
            sections.extend(["## Validation", "", self._format_gate_table(report), ""])

        return "\n".join(sections)

    def _run_to_dict(self, run: PricingRun) -> Dict[str, Any]:
        """Convert PricingRun to JSON-serializable dict."""
        return {
            "strategy": run.strategy.value,
            "n_sims": run.n_sims,
            "n_excluded": run.n_excluded,
            "elapsed_sec": run.elapsed_sec,
            "estimates": {
                payoff_type.value: {
                    "price": e.price,
                    "standard_error": e.standard_error,
                    "confidence_interval": list(e.confidence_interval),
                }
                for payoff_type, e in run.estimates.items()
            },
        }

    def to_json(
        self,
        contract: OptionContract,
        report: Optional[ValidationReport] = None,
        parallel_run: Optional[PricingRun] = None,
        reference_run: Optional[PricingRun] = None,
        indent: int = 2,
    ) -> str:
        """
        Generate JSON report.

        Parameters
        ----------
        indent : int
            JSON indentation (0 for compact)

        Returns
        -------
        str
            JSON string
        """
        document: Dict[str, Any] = {
            "metadata": {
                "timestamp": datetime.now().isoformat(),
                "report_version": "1.0",
            },
            "contract": {
                "spot": contract.spot,
                "strike": contract.strike,
                "rate": contract.rate,
                "volatility": contract.volatility,
                "tenor": contract.tenor,
                "dt": contract.dt,
                "n_steps": contract.n_steps,
                "barrier": contract.barrier,
                "option_type": contract.option_type.value,
                "precision": contract.precision.value,
                "averaging": contract.averaging.value,
                "golden": contract.golden,
            },
            "results": contract.results(),
            "runs": [
                self._run_to_dict(run)
                for run in (parallel_run, reference_run)
                if run is not None
            ],
        }
        if report is not None:
            document["validation"] = report.to_dict()

        return json.dumps(document, indent=indent if indent > 0 else None)

    def to_dict(self, contract: OptionContract, **kwargs: Any) -> Dict[str, Any]:
        """Generate report as Python dict."""
        return json.loads(self.to_json(contract, **kwargs))

    def to_dataframe(
        self,
        contract: OptionContract,
        parallel_run: Optional[PricingRun] = None,
        reference_run: Optional[PricingRun] = None,
    ) -> pd.DataFrame:
        """
        One row per result slot.

        Columns: slot, payoff, value, standard_error, ci_lower, ci_upper.
        Unpopulated slots and unknown standard errors are NaN.
        """
        estimates = _slot_estimates(parallel_run, reference_run)
        rows = []
        for slot in ResultSlot:
            estimate = estimates.get(slot)
            value = contract.value(slot)
            rows.append(
                {
                    "slot": slot.value,
                    "payoff": _SLOT_LABELS[slot],
                    "value": float("nan") if value is None else value,
                    "standard_error": float("nan") if estimate is None else estimate.standard_error,
                    "ci_lower": float("nan") if estimate is None else estimate.confidence_interval[0],
                    "ci_upper": float("nan") if estimate is None else estimate.confidence_interval[1],
                }
            )
        return pd.DataFrame(rows)

    def save_report(
        self,
        contract: OptionContract,
        filepath: str,
        format: str = "markdown",
        **kwargs: Any,
    ) -> None:
        """
        Save report to file.

        Raises
        ------
        ValueError
            If format is not supported
        """
        if format.lower() in ("markdown", "md"):
            content = self.to_markdown(contract, **kwargs)
        elif format.lower() == "json":
            content = self.to_json(contract, **kwargs)
        else:
            raise ValueError(
                f"Unsupported format: {format}. Use 'markdown' or 'json'."
            )

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
