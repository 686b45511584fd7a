"""
Validation Gates - HALT/WARN/PASS framework for priced contracts.

Checks the result slots of a priced ``OptionContract`` before they are reported:
golden values, closed forms, the knock-in/knock-out identity, agreement between
the parallel and reference strategies, and numeric health. A deviation is a
result (HALT), never an exception; only ``validate_and_raise`` / ``ensure_valid``
turn a HALT into a ``ValidationError``.

Context keys understood by the gates:
- ``parallel_run`` / ``reference_run``: PricingRun of each strategy (standard errors,
  excluded paths)
- ``goldens``: dict[PayoffType, float] of extra golden values
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np

from exotic_pricing.config.tolerances import (
    ANTI_PATTERN_TOLERANCE,
    BS_MC_CONVERGENCE_TOLERANCE,
    GOLDEN_VALUE_TOLERANCE,
    MC_Z_SCORE,
    mc_tolerance,
)
from exotic_pricing.errors import FailureStage, ValidationError
from exotic_pricing.options.contract import (
    PARALLEL_SLOTS,
    OptionContract,
    ResultSlot,
)
from exotic_pricing.options.payoffs.base import PayoffType
from exotic_pricing.options.pricing.closed_form import closed_form_prices

logger = logging.getLogger(__name__)


class GateStatus(Enum):
    """Status of a validation gate."""
    PASS = "pass"
    HALT = "halt"
    WARN = "warn"


@dataclass(frozen=True)
class GateResult:
    """
    Result of a validation gate check.

    Attributes
    ----------
    status : GateStatus
        PASS, HALT, or WARN
    gate_name : str
        Name of the gate that was checked
    message : str
        Explanation of the result
    value : Any, optional
        The value that was checked
    threshold : Any, optional
        The threshold that was applied
    """

    status: GateStatus
    gate_name: str
    message: str
    value: Any | None = None
    threshold: Any | None = None

    @property
    def passed(self) -> bool:
        """Check if gate passed (PASS or WARN)."""
        return self.status != GateStatus.HALT


@dataclass(frozen=True)
class ValidationReport:
    """
    Complete validation report from all gates.

    Attributes
    ----------
    results : tuple[GateResult, ...]
        Results from all gates
    """

    results: tuple[GateResult, ...]

    @property
    def overall_status(self) -> GateStatus:
        """Get worst status across all gates."""
        if any(r.status == GateStatus.HALT for r in self.results):
            return GateStatus.HALT
        elif any(r.status == GateStatus.WARN for r in self.results):
            return GateStatus.WARN
        return GateStatus.PASS

    @property
    def passed(self) -> bool:
        """Check if all gates passed (no HALTs)."""
        return self.overall_status != GateStatus.HALT

    @property
    def failure_stage(self) -> Optional[FailureStage]:
        """VALIDATION when any gate halted, otherwise None."""
        return None if self.passed else FailureStage.VALIDATION

    @property
    def halted_gates(self) -> list[GateResult]:
        """Get all gates that halted."""
        return [r for r in self.results if r.status == GateStatus.HALT]

    @property
    def warned_gates(self) -> list[GateResult]:
        """Get all gates that warned."""
        return [r for r in self.results if r.status == GateStatus.WARN]

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "overall_status": self.overall_status.value,
            "passed": self.passed,
            "n_halted": len(self.halted_gates),
            "n_warned": len(self.warned_gates),
            "results": [
                {
                    "gate": r.gate_name,
                    "status": r.status.value,
                    "message": r.message,
                    "value": r.value,
                    "threshold": r.threshold,
                }
                for r in self.results
            ],
        }


def _rounding_floor(contract: OptionContract, scale: float) -> float:
    """Smallest meaningful tolerance at the contract's working precision."""
    eps = float(np.finfo(contract.dtype).eps)
    return float(np.sqrt(eps)) * max(1.0, abs(scale))


def _mc_tolerance(
    context: dict, run_key: str, payoff_type: PayoffType, z_score: float
) -> Optional[float]:
    """z standard errors of the estimate in ``context[run_key]``, if present."""
    run = context.get(run_key)
    if run is None or payoff_type not in run.estimates:
        return None
    estimate = run.estimates[payoff_type]
    return mc_tolerance(estimate.n_paths, sigma=estimate.sample_std, confidence=z_score)


def _missing(gate_name: str, slot: ResultSlot) -> GateResult:
    return GateResult(
        status=GateStatus.WARN,
        gate_name=gate_name,
        message=f"{slot.value} not populated; check skipped",
    )


# =============================================================================
# Gate Implementations
# =============================================================================

class ValidationGate:
    """
    Base class for validation gates.

    Subclasses implement check() to validate a priced contract.
    """

    name: str = "base_gate"

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        """
        Check the priced contract.

        Parameters
        ----------
        contract : OptionContract
            Contract whose result slots are validated
        **context : Any
            Additional context (strategy runs, extra golden values)

        Returns
        -------
        GateResult
            Validation result
        """
        raise NotImplementedError


class GoldenValueGate(ValidationGate):
    """
    Compare result slots with caller-supplied golden values.

    The contract's own ``golden`` applies to the Asian slot; ``goldens`` in the
    context can add one per payoff type.
    """

    name = "golden_value"

    def __init__(self, tolerance: float = GOLDEN_VALUE_TOLERANCE):
        self.tolerance = tolerance

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        goldens: dict[PayoffType, float] = dict(context.get("goldens") or {})
        if contract.golden is not None:
            goldens.setdefault(PayoffType.ASIAN, contract.golden)

        if not goldens:
            return GateResult(
                status=GateStatus.PASS,
                gate_name=self.name,
                message="No golden value supplied; check skipped",
            )

        failures = []
        for payoff_type, golden in goldens.items():
            slot = PARALLEL_SLOTS[payoff_type]
            value = contract.value(slot)
            if value is None:
                return _missing(self.name, slot)
            if abs(value - golden) > self.tolerance:
                failures.append(
                    f"computed {slot.value} ({value:e}) does not match expected ({golden:e})"
                )

        if failures:
            return GateResult(
                status=GateStatus.HALT,
                gate_name=self.name,
                message="; ".join(failures),
                value=len(failures),
                threshold=self.tolerance,
            )

        return GateResult(
            status=GateStatus.PASS,
            gate_name=self.name,
            message=f"{len(goldens)} golden value(s) matched within {self.tolerance}",
            threshold=self.tolerance,
        )


class ClosedFormGate(ValidationGate):
    """
    Compare result slots with every closed form available for the contract.

    [T1] Tolerance is z standard errors when the parallel run is in the context,
    otherwise a fixed fallback; never below the working-precision rounding floor.
    """

    name = "closed_form"

    def __init__(
        self,
        z_score: float = MC_Z_SCORE,
        fallback_tolerance: float = BS_MC_CONVERGENCE_TOLERANCE,
    ):
        self.z_score = z_score
        self.fallback_tolerance = fallback_tolerance

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        failures = []
        checked = 0
        for payoff_type, expected in closed_form_prices(contract).items():
            slot = PARALLEL_SLOTS[payoff_type]
            value = contract.value(slot)
            if value is None:
                continue
            tolerance = _mc_tolerance(context, "parallel_run", payoff_type, self.z_score)
            if tolerance is None:
                tolerance = self.fallback_tolerance
            tolerance = max(tolerance, _rounding_floor(contract, expected))
            checked += 1
            if abs(value - expected) > tolerance:
                failures.append(
                    f"{slot.value} {value:.6f} vs closed form {expected:.6f} "
                    f"(tolerance {tolerance:.2e})"
                )

        if failures:
            return GateResult(
                status=GateStatus.HALT,
                gate_name=self.name,
                message="; ".join(failures),
                value=len(failures),
            )
        if checked == 0:
            return GateResult(
                status=GateStatus.WARN,
                gate_name=self.name,
                message="No populated slot has a closed form; check skipped",
            )
        return GateResult(
            status=GateStatus.PASS,
            gate_name=self.name,
            message=f"{checked} slot(s) agree with closed forms",
        )


class BarrierParityGate(ValidationGate):
    """
    [T1] Knock-in + knock-out must equal plain vanilla for the same barrier.
    """

    name = "barrier_parity"

    def __init__(self, relative_tolerance: float = 1e-6):
        self.relative_tolerance = relative_tolerance

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        for slot in (ResultSlot.KNOCKIN, ResultSlot.KNOCKOUT, ResultSlot.PLAIN_VANILLA):
            if contract.value(slot) is None:
                return _missing(self.name, slot)

        vanilla = contract.value_plain_vanilla
        parity = contract.value_knockin + contract.value_knockout
        tolerance = max(ANTI_PATTERN_TOLERANCE, self.relative_tolerance * abs(vanilla))
        violation = abs(parity - vanilla)

        if violation > tolerance:
            return GateResult(
                status=GateStatus.HALT,
                gate_name=self.name,
                message=(
                    f"knock-in + knock-out = {parity:.6f} differs from vanilla "
                    f"{vanilla:.6f} by {violation:.2e}"
                ),
                value=violation,
                threshold=tolerance,
            )
        return GateResult(
            status=GateStatus.PASS,
            gate_name=self.name,
            message="knock-in + knock-out matches vanilla",
            value=violation,
            threshold=tolerance,
        )


class StrategyAgreementGate(ValidationGate):
    """
    Parallel and reference vanilla estimates must agree within z combined
    standard errors.
    """

    name = "strategy_agreement"

    def __init__(
        self,
        z_score: float = MC_Z_SCORE,
        fallback_tolerance: float = GOLDEN_VALUE_TOLERANCE,
    ):
        self.z_score = z_score
        self.fallback_tolerance = fallback_tolerance

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        for slot in (ResultSlot.PLAIN_VANILLA, ResultSlot.PLAIN_VANILLA_CPU):
            if contract.value(slot) is None:
                return _missing(self.name, slot)

        gap = abs(contract.value_plain_vanilla - contract.value_plain_vanilla_cpu)
        tol_parallel = _mc_tolerance(
            context, "parallel_run", PayoffType.PLAIN_VANILLA, self.z_score
        )
        tol_reference = _mc_tolerance(
            context, "reference_run", PayoffType.PLAIN_VANILLA, self.z_score
        )
        if tol_parallel is None or tol_reference is None:
            tolerance = self.fallback_tolerance
        else:
            tolerance = float(np.hypot(tol_parallel, tol_reference))
        tolerance = max(tolerance, _rounding_floor(contract, contract.value_plain_vanilla))

        if gap > tolerance:
            return GateResult(
                status=GateStatus.HALT,
                gate_name=self.name,
                message=f"parallel and reference vanilla differ by {gap:.2e}",
                value=gap,
                threshold=tolerance,
            )
        return GateResult(
            status=GateStatus.PASS,
            gate_name=self.name,
            message="parallel and reference vanilla agree",
            value=gap,
            threshold=tolerance,
        )


class NumericHealthGate(ValidationGate):
    """
    Surface paths excluded for non-finite values.

    Excluded paths WARN by default, or HALT when ``halt_on_excluded`` is set.
    """

    name = "numeric_health"

    def __init__(self, halt_on_excluded: bool = False):
        self.halt_on_excluded = halt_on_excluded

    def check(self, contract: OptionContract, **context: Any) -> GateResult:
        excluded = {
            key: run.n_excluded
            for key in ("parallel_run", "reference_run")
            if (run := context.get(key)) is not None and run.n_excluded
        }
        if excluded:
            details = ", ".join(f"{key}: {count}" for key, count in excluded.items())
            return GateResult(
                status=GateStatus.HALT if self.halt_on_excluded else GateStatus.WARN,
                gate_name=self.name,
                message=f"Non-finite paths excluded ({details})",
                value=sum(excluded.values()),
                threshold=0,
            )
        return GateResult(
            status=GateStatus.PASS,
            gate_name=self.name,
            message="No non-finite paths",
        )


# =============================================================================
# Validation Engine
# =============================================================================

class ValidationEngine:
    """
    Engine for running validation gates on a priced contract.

    Parameters
    ----------
    gates : list[ValidationGate], optional
        Custom gates to use. If None, uses default gates.

    Examples
    --------
    >>> engine = ValidationEngine()
    >>> report = engine.validate(contract, parallel_run=run)
    >>> if not report.passed:
    ...     for gate in report.halted_gates:
    ...         print(f"HALT: {gate.message}")
    """

    def __init__(
        self,
        gates: list[ValidationGate] | None = None,
    ):
        if gates is None:
            gates = self._default_gates()
        self.gates = gates

    def _default_gates(self) -> list[ValidationGate]:
        """Create default set of validation gates."""
        return [
            GoldenValueGate(),
            ClosedFormGate(),
            BarrierParityGate(),
            StrategyAgreementGate(),
            NumericHealthGate(),
        ]

    def validate(
        self,
        contract: OptionContract,
        **context: Any,
    ) -> ValidationReport:
        """
        Run all validation gates on a priced contract.

        Parameters
        ----------
        contract : OptionContract
            Priced contract
        **context : Any
            Additional context for validation

        Returns
        -------
        ValidationReport
            Complete validation report
        """
        results = []
        for gate in self.gates:
            gate_result = gate.check(contract, **context)
            if gate_result.status == GateStatus.HALT:
                logger.warning(f"HALT [{gate_result.gate_name}]: {gate_result.message}")
            results.append(gate_result)

        return ValidationReport(results=tuple(results))

    def validate_and_raise(
        self,
        contract: OptionContract,
        **context: Any,
    ) -> OptionContract:
        """
        Validate and raise exception on HALT.

        Raises
        ------
        ValidationError
            If any gate HALTs
        """
        report = self.validate(contract, **context)

        if not report.passed:
            halt_messages = [g.message for g in report.halted_gates]
            raise ValidationError(
                "CRITICAL: Validation failed. HALTs:\n" +
                "\n".join(f"  - {m}" for m in halt_messages)
            )

        return contract


# =============================================================================
# Convenience Functions
# =============================================================================

def validate_contract(
    contract: OptionContract,
    **context: Any,
) -> ValidationReport:
    """
    Quick validation of a priced contract with the default gates.

    Examples
    --------
    >>> report = validate_contract(contract, parallel_run=run)
    >>> if not report.passed:
    ...     print("Validation failed!")
    """
    engine = ValidationEngine()
    return engine.validate(contract, **context)


def ensure_valid(
    contract: OptionContract,
    **context: Any,
) -> OptionContract:
    """
    Validate and raise if invalid.

    Raises
    ------
    ValidationError
        If validation fails
    """
    engine = ValidationEngine()
    return engine.validate_and_raise(contract, **context)
