"""
Validation gates and reporting for priced contracts.

Provides:
- HALT/WARN/PASS gates over the result slots
- Markdown, JSON, DataFrame and console-table reports
"""

from exotic_pricing.validation.gates import (
    BarrierParityGate,
    ClosedFormGate,
    GateResult,
    GateStatus,
    GoldenValueGate,
    NumericHealthGate,
    StrategyAgreementGate,
    ValidationEngine,
    ValidationGate,
    ValidationReport,
    ensure_valid,
    validate_contract,
)
from exotic_pricing.validation.reporting import PricingReporter, ReportConfig

__all__ = [
    # Gates
    "BarrierParityGate",
    "ClosedFormGate",
    "GateResult",
    "GateStatus",
    "GoldenValueGate",
    "NumericHealthGate",
    "StrategyAgreementGate",
    "ValidationEngine",
    "ValidationGate",
    "ValidationReport",
    "ensure_valid",
    "validate_contract",
    # Reporting
    "PricingReporter",
    "ReportConfig",
]
