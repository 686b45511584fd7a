"""
Failure taxonomy for pricing runs.

A failed run must say which stage failed. Setup and numeric failures are raised by
the engine; validation failures are results produced by the validation layer and
are only raised when a caller explicitly asks for it (``ensure_valid``).
"""

from enum import Enum


class FailureStage(Enum):
    """Stage of a pricing run that failed."""

    SETUP = "setup"
    NUMERIC = "numeric"
    VALIDATION = "validation"


class PricingError(Exception):
    """Base class for pricing run failures."""

    stage: FailureStage = FailureStage.SETUP


class SetupError(PricingError):
    """Raised when the worker pool or requested parallelism is unavailable.

    Always raised before any path is simulated.
    """

    stage = FailureStage.SETUP


class NumericError(PricingError):
    """Raised when simulated paths produce non-finite values."""

    stage = FailureStage.NUMERIC

    def __init__(self, message: str, n_excluded: int = 0, n_paths: int = 0):
        super().__init__(message)
        self.n_excluded = n_excluded
        self.n_paths = n_paths


class ValidationError(PricingError):
    """Raised by ``ensure_valid`` when a validation gate HALTs."""

    stage = FailureStage.VALIDATION
