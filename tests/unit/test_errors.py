"""
Tests for the failure taxonomy.
"""

import pytest

from exotic_pricing.errors import (
    FailureStage,
    NumericError,
    PricingError,
    SetupError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_class,stage",
    [
        (SetupError, FailureStage.SETUP),
        (NumericError, FailureStage.NUMERIC),
        (ValidationError, FailureStage.VALIDATION),
    ],
)
def test_each_error_names_its_stage(error_class, stage):
    error = error_class("CRITICAL: boom")
    assert isinstance(error, PricingError)
    assert error.stage is stage
    assert str(error) == "CRITICAL: boom"


def test_numeric_error_counts():
    error = NumericError("CRITICAL: overflow", n_excluded=3, n_paths=10)
    assert (error.n_excluded, error.n_paths) == (3, 10)


def test_stages_are_distinct():
    assert len({SetupError.stage, NumericError.stage, ValidationError.stage}) == 3
