"""
Tests for GBM path generation: block matrices and the step-by-step stepper.

[T1] S(t+dt) = S(t) * exp((r - σ²/2)dt + σ√dt Z)
"""

import numpy as np
import pytest

from exotic_pricing.options.contract import Precision
from exotic_pricing.options.simulation.gbm import (
    GBMParams,
    GBMStepper,
    generate_block_paths,
)
from exotic_pricing.options.simulation.random_streams import BlockSpec, iter_row_chunks


@pytest.fixture
def params() -> GBMParams:
    return GBMParams(spot=40.0, rate=0.03, volatility=0.20, dt=1.0 / 261, n_steps=87)


class TestGBMParams:
    """Tests for GBMParams."""

    def test_from_contract(self, scenario_contract):
        params = GBMParams.from_contract(scenario_contract)
        assert params.n_steps == 87
        assert params.precision is Precision.DOUBLE

    def test_step_coefficients(self, params):
        assert params.drift_per_step == pytest.approx((0.03 - 0.02) / 261)
        assert params.vol_per_step == pytest.approx(0.20 * np.sqrt(1.0 / 261))

    def test_single_precision_coefficients(self):
        params = GBMParams(40.0, 0.03, 0.2, 0.01, 10, Precision.SINGLE)
        assert isinstance(params.drift_per_step, np.float32)
        assert isinstance(params.vol_per_step, np.float32)

    def test_times(self, params):
        times = params.times
        assert times.shape == (88,)
        assert times[-1] == pytest.approx(87.0 / 261)

    @pytest.mark.parametrize(
        "overrides,match",
        [
            ({"spot": 0.0}, "spot"),
            ({"volatility": -0.2}, "volatility"),
            ({"dt": 0.0}, "dt"),
            ({"n_steps": 0}, "n_steps"),
        ],
    )
    def test_invalid(self, overrides, match):
        kwargs = {"spot": 40.0, "rate": 0.03, "volatility": 0.2, "dt": 0.01, "n_steps": 10}
        kwargs.update(overrides)
        with pytest.raises(ValueError, match=match):
            GBMParams(**kwargs)


class TestBlockPaths:
    """Tests for generate_block_paths."""

    def test_shape_and_spot_column(self, params):
        paths = generate_block_paths(params, 1234, BlockSpec(0, 0, 100))
        assert paths.shape == (100, 88)
        assert np.all(paths[:, 0] == 40.0)
        assert np.all(paths > 0)

    def test_single_precision_dtype(self):
        params = GBMParams(40.0, 0.03, 0.2, 1.0 / 261, 87, Precision.SINGLE)
        paths = generate_block_paths(params, 1234, BlockSpec(0, 0, 10))
        assert paths.dtype == np.float32

    def test_zero_volatility_is_deterministic_drift(self):
        params = GBMParams(spot=40.0, rate=0.03, volatility=0.0, dt=1.0 / 261, n_steps=87)
        paths = generate_block_paths(params, 1234, BlockSpec(0, 0, 3))
        expected = 40.0 * np.exp(0.03 * params.times)
        for row in paths:
            np.testing.assert_allclose(row, expected, rtol=1e-12)

    def test_discounted_terminal_is_martingale(self, params):
        """[T1] E[e^(-rT) S_T] = S_0."""
        paths = generate_block_paths(params, 1234, BlockSpec(0, 0, 20_000))
        T = params.n_steps * params.dt
        discounted = np.exp(-params.rate * T) * paths[:, -1]
        se = discounted.std(ddof=1) / np.sqrt(discounted.size)
        assert abs(discounted.mean() - params.spot) < 4 * se


class TestStepper:
    """Tests for GBMStepper."""

    def test_matches_block_paths(self, params):
        """Streaming the same draws reproduces the materialized paths."""
        block = BlockSpec(1, 64, 64)
        paths = generate_block_paths(params, 1234, block)

        (z,) = iter_row_chunks(1234, block, params.n_steps, chunk_rows=block.n_paths)
        stepper = GBMStepper(params, block.n_paths)
        streamed = [stepper.step(z[:, step]).copy() for step in range(params.n_steps)]
        np.testing.assert_allclose(np.column_stack(streamed), paths[:, 1:], rtol=1e-10)

    def test_invalid_path_count(self, params):
        with pytest.raises(ValueError, match="n_paths"):
            GBMStepper(params, 0)
