"""
Tests for path statistics and path-dependent payoff evaluation.

Hand-computed paths (spot 40, strike 35, up barrier 45):
    path A: 40 -> 42 -> 46 -> 44   (hits the barrier)
    path B: 40 -> 38 -> 39 -> 41   (never hits)
"""

import numpy as np
import pytest

from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
    intrinsic,
)
from exotic_pricing.options.payoffs.path_dependent import (
    PathAccumulator,
    PathStatistics,
    PayoffTerms,
    barrier_hit,
    evaluate_payoff,
    evaluate_payoffs,
)

PATHS = np.array(
    [
        [40.0, 42.0, 46.0, 44.0],
        [40.0, 38.0, 39.0, 41.0],
    ]
)


def terms(strike=35.0, barrier=45.0, option_type=OptionType.CALL, averaging=AveragingType.ARITHMETIC):
    return PayoffTerms(
        strike=strike,
        barrier=barrier,
        direction=BarrierDirection.from_levels(40.0, barrier),
        option_type=option_type,
        averaging=averaging,
    )


@pytest.fixture
def stats() -> PathStatistics:
    return PathStatistics.from_paths(PATHS)


class TestPathStatistics:
    """Statistics from materialized and streamed paths."""

    def test_from_paths(self, stats):
        np.testing.assert_allclose(stats.terminal, [44.0, 41.0])
        np.testing.assert_allclose(stats.average, [44.0, 118.0 / 3.0])
        np.testing.assert_allclose(stats.minimum, [40.0, 38.0])
        np.testing.assert_allclose(stats.maximum, [46.0, 41.0])
        assert stats.n_paths == 2

    def test_average_excludes_spot(self):
        """Only the monitoring dates after t0 enter the average."""
        stats = PathStatistics.from_paths(np.array([[100.0, 10.0]]))
        assert stats.average[0] == 10.0
        assert stats.maximum[0] == 100.0

    def test_geometric_average(self):
        stats = PathStatistics.from_paths(np.array([[10.0, 20.0, 80.0]]), AveragingType.GEOMETRIC)
        assert stats.average[0] == pytest.approx(40.0)

    def test_invalid_shape(self):
        with pytest.raises(ValueError, match="shape"):
            PathStatistics.from_paths(np.array([40.0, 41.0]))

    def test_finite_mask(self):
        stats = PathStatistics.from_paths(np.array([[40.0, np.inf, 41.0], [40.0, 41.0, 42.0]]))
        np.testing.assert_array_equal(stats.finite_mask, [False, True])

    @pytest.mark.parametrize("averaging", list(AveragingType))
    def test_accumulator_matches_materialized(self, averaging):
        rng = np.random.default_rng(7)
        paths = 40.0 * np.exp(np.cumsum(rng.normal(0.0, 0.02, size=(50, 21)), axis=1))
        paths[:, 0] = 40.0

        accumulator = PathAccumulator(spot=40.0, n_paths=50, averaging=averaging)
        for step in range(1, paths.shape[1]):
            accumulator.update(paths[:, step])
        streamed = accumulator.finalize()
        materialized = PathStatistics.from_paths(paths, averaging)

        np.testing.assert_allclose(streamed.terminal, materialized.terminal)
        np.testing.assert_allclose(streamed.average, materialized.average, rtol=1e-12)
        np.testing.assert_allclose(streamed.minimum, materialized.minimum)
        np.testing.assert_allclose(streamed.maximum, materialized.maximum)
        assert accumulator.n_observations == 20

    def test_accumulator_requires_observations(self):
        with pytest.raises(ValueError, match="no monitoring dates"):
            PathAccumulator(spot=40.0, n_paths=3).finalize()

    def test_accumulator_keeps_precision(self):
        accumulator = PathAccumulator(40.0, 2, dtype=np.float32)
        accumulator.update(np.array([41.0, 39.0], dtype=np.float32))
        assert accumulator.finalize().average.dtype == np.float32


class TestCallPayoffs:
    """Call payoffs on the hand-computed paths."""

    @pytest.mark.parametrize(
        "payoff_type,expected",
        [
            (PayoffType.PLAIN_VANILLA, [9.0, 6.0]),
            (PayoffType.ASIAN, [9.0, 118.0 / 3.0 - 35.0]),
            (PayoffType.KNOCKOUT, [0.0, 6.0]),
            (PayoffType.KNOCKIN, [9.0, 0.0]),
            (PayoffType.LOOKBACK, [4.0, 3.0]),
            (PayoffType.ALK, [0.0, 118.0 / 3.0 - 35.0]),
        ],
    )
    def test_payoff(self, stats, payoff_type, expected):
        np.testing.assert_allclose(evaluate_payoff(payoff_type, stats, terms()), expected)

    def test_touching_barrier_counts_as_hit(self):
        stats = PathStatistics.from_paths(np.array([[40.0, 45.0, 44.0]]))
        assert barrier_hit(stats, terms())[0]
        assert evaluate_payoff(PayoffType.KNOCKOUT, stats, terms())[0] == 0.0


class TestPutPayoffs:
    """Put payoffs with strike 45."""

    @pytest.mark.parametrize(
        "payoff_type,expected",
        [
            (PayoffType.PLAIN_VANILLA, [1.0, 4.0]),
            (PayoffType.ASIAN, [1.0, 45.0 - 118.0 / 3.0]),
            (PayoffType.LOOKBACK, [2.0, 0.0]),
        ],
    )
    def test_payoff(self, stats, payoff_type, expected):
        put_terms = terms(strike=45.0, option_type=OptionType.PUT)
        np.testing.assert_allclose(evaluate_payoff(payoff_type, stats, put_terms), expected)


class TestBarrierDirection:
    """Up and down barriers."""

    def test_direction_from_levels(self):
        assert BarrierDirection.from_levels(40.0, 45.0) is BarrierDirection.UP
        assert BarrierDirection.from_levels(40.0, 40.0) is BarrierDirection.UP
        assert BarrierDirection.from_levels(40.0, 39.0) is BarrierDirection.DOWN

    def test_down_barrier(self, stats):
        down = terms(barrier=39.0)
        assert down.direction is BarrierDirection.DOWN
        np.testing.assert_array_equal(barrier_hit(stats, down), [False, True])
        np.testing.assert_allclose(evaluate_payoff(PayoffType.KNOCKIN, stats, down), [0.0, 6.0])


class TestEvaluation:
    """Consistency between payoff types."""

    @pytest.mark.parametrize("option_type", list(OptionType))
    @pytest.mark.parametrize("barrier", [39.0, 43.0, 45.0, 100.0])
    def test_knockin_plus_knockout_is_vanilla(self, stats, option_type, barrier):
        t = terms(barrier=barrier, option_type=option_type)
        payoffs = evaluate_payoffs(stats, t, list(PayoffType))
        np.testing.assert_array_equal(
            payoffs[PayoffType.KNOCKIN] + payoffs[PayoffType.KNOCKOUT],
            payoffs[PayoffType.PLAIN_VANILLA],
        )

    def test_evaluate_payoffs_keys(self, stats):
        payoffs = evaluate_payoffs(stats, terms(), [PayoffType.ASIAN, PayoffType.LOOKBACK])
        assert set(payoffs) == {PayoffType.ASIAN, PayoffType.LOOKBACK}

    def test_unknown_payoff_type(self, stats):
        with pytest.raises(ValueError, match="unknown payoff type"):
            evaluate_payoff("asian", stats, terms())

    def test_intrinsic_keeps_dtype(self):
        values = intrinsic(np.array([30.0, 40.0], dtype=np.float32), 35.0, OptionType.CALL)
        assert values.dtype == np.float32
        np.testing.assert_allclose(values, [0.0, 5.0])
