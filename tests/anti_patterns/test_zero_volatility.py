"""
Anti-pattern tests: zero volatility.

[T1] With σ = 0 every path is the deterministic drift path S·e^(r·i·dt), so
each Monte Carlo estimate equals the payoff of that path with zero standard
error. Any difference is a simulation or payoff bug.
"""

import pytest

from exotic_pricing.options.contract import PARALLEL_SLOTS, Precision
from exotic_pricing.options.payoffs.base import OptionType, PayoffType
from exotic_pricing.options.pricing.closed_form import zero_volatility_prices


@pytest.fixture
def deterministic(contract_factory):
    def _make(**overrides):
        overrides.setdefault("volatility", 0.0)
        return contract_factory(**overrides)

    return _make


@pytest.mark.anti_pattern
class TestDeterministicPath:
    """Every slot collapses to the drift-path payoff."""

    @pytest.mark.parametrize("option_type", [OptionType.CALL, OptionType.PUT])
    @pytest.mark.parametrize("barrier", [45.0, 40.2, 35.0])
    def test_parallel_slots(self, engine_factory, deterministic, tolerances, option_type, barrier):
        contract = deterministic(option_type=option_type, barrier=barrier)
        run = engine_factory(n_sims=2_000, paths_per_block=512).price_parallel(contract)

        expected = zero_volatility_prices(contract)
        for payoff_type, slot in PARALLEL_SLOTS.items():
            assert contract.value(slot) == pytest.approx(
                expected[payoff_type], abs=tolerances.deterministic
            ), payoff_type
            assert run.estimates[payoff_type].standard_error == pytest.approx(
                0.0, abs=tolerances.deterministic
            )

    def test_reference_slot(self, engine_factory, deterministic, tolerances):
        contract = deterministic()
        engine_factory(n_sims=2_000, paths_per_block=512).price_reference(contract)

        expected = zero_volatility_prices(contract)[PayoffType.PLAIN_VANILLA]
        assert contract.value_plain_vanilla_cpu == pytest.approx(expected, abs=tolerances.deterministic)

    def test_known_values(self, engine_factory, deterministic):
        """Spot 40, strike 35, r 3%, tenor 1/3, barrier 45 not reached."""
        contract = deterministic()
        engine_factory(n_sims=1_000, paths_per_block=500).price_parallel(contract)

        vanilla = 5.348255818779116  # 40 - 35·e^(-0.01)
        assert contract.value_plain_vanilla == pytest.approx(vanilla, abs=1e-9)
        assert contract.value_knockout == pytest.approx(vanilla, abs=1e-9)
        assert contract.value_knockin == 0.0
        assert contract.value_lookback == pytest.approx(0.398006650033, abs=1e-9)
        assert contract.value_asian == pytest.approx(5.1512083, abs=1e-5)
        assert contract.value_alk == contract.value_asian

    def test_barrier_hit_on_drift_path(self, engine_factory, deterministic):
        """Drift carries the path from 40 to 40.40, through a barrier at 40.2."""
        contract = deterministic(barrier=40.2)
        engine_factory(n_sims=1_000, paths_per_block=500).price_parallel(contract)

        assert contract.value_knockout == 0.0
        assert contract.value_alk == 0.0
        assert contract.value_knockin == contract.value_plain_vanilla

    @pytest.mark.parametrize("option_type", [OptionType.CALL, OptionType.PUT])
    def test_single_precision(self, engine_factory, deterministic, tolerances, option_type):
        contract = deterministic(option_type=option_type, precision=Precision.SINGLE)
        engine_factory(
            n_sims=2_000, paths_per_block=512, precision=Precision.SINGLE
        ).price_parallel(contract)

        expected = zero_volatility_prices(contract)
        tol = tolerances.single_precision_deterministic
        for payoff_type, slot in PARALLEL_SLOTS.items():
            assert contract.value(slot) == pytest.approx(expected[payoff_type], rel=tol, abs=tol)
