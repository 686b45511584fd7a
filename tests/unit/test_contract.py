"""
Tests for the option contract: parameters, derived quantities, result slots.
"""

import math

import numpy as np
import pytest

from exotic_pricing.options.contract import (
    PARALLEL_SLOTS,
    SEQUENTIAL_SLOTS,
    OptionContract,
    Precision,
    ResultSlot,
    Strategy,
)
from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
)


class TestContractParameters:
    """Parameter validation and immutability."""

    def test_defaults(self):
        """Double precision and arithmetic averaging by default."""
        contract = OptionContract(
            spot=40.0, strike=35.0, rate=0.03, volatility=0.2,
            tenor=1.0 / 3.0, dt=1.0 / 261, barrier=45.0, option_type=OptionType.CALL,
        )
        assert contract.precision is Precision.DOUBLE
        assert contract.averaging is AveragingType.ARITHMETIC
        assert contract.golden is None

    @pytest.mark.parametrize(
        "overrides,match",
        [
            ({"spot": 0.0}, "spot must be > 0"),
            ({"strike": -1.0}, "strike must be > 0"),
            ({"volatility": -0.1}, "volatility must be >= 0"),
            ({"tenor": 0.0}, "tenor must be > 0"),
            ({"dt": 0.0}, "dt must be in"),
            ({"dt": 1.0}, "dt must be in"),
            ({"barrier": -5.0}, "barrier must be >= 0"),
            ({"volatility": math.nan}, "volatility must be finite"),
            ({"spot": math.inf}, "spot must be finite"),
            ({"option_type": "call"}, "option_type must be OptionType"),
            ({"precision": "double"}, "precision must be Precision"),
        ],
    )
    def test_invalid_parameters(self, contract_factory, overrides, match):
        with pytest.raises(ValueError, match=match):
            contract_factory(**overrides)

    def test_zero_volatility_allowed(self, contract_factory):
        """σ = 0 is the degenerate deterministic case, not an error."""
        assert contract_factory(volatility=0.0).volatility == 0.0

    @pytest.mark.parametrize("name", ["spot", "strike", "barrier", "option_type", "precision"])
    def test_parameters_immutable(self, scenario_contract, name):
        with pytest.raises(AttributeError, match="immutable"):
            setattr(scenario_contract, name, getattr(scenario_contract, name))


class TestDerivedQuantities:
    """n_steps, discounting, barrier direction."""

    def test_reference_scenario_steps(self, scenario_contract):
        """1/3 year of 1/261 steps is 87 steps despite rounding in the ratio."""
        assert scenario_contract.n_steps == 87

    def test_steps_round_up(self, contract_factory):
        """A partial last step counts as a full step."""
        contract = contract_factory(tenor=1.0, dt=0.3)
        assert contract.n_steps == 4

    def test_single_step(self, contract_factory):
        assert contract_factory(tenor=0.5, dt=0.5).n_steps == 1

    def test_discount_factor(self, scenario_contract):
        assert scenario_contract.discount_factor == pytest.approx(math.exp(-0.03 / 3.0))

    def test_barrier_direction(self, contract_factory):
        assert contract_factory(barrier=45.0).barrier_direction is BarrierDirection.UP
        assert contract_factory(barrier=40.0).barrier_direction is BarrierDirection.UP
        assert contract_factory(barrier=35.0).barrier_direction is BarrierDirection.DOWN

    def test_dtype(self, contract_factory):
        assert contract_factory(precision=Precision.SINGLE).dtype is np.float32
        assert contract_factory(precision=Precision.DOUBLE).dtype is np.float64


class TestResultSlots:
    """Write-once-per-run result slots."""

    def test_slots_start_empty(self, scenario_contract):
        results = scenario_contract.results()
        assert set(results) == {slot.value for slot in ResultSlot}
        assert all(value is None for value in results.values())

    def test_record_and_read(self, scenario_contract):
        scenario_contract.begin_run(Strategy.PARALLEL)
        scenario_contract.record(ResultSlot.ASIAN, 5.16)
        assert scenario_contract.value_asian == 5.16
        assert scenario_contract.value(ResultSlot.ASIAN) == 5.16

    def test_second_write_rejected(self, scenario_contract):
        scenario_contract.begin_run(Strategy.PARALLEL)
        scenario_contract.record(ResultSlot.KNOCKIN, 1.0)
        with pytest.raises(RuntimeError, match="already written"):
            scenario_contract.record(ResultSlot.KNOCKIN, 2.0)
        assert scenario_contract.value_knockin == 1.0

    def test_begin_run_clears_only_owned_slots(self, scenario_contract):
        scenario_contract.begin_run(Strategy.PARALLEL)
        scenario_contract.record(ResultSlot.PLAIN_VANILLA, 5.6)
        scenario_contract.begin_run(Strategy.SEQUENTIAL)
        scenario_contract.record(ResultSlot.PLAIN_VANILLA_CPU, 5.6)

        scenario_contract.begin_run(Strategy.PARALLEL)
        assert scenario_contract.value_plain_vanilla is None
        assert scenario_contract.value_plain_vanilla_cpu == 5.6
        scenario_contract.record(ResultSlot.PLAIN_VANILLA, 5.7)
        assert scenario_contract.value_plain_vanilla == 5.7

    def test_single_precision_rounding(self, contract_factory):
        """Recorded values carry the working precision."""
        contract = contract_factory(precision=Precision.SINGLE)
        contract.begin_run(Strategy.PARALLEL)
        contract.record(ResultSlot.ASIAN, 0.1)
        assert contract.value_asian == float(np.float32(0.1))
        assert isinstance(contract.value_asian, float)

    def test_slot_ownership(self):
        """Parallel owns every slot except the CPU vanilla slot."""
        assert ResultSlot.PLAIN_VANILLA_CPU not in PARALLEL_SLOTS.values()
        assert set(PARALLEL_SLOTS) == set(PayoffType)
        assert SEQUENTIAL_SLOTS == {PayoffType.PLAIN_VANILLA: ResultSlot.PLAIN_VANILLA_CPU}
