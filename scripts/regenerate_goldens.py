#!/usr/bin/env python
"""
Regenerate golden files from closed-form oracles.

Usage:
    python scripts/regenerate_goldens.py --verify  # Check drift without regenerating
    python scripts/regenerate_goldens.py           # Regenerate all golden files
    python scripts/regenerate_goldens.py --hull    # Regenerate Hull examples only
    python scripts/regenerate_goldens.py --paths   # Regenerate zero-volatility paths only

Golden files are regenerated from:
- Hull examples: Black-Scholes, rounded to the textbook's cents
- Zero-volatility paths: every payoff evaluated on the deterministic drift path
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from exotic_pricing.config.tolerances import get_tolerance
from exotic_pricing.options.contract import OptionContract
from exotic_pricing.options.payoffs.base import AveragingType, OptionType, PayoffType
from exotic_pricing.options.pricing.black_scholes import black_scholes_call, black_scholes_put
from exotic_pricing.options.pricing.closed_form import zero_volatility_prices

GOLDEN_DIR = Path(__file__).parent.parent / "tests" / "golden" / "outputs"

#: Decimal places kept for zero-volatility values
PATH_DECIMALS = 9

ZERO_VOL_CASES = [
    (
        "zero_vol_call_barrier_not_hit",
        "Call, spot 40, strike 35, barrier 45 above the drift path",
        {"strike": 35.0, "barrier": 45.0, "option_type": "call", "averaging": "arithmetic"},
    ),
    (
        "zero_vol_call_barrier_hit",
        "Call, spot 40, strike 35, barrier 40.2 crossed by the drift path",
        {"strike": 35.0, "barrier": 40.2, "option_type": "call", "averaging": "arithmetic"},
    ),
    (
        "zero_vol_put",
        "Put, spot 40, strike 45, barrier 45 above the drift path",
        {"strike": 45.0, "barrier": 45.0, "option_type": "put", "averaging": "arithmetic"},
    ),
    (
        "zero_vol_geometric_call",
        "Geometric-average call on the drift path",
        {"strike": 35.0, "barrier": 45.0, "option_type": "call", "averaging": "geometric"},
    ),
]


def regenerate_hull_examples() -> dict:
    """Regenerate Hull textbook examples."""
    today = datetime.now().strftime("%Y-%m-%d")

    examples = {
        "_meta": {
            "source": "Hull (2021) Options, Futures, and Other Derivatives, 11th Edition",
            "generated": today,
            "tolerance_tier": "hull_example",
            "notes": "Textbook values rounded to cents",
        }
    }

    params = {
        "spot": 42.0, "strike": 40.0, "rate": 0.1,
        "volatility": 0.2, "time_to_expiry": 0.5,
    }
    examples["example_15_6_call"] = {
        "description": "Hull Example 15.6: European call option",
        "reference": "Hull (2021) Ch. 15",
        "parameters": params,
        "expected": {"call_price": round(black_scholes_call(**params), 2)},
    }
    examples["example_15_6_put"] = {
        "description": "Hull Example 15.6: European put option",
        "reference": "Hull (2021) Ch. 15",
        "parameters": params,
        "expected": {"put_price": round(black_scholes_put(**params), 2)},
    }
    return examples


def regenerate_path_examples() -> dict:
    """Regenerate zero-volatility drift path examples."""
    today = datetime.now().strftime("%Y-%m-%d")

    examples = {
        "_meta": {
            "source": "Deterministic drift path S_i = S e^(r i dt) and Black-Scholes closed forms",
            "generated": today,
            "tolerance_tier": "golden_relative",
            "notes": "Zero-volatility values are exact payoffs of the drift path; "
            "regenerate with scripts/regenerate_goldens.py",
        }
    }

    for name, description, overrides in ZERO_VOL_CASES:
        params = {
            "spot": 40.0,
            "rate": 0.03,
            "volatility": 0.0,
            "tenor": 1.0 / 3.0,
            "steps_per_year": 261,
            **overrides,
        }
        contract = OptionContract(
            spot=params["spot"],
            strike=params["strike"],
            rate=params["rate"],
            volatility=params["volatility"],
            tenor=params["tenor"],
            dt=1.0 / params["steps_per_year"],
            barrier=params["barrier"],
            option_type=OptionType(params["option_type"]),
            averaging=AveragingType(params["averaging"]),
        )
        prices = zero_volatility_prices(contract)
        if contract.averaging is AveragingType.GEOMETRIC:
            payoff_types = [PayoffType.ASIAN]
        else:
            payoff_types = list(PayoffType)

        examples[name] = {
            "description": description,
            "parameters": params,
            "expected": {
                payoff_type.value: round(prices[payoff_type], PATH_DECIMALS)
                for payoff_type in payoff_types
            },
        }
    return examples


def verify_golden(filepath: Path, current_data: dict, tolerance: float) -> list[str]:
    """Verify golden file matches current implementation."""
    if not filepath.exists():
        return [f"Golden file does not exist: {filepath}"]

    with open(filepath) as f:
        stored_data = json.load(f)

    errors = []

    for key, current_example in current_data.items():
        if key.startswith("_"):
            continue

        if key not in stored_data:
            errors.append(f"Missing example: {key}")
            continue

        stored_expected = stored_data[key].get("expected", {})
        for value_key, current_value in current_example.get("expected", {}).items():
            if value_key not in stored_expected:
                errors.append(f"{key}.{value_key}: missing from stored file")
                continue
            stored_value = stored_expected[value_key]
            if abs(current_value - stored_value) > tolerance:
                errors.append(
                    f"{key}.{value_key}: current={current_value}, stored={stored_value}, "
                    f"diff={abs(current_value - stored_value)}"
                )

    return errors


def _process(name: str, data: dict, path: Path, verify: bool) -> list[str]:
    if not verify:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        print(f"Regenerated: {path}")
        return []

    errors = verify_golden(path, data, get_tolerance(data["_meta"]["tolerance_tier"]))
    if errors:
        print(f"{name} drift detected:")
        for e in errors:
            print(f"  - {e}")
    else:
        print(f"{name}: OK")
    return errors


def main() -> int:
    parser = argparse.ArgumentParser(description="Regenerate golden files")
    parser.add_argument("--verify", action="store_true", help="Verify without regenerating")
    parser.add_argument("--hull", action="store_true", help="Regenerate Hull examples only")
    parser.add_argument("--paths", action="store_true", help="Regenerate zero-volatility paths only")
    args = parser.parse_args()

    # Default to all if no specific flag
    do_all = not (args.hull or args.paths)

    all_errors = []
    if args.hull or do_all:
        all_errors += _process(
            "Hull examples",
            regenerate_hull_examples(),
            GOLDEN_DIR / "hull_examples.json",
            args.verify,
        )
    if args.paths or do_all:
        all_errors += _process(
            "Zero-volatility paths",
            regenerate_path_examples(),
            GOLDEN_DIR / "path_dependent_goldens.json",
            args.verify,
        )

    if args.verify and all_errors:
        print(f"\n{len(all_errors)} drift(s) detected. Run without --verify to regenerate.")
        return 1
    elif args.verify:
        print("\nAll golden files verified successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
