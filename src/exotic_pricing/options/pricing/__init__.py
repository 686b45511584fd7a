"""
Closed-form option pricing.

Provides:
- Black-Scholes for European vanilla options
- Discretely monitored geometric-average Asian options
- Zero-volatility (deterministic path) values of every payoff
"""

from exotic_pricing.options.pricing.black_scholes import (
    black_scholes_call,
    black_scholes_price,
    black_scholes_put,
    put_call_parity_check,
)
from exotic_pricing.options.pricing.closed_form import (
    closed_form_prices,
    geometric_asian_price,
    zero_volatility_prices,
)

__all__ = [
    "black_scholes_call",
    "black_scholes_price",
    "black_scholes_put",
    "put_call_parity_check",
    "closed_form_prices",
    "geometric_asian_price",
    "zero_volatility_prices",
]
