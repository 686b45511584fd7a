"""
Black-Scholes closed form for European vanilla options.

Reference value for the plain-vanilla Monte Carlo estimates. No dividends: the
engine prices a single non-dividend-paying underlying.

References
----------
[T1] Black, F., & Scholes, M. (1973). The pricing of options and corporate liabilities.
[T1] Hull, J. C. (2021). Options, Futures, and Other Derivatives (11th ed.).
"""

import numpy as np
from scipy import stats

from exotic_pricing.config.tolerances import PUT_CALL_PARITY_TOLERANCE
from exotic_pricing.options.payoffs.base import OptionType


def _calculate_d1_d2(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    time_to_expiry: float,
) -> tuple[float, float]:
    """
    Calculate d1 and d2 parameters.

    [T1] d1 = (ln(S/K) + (r + σ²/2)T) / (σ√T)
    [T1] d2 = d1 - σ√T
    """
    vol_sqrt_t = volatility * np.sqrt(time_to_expiry)

    d1 = (np.log(spot / strike) + (rate + 0.5 * volatility**2) * time_to_expiry) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t

    return d1, d2


def black_scholes_call(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    time_to_expiry: float,
) -> float:
    """
    Price European call option using Black-Scholes.

    [T1] C = S*N(d1) - K*e^(-rT)*N(d2)

    Zero volatility or zero time gives the discounted forward intrinsic value
    max(S - K*e^(-rT), 0).

    Parameters
    ----------
    spot : float
        Current spot price
    strike : float
        Strike price
    rate : float
        Risk-free rate (decimal)
    volatility : float
        Volatility (decimal)
    time_to_expiry : float
        Time to expiry (years)

    Returns
    -------
    float
        Call option price

    Examples
    --------
    >>> round(black_scholes_call(42.0, 40.0, 0.10, 0.20, 0.5), 2)
    4.76
    """
    _validate_inputs(spot, strike, volatility, time_to_expiry)

    discounted_strike = strike * np.exp(-rate * time_to_expiry)
    if volatility == 0 or time_to_expiry == 0:
        return float(max(spot - discounted_strike, 0.0))

    d1, d2 = _calculate_d1_d2(spot, strike, rate, volatility, time_to_expiry)

    call_price = spot * stats.norm.cdf(d1) - discounted_strike * stats.norm.cdf(d2)

    return float(call_price)


def black_scholes_put(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    time_to_expiry: float,
) -> float:
    """
    Price European put option using Black-Scholes.

    [T1] P = K*e^(-rT)*N(-d2) - S*N(-d1)

    Examples
    --------
    >>> round(black_scholes_put(42.0, 40.0, 0.10, 0.20, 0.5), 2)
    0.81
    """
    _validate_inputs(spot, strike, volatility, time_to_expiry)

    discounted_strike = strike * np.exp(-rate * time_to_expiry)
    if volatility == 0 or time_to_expiry == 0:
        return float(max(discounted_strike - spot, 0.0))

    d1, d2 = _calculate_d1_d2(spot, strike, rate, volatility, time_to_expiry)

    put_price = discounted_strike * stats.norm.cdf(-d2) - spot * stats.norm.cdf(-d1)

    return float(put_price)


def black_scholes_price(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
) -> float:
    """Price a call or put with Black-Scholes."""
    if option_type is OptionType.CALL:
        return black_scholes_call(spot, strike, rate, volatility, time_to_expiry)
    elif option_type is OptionType.PUT:
        return black_scholes_put(spot, strike, rate, volatility, time_to_expiry)
    raise ValueError(f"CRITICAL: unknown option type {option_type!r}")


def put_call_parity_check(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    time_to_expiry: float,
    tolerance: float = PUT_CALL_PARITY_TOLERANCE,
) -> tuple[bool, float]:
    """
    Check put-call parity: C - P = S - K*e^(-rT).

    Returns
    -------
    tuple[bool, float]
        (parity holds within tolerance, absolute violation)
    """
    call = black_scholes_call(spot, strike, rate, volatility, time_to_expiry)
    put = black_scholes_put(spot, strike, rate, volatility, time_to_expiry)
    expected = spot - strike * np.exp(-rate * time_to_expiry)
    violation = float(abs((call - put) - expected))
    return violation <= tolerance, violation


def _validate_inputs(
    spot: float,
    strike: float,
    volatility: float,
    time_to_expiry: float,
) -> None:
    """Validate Black-Scholes inputs."""
    if spot <= 0:
        raise ValueError(f"CRITICAL: spot must be > 0, got {spot}")
    if strike <= 0:
        raise ValueError(f"CRITICAL: strike must be > 0, got {strike}")
    if volatility < 0:
        raise ValueError(f"CRITICAL: volatility must be >= 0, got {volatility}")
    if time_to_expiry < 0:
        raise ValueError(f"CRITICAL: time_to_expiry must be >= 0, got {time_to_expiry}")
