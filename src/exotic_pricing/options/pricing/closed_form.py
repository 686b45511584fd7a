"""
Closed-form references for path-dependent payoffs.

- Discretely monitored geometric-average Asian option (log-normal average)
- Every payoff on the deterministic zero-volatility path
- ``closed_form_prices``: whatever closed forms apply to a contract

Monitoring conventions match the payoff evaluator: the average runs over the
n_steps dates t_i = i*dt (i = 1..n), extrema and barrier include t0.

References
----------
[T1] Kemna, A. & Vorst, A. (1990). A pricing method for options based on average asset values.
[T1] Glasserman (2003) Section 4.5 - geometric average as control variate
"""

import math

import numpy as np
from scipy import stats

from exotic_pricing.options.contract import OptionContract
from exotic_pricing.options.payoffs.base import (
    AveragingType,
    BarrierDirection,
    OptionType,
    PayoffType,
)
from exotic_pricing.options.pricing.black_scholes import black_scholes_price


def geometric_asian_price(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    dt: float,
    n_steps: int,
    option_type: OptionType,
    tenor: float | None = None,
) -> float:
    """
    Price a discretely monitored geometric-average Asian option.

    [T1] ln G ~ N(m, v) with
        m = ln S + (r - σ²/2) dt (n+1)/2
        v = σ² dt (n+1)(2n+1) / (6n)
    [T1] Call = e^(-rT) [e^(m + v/2) N(d1) - K N(d2)],
         d1 = (m - ln K + v) / √v, d2 = d1 - √v

    Parameters
    ----------
    spot : float
        Initial spot price
    strike : float
        Strike price
    rate : float
        Risk-free rate (decimal)
    volatility : float
        Volatility (decimal)
    dt : float
        Monitoring interval in years
    n_steps : int
        Number of monitoring dates
    option_type : OptionType
        Call or put
    tenor : float, optional
        Discounting horizon (default n_steps * dt)

    Returns
    -------
    float
        Option price
    """
    if spot <= 0 or strike <= 0:
        raise ValueError(f"CRITICAL: spot and strike must be > 0, got {spot}, {strike}")
    if volatility < 0:
        raise ValueError(f"CRITICAL: volatility must be >= 0, got {volatility}")
    if dt <= 0 or n_steps <= 0:
        raise ValueError(f"CRITICAL: dt and n_steps must be > 0, got {dt}, {n_steps}")

    horizon = n_steps * dt if tenor is None else tenor
    discount = math.exp(-rate * horizon)

    n = n_steps
    m = math.log(spot) + (rate - 0.5 * volatility**2) * dt * (n + 1) / 2.0
    v = volatility**2 * dt * (n + 1) * (2 * n + 1) / (6.0 * n)

    if v == 0:
        geometric_mean = math.exp(m)
        if option_type is OptionType.CALL:
            return discount * max(geometric_mean - strike, 0.0)
        return discount * max(strike - geometric_mean, 0.0)

    sqrt_v = math.sqrt(v)
    forward = math.exp(m + 0.5 * v)
    d1 = (m - math.log(strike) + v) / sqrt_v
    d2 = d1 - sqrt_v

    if option_type is OptionType.CALL:
        return float(discount * (forward * stats.norm.cdf(d1) - strike * stats.norm.cdf(d2)))
    elif option_type is OptionType.PUT:
        return float(discount * (strike * stats.norm.cdf(-d2) - forward * stats.norm.cdf(-d1)))
    raise ValueError(f"CRITICAL: unknown option type {option_type!r}")


def zero_volatility_prices(contract: OptionContract) -> dict[PayoffType, float]:
    """
    Every payoff evaluated on the deterministic path S_i = S * e^(r i dt).

    [T1] With σ = 0 the simulation collapses to this single path, so each MC
    estimate must equal these values up to rounding.

    Parameters
    ----------
    contract : OptionContract
        Contract (its volatility is ignored)

    Returns
    -------
    dict[PayoffType, float]
        Discounted price per payoff type
    """
    n = contract.n_steps
    path = contract.spot * np.exp(contract.rate * contract.dt * np.arange(n + 1))
    observed = path[1:]

    terminal = float(path[-1])
    if contract.averaging is AveragingType.GEOMETRIC:
        average = float(np.exp(np.log(observed).mean()))
    else:
        average = float(observed.mean())
    minimum, maximum = float(path.min()), float(path.max())

    if contract.barrier_direction is BarrierDirection.UP:
        hit = maximum >= contract.barrier
    else:
        hit = minimum <= contract.barrier

    sign = 1.0 if contract.option_type is OptionType.CALL else -1.0
    vanilla = max(sign * (terminal - contract.strike), 0.0)
    asian = max(sign * (average - contract.strike), 0.0)
    lookback = terminal - minimum if sign > 0 else maximum - terminal

    undiscounted = {
        PayoffType.PLAIN_VANILLA: vanilla,
        PayoffType.ASIAN: asian,
        PayoffType.KNOCKOUT: 0.0 if hit else vanilla,
        PayoffType.KNOCKIN: vanilla if hit else 0.0,
        PayoffType.LOOKBACK: lookback,
        PayoffType.ALK: 0.0 if hit else asian,
    }
    df = contract.discount_factor
    return {payoff_type: df * value for payoff_type, value in undiscounted.items()}


def closed_form_prices(contract: OptionContract) -> dict[PayoffType, float]:
    """
    Closed-form prices that exist for ``contract``.

    - σ = 0: every payoff (deterministic path)
    - otherwise: plain vanilla (Black-Scholes over n_steps*dt, discounted over the
      tenor) and, for geometric averaging, the Asian payoff

    Returns
    -------
    dict[PayoffType, float]
        Closed-form price per available payoff type
    """
    if contract.volatility == 0:
        return zero_volatility_prices(contract)

    horizon = contract.n_steps * contract.dt
    # Black-Scholes discounts over the simulated horizon; re-discount to the tenor
    rediscount = math.exp(-contract.rate * (contract.tenor - horizon))
    prices = {
        PayoffType.PLAIN_VANILLA: rediscount
        * black_scholes_price(
            contract.spot,
            contract.strike,
            contract.rate,
            contract.volatility,
            horizon,
            contract.option_type,
        )
    }
    if contract.averaging is AveragingType.GEOMETRIC:
        prices[PayoffType.ASIAN] = geometric_asian_price(
            contract.spot,
            contract.strike,
            contract.rate,
            contract.volatility,
            contract.dt,
            contract.n_steps,
            contract.option_type,
            tenor=contract.tenor,
        )
    return prices
