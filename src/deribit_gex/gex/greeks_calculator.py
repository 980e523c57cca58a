"""
Options Gamma Calculator using Black-Scholes model

Continuous compounding, no dividend yield.
"""

import math
from datetime import datetime
from typing import Optional

import numpy as np
import pytz
from scipy.stats import norm

SECONDS_PER_YEAR = 365 * 24 * 3600  # Actual/365


class GreeksCalculator:
    """Calculate option gamma using Black-Scholes"""

    def __init__(self, risk_free_rate: float = 0.0):
        """
        Args:
            risk_free_rate: Annual risk-free rate, continuously compounded
        """
        self.risk_free_rate = risk_free_rate

    def calculate_gamma(self, underlying_price, strike, time_to_expiry, implied_vol,
                        risk_free_rate: Optional[float] = None) -> Optional[float]:
        """
        Black-Scholes gamma of one contract

        Args:
            underlying_price: Spot price (S)
            strike: Strike price (K)
            time_to_expiry: Years to expiration (T)
            implied_vol: Implied volatility as decimal (sigma)
            risk_free_rate: Overrides the calculator's rate

        Returns:
            Gamma, or None when an input is missing, non-positive or the
            result is not finite
        """
        r = self.risk_free_rate if risk_free_rate is None else risk_free_rate
        return black_scholes_gamma(underlying_price, strike, time_to_expiry, r, implied_vol)

    def gamma_at(self, underlying_price, strike, expiration: datetime, implied_vol,
                 current_time: Optional[datetime] = None) -> Optional[float]:
        """Gamma for an expiry instant, measured from current_time (defaults to now)"""
        if current_time is None:
            current_time = datetime.now(pytz.UTC)

        T = time_to_expiration(current_time, expiration)
        return self.calculate_gamma(underlying_price, strike, T, implied_vol)


def _positive(value) -> bool:
    try:
        return value is not None and math.isfinite(value) and value > 0
    except TypeError:
        return False


def black_scholes_gamma(S, K, T, r, sigma) -> Optional[float]:
    if not (_positive(S) and _positive(K) and _positive(T) and _positive(sigma)):
        return None

    try:
        r = np.float64(r)
    except (TypeError, ValueError):
        return None

    # float64 arithmetic so overflow becomes inf instead of OverflowError
    S, K, T, sigma = np.float64(S), np.float64(K), np.float64(T), np.float64(sigma)

    with np.errstate(all='ignore'):
        sqrt_t = np.sqrt(T)
        d1 = (np.log(S / K) + (r + 0.5 * sigma ** 2) * T) / (sigma * sqrt_t)
        gamma = norm.pdf(d1) / (S * sigma * sqrt_t)

    gamma = float(gamma)
    return gamma if math.isfinite(gamma) else None


def time_to_expiration(current_time: datetime, expiration: datetime) -> float:
    """
    Actual/365 year fraction from current_time to expiration

    Naive datetimes are taken as UTC. Negative for expired instruments.
    """
    if current_time.tzinfo is None:
        current_time = pytz.UTC.localize(current_time)
    if expiration.tzinfo is None:
        expiration = pytz.UTC.localize(expiration)

    return (expiration - current_time).total_seconds() / SECONDS_PER_YEAR
