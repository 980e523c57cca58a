"""
GEX (Gamma Exposure) Module

This module handles gamma exposure calculations for a Deribit option chain.

Components:
    - greeks_calculator: Black-Scholes gamma
    - gamma_exposure: Per-instrument contract and dollar exposure
    - gex_calculator: Core GEX calculation and aggregation engine
    - gex_metrics: Data structures for GEX metrics
    - gex_response: Public response shape
    - gex_service: Fetch-and-calculate runs
"""

from .gamma_exposure import GammaExposure, calculate_exposure
from .gex_calculator import GEXCalculator
from .gex_metrics import (
    ExpirationGamma,
    GammaRecord,
    GEXResult,
    SkippedInstrument,
    StrikeGammaProfile,
)
from .gex_response import build_gex_response
from .gex_service import calculate_gex, get_gamma_data
from .greeks_calculator import GreeksCalculator

__all__ = [
    'GammaExposure',
    'calculate_exposure',
    'GEXCalculator',
    'ExpirationGamma',
    'GammaRecord',
    'GEXResult',
    'SkippedInstrument',
    'StrikeGammaProfile',
    'build_gex_response',
    'calculate_gex',
    'get_gamma_data',
    'GreeksCalculator'
]
