"""Shared pytest fixtures for GEX engine tests."""
from datetime import datetime, timedelta

import pytest
import pytz

from deribit_gex.gex.gex_metrics import GammaRecord
from deribit_gex.ingestion.snapshot_models import Instrument, MarketSnapshot, Quote

# Valuation time used throughout; QUARTER_EXPIRY is exactly T = 0.25 (Actual/365)
NOW = datetime(2025, 1, 1, 8, 0, tzinfo=pytz.UTC)
QUARTER_EXPIRY = NOW + timedelta(days=91.25)


def make_instrument(name: str, strike: float, option_type: str = "call",
                    expiration: datetime = QUARTER_EXPIRY) -> Instrument:
    return Instrument(
        instrument_name=name,
        strike=strike,
        expiration=expiration,
        option_type=option_type
    )


def make_quote(name: str, mark_iv: float = 0.6, open_interest: float = 10.0,
               mark_price: float = 0.05) -> Quote:
    return Quote(
        instrument_name=name,
        mark_price=mark_price,
        mark_iv=mark_iv,
        open_interest=open_interest,
        volume=12.5
    )


def make_snapshot(instruments, quotes, index_price: float = 50000.0,
                  currency: str = "BTC") -> MarketSnapshot:
    return MarketSnapshot(
        currency=currency,
        index_price=index_price,
        instruments=list(instruments),
        quotes=list(quotes),
        timestamp=NOW
    )


def make_record(strike: float, option_type: str = "call", usd: float = 1.0,
                contracts: float = None, expiration: datetime = QUARTER_EXPIRY,
                name: str = None) -> GammaRecord:
    """Hand-built record with a chosen dollar exposure"""
    return GammaRecord(
        instrument_name=name or f"BTC-{int(strike)}-{option_type[0].upper()}",
        strike=strike,
        expiration=expiration,
        option_type=option_type,
        gamma=1e-5,
        gamma_exposure=usd / 1e6 if contracts is None else contracts,
        gamma_exposure_usd=usd,
        open_interest=1.0,
        mark_iv=0.6,
        mark_price=0.05
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def atm_call_snapshot():
    """Single ATM call: S = K = 50000, T = 0.25, sigma = 0.6, OI = 10"""
    name = "BTC-ATM-50000-C"
    return make_snapshot(
        [make_instrument(name, 50000.0, "call")],
        [make_quote(name, mark_iv=0.6, open_interest=10.0)]
    )


@pytest.fixture
def mixed_chain_snapshot():
    """Two expirations, calls and puts on several strikes"""
    later = QUARTER_EXPIRY + timedelta(days=30)
    instruments = [
        make_instrument("BTC-Q-45000-P", 45000.0, "put"),
        make_instrument("BTC-Q-50000-C", 50000.0, "call"),
        make_instrument("BTC-Q-50000-P", 50000.0, "put"),
        make_instrument("BTC-Q-55000-C", 55000.0, "call"),
        make_instrument("BTC-L-48000-C", 48000.0, "call", later),
        make_instrument("BTC-L-60000-P", 60000.0, "put", later),
    ]
    quotes = [
        make_quote("BTC-Q-45000-P", mark_iv=0.7, open_interest=120.0),
        make_quote("BTC-Q-50000-C", mark_iv=0.6, open_interest=80.0),
        make_quote("BTC-Q-50000-P", mark_iv=0.62, open_interest=55.5),
        make_quote("BTC-Q-55000-C", mark_iv=0.58, open_interest=33.0),
        make_quote("BTC-L-48000-C", mark_iv=0.65, open_interest=14.2),
        make_quote("BTC-L-60000-P", mark_iv=0.66, open_interest=71.0),
    ]
    return make_snapshot(instruments, quotes)
