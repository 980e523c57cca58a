"""
Market Snapshot Data Structures

Instruments and quotes as used by the GEX engine, plus the normalization
of raw Deribit payloads into them.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pytz

OPTION_TYPES = ('call', 'put')

UNNAMED_INSTRUMENT = '<unnamed>'

# Deribit reports mark_iv in percent (65.3 == 65.3%)
IV_PERCENT_SCALE = 100.0


@dataclass(frozen=True)
class Instrument:
    """A listed option contract"""
    instrument_name: str
    strike: float
    expiration: datetime
    option_type: str


@dataclass(frozen=True)
class Quote:
    """Book summary for one instrument"""
    instrument_name: str
    mark_price: float
    mark_iv: Optional[float]         # decimal, 0.65 for 65%
    open_interest: float
    volume: Optional[float] = None   # 24h volume
    bid_volume: Optional[float] = None
    ask_volume: Optional[float] = None


@dataclass
class MarketSnapshot:
    """Point-in-time market data for one currency"""
    currency: str
    index_price: float
    instruments: List[Instrument]
    quotes: List[Quote]
    timestamp: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))
    malformed_instruments: List[str] = field(default_factory=list)

    @property
    def dropped_instruments(self) -> int:
        return len(self.malformed_instruments)

    def quotes_by_name(self) -> Dict[str, Quote]:
        return {quote.instrument_name: quote for quote in self.quotes}


def to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _first_number(*values) -> Optional[float]:
    for value in values:
        number = to_float(value)
        if number is not None:
            return number
    return None


def expiration_from_timestamp(timestamp_ms) -> datetime:
    """Convert a millisecond epoch timestamp to an aware UTC datetime"""
    return datetime.fromtimestamp(float(timestamp_ms) / 1000.0, tz=pytz.UTC)


def normalize_instrument(raw: dict) -> Instrument:
    """
    Map a get_instruments entry to an Instrument

    Raises:
        ValueError: if the entry lacks a usable name, strike, expiry or type
    """
    name = raw.get('instrument_name')
    if not name:
        raise ValueError("instrument without instrument_name")

    strike = to_float(raw.get('strike'))
    if strike is None:
        raise ValueError(f"{name}: invalid strike {raw.get('strike')!r}")

    option_type = str(raw.get('option_type') or '').lower()
    if option_type not in OPTION_TYPES:
        raise ValueError(f"{name}: unknown option type {raw.get('option_type')!r}")

    timestamp = to_float(raw.get('expiration_timestamp'))
    if timestamp is None:
        raise ValueError(f"{name}: missing expiration_timestamp")

    return Instrument(
        instrument_name=name,
        strike=strike,
        expiration=expiration_from_timestamp(timestamp),
        option_type=option_type
    )


def normalize_quote(raw: dict) -> Optional[Quote]:
    """
    Map a get_book_summary_by_currency entry to a Quote

    Volume falls back from volume to volume_24h to stats.volume. Returns
    None for entries without an instrument name.
    """
    name = raw.get('instrument_name')
    if not name:
        return None

    stats = raw.get('stats') or {}
    mark_iv = to_float(raw.get('mark_iv'))

    return Quote(
        instrument_name=name,
        mark_price=to_float(raw.get('mark_price')) or 0.0,
        mark_iv=mark_iv / IV_PERCENT_SCALE if mark_iv is not None else None,
        open_interest=to_float(raw.get('open_interest')) or 0.0,
        volume=_first_number(raw.get('volume'), raw.get('volume_24h'), stats.get('volume')),
        bid_volume=_first_number(raw.get('bid_volume'), raw.get('best_bid_amount')),
        ask_volume=_first_number(raw.get('ask_volume'), raw.get('best_ask_amount')),
    )
