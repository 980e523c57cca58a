"""
GEX Metrics Data Structures

Defines data classes and structures for gamma exposure metrics.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

import pytz

# Skip reasons
MISSING_QUOTE = 'missing_quote'
INVALID_INPUTS = 'invalid_inputs'
NO_OPEN_INTEREST = 'no_open_interest'
MALFORMED = 'malformed'


@dataclass(frozen=True)
class GammaRecord:
    """Gamma and exposure of one processed instrument"""
    instrument_name: str
    strike: float
    expiration: datetime
    option_type: str
    gamma: Optional[float]
    gamma_exposure: float            # gamma * OI (contract units)
    gamma_exposure_usd: float        # dollars per 1% move, unsigned
    open_interest: float
    mark_iv: Optional[float]
    mark_price: float
    gamma_source: str = 'model'      # 'model' or 'exchange'

    @property
    def expiration_date(self) -> date:
        """Expiry truncated to its UTC calendar date"""
        return self.expiration.astimezone(pytz.UTC).date()

    @property
    def net_gamma_exposure_usd(self) -> float:
        """Dealer-signed dollar exposure: calls positive, puts negative"""
        return self.gamma_exposure_usd if self.option_type == 'call' else -self.gamma_exposure_usd


@dataclass(frozen=True)
class SkippedInstrument:
    """An instrument left out of the computation"""
    instrument_name: str
    reason: str


@dataclass(frozen=True)
class StrikeGammaProfile:
    """Gamma profile for a specific strike"""
    strike: float
    call_gamma: float
    put_gamma: float
    call_gamma_usd: float
    put_gamma_usd: float
    call_oi: float
    put_oi: float

    @property
    def net_gamma_usd(self) -> float:
        """Call minus put dollar exposure"""
        return self.call_gamma_usd - self.put_gamma_usd


def build_strike_profiles(records: List[GammaRecord]) -> Dict[float, StrikeGammaProfile]:
    """Group records by strike, ascending. Sums are order-independent."""
    grouped: Dict[float, List[GammaRecord]] = {}
    for record in records:
        grouped.setdefault(record.strike, []).append(record)

    profiles = {}
    for strike in sorted(grouped):
        calls = [r for r in grouped[strike] if r.option_type == 'call']
        puts = [r for r in grouped[strike] if r.option_type == 'put']
        profiles[strike] = StrikeGammaProfile(
            strike=strike,
            call_gamma=math.fsum(r.gamma_exposure for r in calls),
            put_gamma=math.fsum(r.gamma_exposure for r in puts),
            call_gamma_usd=math.fsum(r.gamma_exposure_usd for r in calls),
            put_gamma_usd=math.fsum(r.gamma_exposure_usd for r in puts),
            call_oi=math.fsum(r.open_interest for r in calls),
            put_oi=math.fsum(r.open_interest for r in puts)
        )
    return profiles


@dataclass
class ExpirationGamma:
    """All processed instruments expiring on one UTC date"""
    expiration_date: date
    records: List[GammaRecord] = field(default_factory=list)

    def add(self, record: GammaRecord):
        if record.expiration_date != self.expiration_date:
            raise ValueError(
                f"{record.instrument_name} expires {record.expiration_date}, not {self.expiration_date}"
            )
        self.records.append(record)

    def _sum(self, attr: str, option_type: str) -> float:
        return math.fsum(getattr(r, attr) for r in self.records if r.option_type == option_type)

    @property
    def call_gamma(self) -> float:
        return self._sum('gamma_exposure', 'call')

    @property
    def put_gamma(self) -> float:
        return self._sum('gamma_exposure', 'put')

    @property
    def call_gamma_usd(self) -> float:
        return self._sum('gamma_exposure_usd', 'call')

    @property
    def put_gamma_usd(self) -> float:
        return self._sum('gamma_exposure_usd', 'put')

    @property
    def total_gamma(self) -> float:
        return self.call_gamma + self.put_gamma

    @property
    def total_gamma_usd(self) -> float:
        return self.call_gamma_usd + self.put_gamma_usd

    @property
    def date_key(self) -> str:
        return self.expiration_date.isoformat()

    def strike_profiles(self) -> Dict[float, StrikeGammaProfile]:
        """Per-strike view of this expiration"""
        return build_strike_profiles(self.records)

    def top_instruments(self, n: int = 5) -> List[GammaRecord]:
        """Largest absolute dollar exposure first; ties keep insertion order"""
        return sorted(self.records, key=lambda r: abs(r.gamma_exposure_usd), reverse=True)[:n]


@dataclass
class GEXResult:
    """Container for one GEX computation"""

    # Identification
    currency: str
    timestamp: datetime

    # Market state
    index_price: float

    # Buckets in ascending date order
    expirations: List[ExpirationGamma]

    # Key levels
    gex_flip_level: Optional[float]     # Lower strike of the first sign change
    max_gex_strike: Optional[float]     # Strike with the largest |net exposure|
    max_gex_value: float                # Net exposure at that strike (signed)

    # Bookkeeping
    processed_count: int = 0
    skipped: List[SkippedInstrument] = field(default_factory=list)

    def __post_init__(self):
        if not self.index_price or self.index_price <= 0:
            raise ValueError(f"Invalid index price: {self.index_price}")

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip_counts(self) -> Dict[str, int]:
        return dict(Counter(s.reason for s in self.skipped))

    @property
    def records(self) -> List[GammaRecord]:
        return [r for bucket in self.expirations for r in bucket.records]

    def strike_profiles(self) -> Dict[float, StrikeGammaProfile]:
        """Per-strike view across every expiration"""
        return build_strike_profiles(self.records)

    @property
    def call_gamma_usd(self) -> float:
        return math.fsum(b.call_gamma_usd for b in self.expirations)

    @property
    def put_gamma_usd(self) -> float:
        return math.fsum(b.put_gamma_usd for b in self.expirations)

    @property
    def net_gex(self) -> float:
        """Net gamma (calls - puts, dealer perspective) in dollars"""
        return self.call_gamma_usd - self.put_gamma_usd

    @property
    def is_positive_gamma_regime(self) -> bool:
        """True if dealers are net long gamma (price should be stable)"""
        return self.net_gex > 0

    @property
    def gamma_regime(self) -> str:
        """Return human-readable gamma regime"""
        if self.is_positive_gamma_regime:
            return "Positive (Stabilizing)"
        else:
            return "Negative (Destabilizing)"

    def summary(self) -> str:
        """Return human-readable summary of GEX metrics"""
        lines = [
            f"GEX for {self.currency} ({len(self.expirations)} expirations)",
            f"  Timestamp: {self.timestamp}",
            f"  Index Price: ${self.index_price:,.2f}",
            f"  ",
            f"  Call GEX: ${self.call_gamma_usd / 1e6:,.2f}M",
            f"  Put GEX: ${self.put_gamma_usd / 1e6:,.2f}M",
            f"  Net GEX: ${self.net_gex / 1e6:,.2f}M",
            f"  Gamma Regime: {self.gamma_regime}",
            f"  ",
        ]

        if self.max_gex_strike is not None:
            lines.append(f"  Max GEX Strike: ${self.max_gex_strike:,.0f} "
                         f"(${self.max_gex_value / 1e6:+,.2f}M)")
        if self.gex_flip_level is not None:
            lines.append(f"  GEX Flip Level: ${self.gex_flip_level:,.0f}")
        else:
            lines.append("  GEX Flip Level: none")

        lines.append(f"  Processed: {self.processed_count}, Skipped: {self.skipped_count}")
        return "\n".join(lines)
