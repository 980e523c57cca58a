"""
Gamma Exposure (GEX) Calculator

Calculates dealer gamma exposure from an option chain snapshot.
"""

import logging
import math
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import pytz

from deribit_gex.exceptions import EmptyResultError
from deribit_gex.gex.gamma_exposure import calculate_exposure
from deribit_gex.gex.gex_metrics import (
    INVALID_INPUTS,
    MALFORMED,
    MISSING_QUOTE,
    NO_OPEN_INTEREST,
    ExpirationGamma,
    GammaRecord,
    GEXResult,
    SkippedInstrument,
)
from deribit_gex.gex.greeks_calculator import GreeksCalculator, time_to_expiration
from deribit_gex.ingestion.snapshot_models import MarketSnapshot

logger = logging.getLogger(__name__)


class GEXCalculator:
    """Calculate gamma exposure metrics from options data"""

    def __init__(self, risk_free_rate: float = 0.0):
        """
        Args:
            risk_free_rate: Rate used in the Black-Scholes gamma (default 0)
        """
        self.greeks = GreeksCalculator(risk_free_rate=risk_free_rate)

    def calculate(self, snapshot: MarketSnapshot, current_time: Optional[datetime] = None,
                  gamma_overrides: Optional[Dict[str, float]] = None) -> GEXResult:
        """
        Calculate GEX for a snapshot

        Args:
            snapshot: Index price, instruments and quotes
            current_time: Valuation time (defaults to now, UTC)
            gamma_overrides: Exchange-reported gamma by instrument name

        Returns:
            GEXResult with buckets in ascending date order

        Raises:
            EmptyResultError: if no instrument could be processed
        """
        if current_time is None:
            current_time = datetime.now(pytz.UTC)

        logger.info(f"Calculating GEX from {len(snapshot.instruments)} instruments "
                    f"and {len(snapshot.quotes)} quotes...")

        records, skipped = self.build_records(snapshot, current_time, gamma_overrides)
        result = self.aggregate(records, snapshot.index_price, snapshot.currency, current_time)
        result.skipped = skipped

        logger.info(f"Processed: {result.processed_count}, Skipped: {result.skipped_count} "
                    f"{result.skip_counts() or ''}".rstrip())

        if not result.expirations:
            raise EmptyResultError(
                f"No expiration dates found for {snapshot.currency}: "
                f"all {result.skipped_count} instruments were skipped"
            )

        logger.info(f"GEX calculated: {len(result.expirations)} expirations, "
                    f"Net=${result.net_gex / 1e6:.1f}M, MaxStrike={result.max_gex_strike}, "
                    f"Flip={result.gex_flip_level}")
        return result

    def build_records(self, snapshot: MarketSnapshot, current_time: datetime,
                      gamma_overrides: Optional[Dict[str, float]] = None
                      ) -> Tuple[List[GammaRecord], List[SkippedInstrument]]:
        """
        Join instruments with quotes and compute per-instrument exposure

        Instruments dropped while parsing the snapshot are reported first,
        as malformed skips.
        """
        quotes = snapshot.quotes_by_name()
        gamma_overrides = gamma_overrides or {}
        spot = snapshot.index_price

        records = []
        skipped = [SkippedInstrument(name, MALFORMED) for name in snapshot.malformed_instruments]

        for instrument in snapshot.instruments:
            name = instrument.instrument_name
            quote = quotes.get(name)

            if quote is None:
                skipped.append(SkippedInstrument(name, MISSING_QUOTE))
                logger.debug(f"Skipping {name}: no quote")
                continue

            T = time_to_expiration(current_time, instrument.expiration)
            gamma = self.greeks.calculate_gamma(spot, instrument.strike, T, quote.mark_iv)
            source = 'model'

            exchange_gamma = gamma_overrides.get(name)
            if gamma is not None and exchange_gamma is not None \
                    and math.isfinite(exchange_gamma) and exchange_gamma > 0:
                gamma = exchange_gamma
                source = 'exchange'

            if gamma is None:
                skipped.append(SkippedInstrument(name, INVALID_INPUTS))
                logger.debug(f"Skipping {name}: gamma unavailable "
                             f"(K={instrument.strike}, T={T:.6f}, iv={quote.mark_iv})")
                continue

            exposure = calculate_exposure(gamma, spot, quote.open_interest, instrument.option_type)
            if exposure.skipped:
                skipped.append(SkippedInstrument(name, NO_OPEN_INTEREST))
                logger.debug(f"Skipping {name}: open interest {quote.open_interest}")
                continue

            records.append(GammaRecord(
                instrument_name=name,
                strike=instrument.strike,
                expiration=instrument.expiration,
                option_type=instrument.option_type,
                gamma=gamma,
                gamma_exposure=exposure.contract_units,
                gamma_exposure_usd=exposure.dollar_units,
                open_interest=quote.open_interest,
                mark_iv=quote.mark_iv,
                mark_price=quote.mark_price,
                gamma_source=source
            ))

        return records, skipped

    def aggregate(self, records: List[GammaRecord], index_price: float, currency: str,
                  timestamp: Optional[datetime] = None) -> GEXResult:
        """Fold records into date buckets and derive the key strike levels"""
        buckets: Dict[date, ExpirationGamma] = {}

        for record in records:
            key = record.expiration_date
            if key not in buckets:
                buckets[key] = ExpirationGamma(expiration_date=key)
            buckets[key].add(record)

        net_by_strike = self._net_gex_by_strike(records)
        max_strike, max_value = self._find_max_gex_strike(net_by_strike)

        return GEXResult(
            currency=currency,
            timestamp=timestamp or datetime.now(pytz.UTC),
            index_price=index_price,
            expirations=[buckets[key] for key in sorted(buckets)],
            gex_flip_level=self._find_gamma_flip(net_by_strike),
            max_gex_strike=max_strike,
            max_gex_value=max_value,
            processed_count=len(records)
        )

    def _net_gex_by_strike(self, records: List[GammaRecord]) -> Dict[float, float]:
        """Signed dollar exposure per strike across all expirations, ascending"""
        by_strike: Dict[float, List[float]] = {}
        for record in records:
            by_strike.setdefault(record.strike, []).append(record.net_gamma_exposure_usd)

        return {strike: math.fsum(by_strike[strike]) for strike in sorted(by_strike)}

    def _find_gamma_flip(self, net_by_strike: Dict[float, float]) -> Optional[float]:
        """
        Find the strike where net GEX changes sign

        Strikes are scanned in ascending order and strikes with exactly zero
        net exposure are ignored. The lower strike of the first bracketing
        pair is reported (no interpolation between strikes).
        """
        previous_strike = None
        previous_net = 0.0

        for strike, net in net_by_strike.items():
            if net == 0:
                continue

            if previous_strike is not None and (previous_net > 0) != (net > 0):
                return previous_strike

            previous_strike = strike
            previous_net = net

        return None

    def _find_max_gex_strike(self, net_by_strike: Dict[float, float]) -> Tuple[Optional[float], float]:
        """Strike with the largest absolute net exposure; ties go to the lowest strike"""
        max_strike = None
        max_value = 0.0

        for strike, net in net_by_strike.items():
            if max_strike is None or abs(net) > abs(max_value):
                max_strike = strike
                max_value = net

        return max_strike, max_value
