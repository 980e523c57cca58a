"""
Response shaping for GEX results.
"""

from typing import Dict, Optional

from deribit_gex.gex.gex_metrics import ExpirationGamma, GammaRecord, GEXResult

GAMMA_DISPLAY_DECIMALS = 8


def _display_gamma(gamma: Optional[float]) -> Optional[float]:
    return round(gamma, GAMMA_DISPLAY_DECIMALS) if gamma is not None else None


def instrument_to_dict(record: GammaRecord) -> Dict:
    return {
        'instrument_name': record.instrument_name,
        'strike': record.strike,
        'option_type': record.option_type,
        'gamma': _display_gamma(record.gamma),
        'open_interest': record.open_interest,
        'gamma_exposure': record.gamma_exposure,
        'gamma_exposure_usd': record.gamma_exposure_usd,
        'mark_iv': record.mark_iv,
        'mark_price': record.mark_price,
    }


def expiration_to_dict(bucket: ExpirationGamma) -> Dict:
    call_gamma = bucket.call_gamma
    put_gamma = bucket.put_gamma
    call_gamma_usd = bucket.call_gamma_usd
    put_gamma_usd = bucket.put_gamma_usd

    return {
        'total_gamma': call_gamma + put_gamma,
        'total_gamma_usd': call_gamma_usd + put_gamma_usd,
        'call_gamma': call_gamma,
        'call_gamma_usd': call_gamma_usd,
        'put_gamma': put_gamma,
        'put_gamma_usd': put_gamma_usd,
        'instruments': [instrument_to_dict(r) for r in bucket.records],
    }


def build_gex_response(result: GEXResult) -> Dict:
    """
    Project a GEXResult into the public response shape

    gammaByExpiration keys are YYYY-MM-DD in ascending order.
    """
    return {
        'indexPrice': result.index_price,
        'currency': result.currency,
        'gammaByExpiration': {
            bucket.date_key: expiration_to_dict(bucket) for bucket in result.expirations
        },
        'gexFlipLevel': result.gex_flip_level,
        'maxGexStrike': result.max_gex_strike,
        'maxGexValue': result.max_gex_value,
        'processedCount': result.processed_count,
        'skippedCount': result.skipped_count,
        'skippedByReason': result.skip_counts(),
        'timestamp': result.timestamp.isoformat(),
    }
