"""
GEX computation runs

Fetches a fresh snapshot and computes gamma exposure for one currency.
Every call owns its client, session and accumulators, so runs for
different currencies can execute concurrently.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from deribit_gex.config import GEXConfig, normalize_currency
from deribit_gex.gex.gex_calculator import GEXCalculator
from deribit_gex.gex.gex_metrics import GEXResult
from deribit_gex.gex.gex_response import build_gex_response
from deribit_gex.ingestion.deribit_client import DeribitSnapshotClient

logger = logging.getLogger(__name__)


async def calculate_gex(currency: Optional[str] = None, config: Optional[GEXConfig] = None,
                        current_time: Optional[datetime] = None,
                        client: Optional[DeribitSnapshotClient] = None) -> GEXResult:
    """
    Fetch a snapshot and calculate GEX

    Args:
        currency: Underlying currency (defaults to config.currency)
        config: Runtime settings (defaults to GEXConfig())
        current_time: Valuation time (defaults to now)
        client: Pre-built client, mainly for tests

    Raises:
        ValueError: unsupported currency
        FetchError: market data could not be fetched
        EmptyResultError: nothing left to aggregate
    """
    config = config or GEXConfig()
    currency = normalize_currency(currency or config.currency)

    logger.info(f"Starting GEX calculation for {currency}")

    async with (client or DeribitSnapshotClient(config)) as deribit:
        snapshot = await deribit.fetch_snapshot(currency)

        gamma_overrides = None
        if config.use_exchange_greeks:
            joinable = snapshot.quotes_by_name()
            names = [i.instrument_name for i in snapshot.instruments if i.instrument_name in joinable]
            gamma_overrides = await deribit.fetch_order_book_gammas(
                names, batch_size=config.order_book_batch_size
            )

    calculator = GEXCalculator(risk_free_rate=config.risk_free_rate)
    return calculator.calculate(snapshot, current_time=current_time, gamma_overrides=gamma_overrides)


async def get_gamma_data(currency: Optional[str] = None, config: Optional[GEXConfig] = None,
                         current_time: Optional[datetime] = None,
                         client: Optional[DeribitSnapshotClient] = None) -> Dict:
    """calculate_gex projected into the public response shape"""
    result = await calculate_gex(currency, config=config, current_time=current_time, client=client)
    return build_gex_response(result)
