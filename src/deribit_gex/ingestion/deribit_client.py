"""
Deribit Market Data Client

Fetches the index price, option instruments and book summaries for a
currency from the public Deribit REST API.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

import aiohttp

from deribit_gex.config import GEXConfig, normalize_currency
from deribit_gex.exceptions import FetchError
from deribit_gex.ingestion.retry_policy import RetryPolicy
from deribit_gex.ingestion.snapshot_models import (
    UNNAMED_INSTRUMENT,
    MarketSnapshot,
    to_float,
    normalize_instrument,
    normalize_quote,
)

logger = logging.getLogger(__name__)

HEADERS = {
    'Accept': 'application/json',
    'User-Agent': 'deribit-gex/0.1',
}


class DeribitSnapshotClient:
    """Async client for the Deribit public market data API"""

    def __init__(self, config: Optional[GEXConfig] = None, retry_policy: Optional[RetryPolicy] = None):
        """
        Args:
            config: Runtime settings (defaults to GEXConfig())
            retry_policy: Overrides the policy derived from config
        """
        self.config = config or GEXConfig()
        self.base_url = self.config.base_url
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.retry_backoff,
            attempt_timeout=self.config.request_timeout
        )
        self.session: Optional[aiohttp.ClientSession] = None
        self._owns_session = False

        logger.debug(f"Deribit client initialized (base_url={self.base_url})")

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=HEADERS)
            self._owns_session = True
            logger.debug("Created aiohttp session")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session is not None and self._owns_session:
            logger.debug("Closing aiohttp session")
            await self.session.close()
            self.session = None
            self._owns_session = False

    async def _request(self, method: str, params: Dict):
        """Single GET against a public method; unwraps the JSON-RPC envelope"""
        url = f"{self.base_url}/{method}"

        async with self.session.get(url, params=params) as response:
            logger.debug(f"{method} status: {response.status}")

            try:
                data = await response.json(content_type=None)
            except ValueError:
                # Non-JSON body: let the status decide whether this is retryable
                response.raise_for_status()
                raise FetchError(f"{method}: response is not valid JSON", method=method)

            if isinstance(data, dict) and data.get('error'):
                error = data['error']
                message = error.get('message', error) if isinstance(error, dict) else error
                raise FetchError(f"API Error in {method}: {message}", method=method)

            response.raise_for_status()

            if isinstance(data, dict) and 'result' in data:
                return data['result']
            return data

    async def _call(self, method: str, **params):
        if self.session is None:
            raise RuntimeError("DeribitSnapshotClient must be used as an async context manager")
        return await self.retry_policy.run(lambda: self._request(method, params), description=method)

    async def get_index_price(self, currency: str) -> float:
        """Current index price for <currency>_usd"""
        index_name = f"{currency.lower()}_usd"
        result = await self._call('get_index_price', index_name=index_name)

        price = to_float((result or {}).get('index_price')) if isinstance(result, dict) else None
        if price is None or price <= 0:
            raise FetchError(f"Invalid index price for {index_name}: {result!r}", method='get_index_price')

        logger.info(f"{currency} index price: ${price:,.2f}")
        return price

    async def get_instruments(self, currency: str) -> List[dict]:
        result = await self._call('get_instruments', currency=currency, kind='option', expired='false')
        if not isinstance(result, list):
            raise FetchError(f"Unexpected get_instruments payload: {type(result).__name__}",
                             method='get_instruments')
        logger.info(f"Got {len(result)} {currency} option instruments")
        return result

    async def get_book_summary(self, currency: str) -> List[dict]:
        result = await self._call('get_book_summary_by_currency', currency=currency, kind='option')
        if not isinstance(result, list):
            raise FetchError(f"Unexpected get_book_summary_by_currency payload: {type(result).__name__}",
                             method='get_book_summary_by_currency')
        logger.info(f"Got {len(result)} {currency} book summaries")
        return result

    async def get_order_book(self, instrument_name: str) -> dict:
        return await self._call('get_order_book', instrument_name=instrument_name)

    async def fetch_snapshot(self, currency: Optional[str] = None) -> MarketSnapshot:
        """
        Fetch index price, instruments and quotes concurrently

        If any of the three reads fails the others are cancelled and the
        error propagates; a partial snapshot is never returned.

        Raises:
            FetchError: an upstream read failed
        """
        currency = normalize_currency(currency or self.config.currency)
        logger.info(f"Fetching {currency} option chain snapshot...")

        index_price, raw_instruments, raw_quotes = await _gather_or_cancel(
            self.get_index_price(currency),
            self.get_instruments(currency),
            self.get_book_summary(currency)
        )

        instruments = []
        malformed = []
        for raw in raw_instruments:
            try:
                instruments.append(normalize_instrument(raw))
            except ValueError as e:
                malformed.append(raw.get('instrument_name') or UNNAMED_INSTRUMENT)
                logger.warning(f"Dropping malformed instrument: {e}")

        quotes = [q for q in (normalize_quote(raw) for raw in raw_quotes) if q is not None]

        return MarketSnapshot(
            currency=currency,
            index_price=index_price,
            instruments=instruments,
            quotes=quotes,
            malformed_instruments=malformed
        )

    async def fetch_order_book_gammas(self, instrument_names: Iterable[str],
                                      batch_size: Optional[int] = None) -> Dict[str, float]:
        """
        Exchange-reported gamma per instrument, fetched in bounded batches

        Books that fail or report no usable gamma are left out.
        """
        names = list(instrument_names)
        batch_size = batch_size or self.config.order_book_batch_size
        gammas: Dict[str, float] = {}
        failures = 0

        for start in range(0, len(names), batch_size):
            batch = names[start:start + batch_size]
            logger.debug(f"Order book batch {start // batch_size + 1}: {len(batch)} instruments")

            results = await asyncio.gather(
                *(self.get_order_book(name) for name in batch),
                return_exceptions=True
            )

            for name, result in zip(batch, results):
                if isinstance(result, BaseException):
                    failures += 1
                    logger.warning(f"Order book for {name} unavailable: {result}")
                    continue

                greeks = result.get('greeks') if isinstance(result, dict) else None
                gamma = to_float((greeks or {}).get('gamma'))
                if gamma is not None:
                    gammas[name] = gamma

        logger.info(f"Exchange gamma for {len(gammas)}/{len(names)} instruments ({failures} failed)")
        return gammas


async def _gather_or_cancel(*coros):
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
