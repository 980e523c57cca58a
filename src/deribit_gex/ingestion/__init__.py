"""
Ingestion Module

This module fetches option market data from the Deribit public API.

Components:
    - deribit_client: REST client for index price, instruments and book summaries
    - retry_policy: Attempts, backoff and per-attempt deadline for upstream reads
    - snapshot_models: Instrument/Quote structures and payload normalization

Usage:
    from deribit_gex.ingestion import DeribitSnapshotClient
    async with DeribitSnapshotClient(config) as client:
        snapshot = await client.fetch_snapshot('BTC')
"""

from .deribit_client import DeribitSnapshotClient
from .retry_policy import RetryPolicy
from .snapshot_models import Instrument, MarketSnapshot, Quote

__all__ = [
    'DeribitSnapshotClient',
    'RetryPolicy',
    'Instrument',
    'MarketSnapshot',
    'Quote'
]
