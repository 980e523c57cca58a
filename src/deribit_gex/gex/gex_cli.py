#!/usr/bin/env python3
"""
GEX Command Line Interface

Utility for calculating Deribit option GEX from the command line.
"""

import argparse
import asyncio
import json
import logging
import sys

from deribit_gex.config import SUPPORTED_CURRENCIES, GEXConfig
from deribit_gex.exceptions import GEXError
from deribit_gex.gex.gex_metrics import ExpirationGamma, GEXResult
from deribit_gex.gex.gex_response import build_gex_response
from deribit_gex.gex.gex_service import calculate_gex
from deribit_gex.utils import configure_logging

logger = logging.getLogger(__name__)


def format_expiration(bucket: ExpirationGamma, top: int = 5, show_strikes: bool = False) -> str:
    """Text block for one expiration date"""
    lines = [
        f"Expiration: {bucket.date_key}",
        f"  Total gamma: {bucket.total_gamma:.6f} (≈ ${bucket.total_gamma_usd:,.2f} per 1%)",
        f"  Call gamma:  {bucket.call_gamma:.6f} (≈ ${bucket.call_gamma_usd:,.2f} per 1%)",
        f"  Put gamma:   {bucket.put_gamma:.6f} (≈ ${bucket.put_gamma_usd:,.2f} per 1%)",
        f"  Instruments: {len(bucket.records)}",
    ]

    if show_strikes:
        lines.append("")
        lines.append(f"  {'Strike':>10} | {'Call Gamma':>12} | {'Call USD':>12} | "
                     f"{'Put Gamma':>12} | {'Put USD':>12} | {'Call OI':>9} | {'Put OI':>9}")
        lines.append(f"  {'-' * 92}")
        for strike, p in bucket.strike_profiles().items():
            lines.append(f"  {strike:>10,.0f} | {p.call_gamma:>12.6f} | {p.call_gamma_usd:>12,.0f} | "
                         f"{p.put_gamma:>12.6f} | {p.put_gamma_usd:>12,.0f} | "
                         f"{p.call_oi:>9,.1f} | {p.put_oi:>9,.1f}")

    if top > 0 and bucket.records:
        lines.append("")
        lines.append(f"  Top {top} by gamma exposure (USD):")
        for idx, record in enumerate(bucket.top_instruments(top), 1):
            lines.append(f"    {idx}. {record.instrument_name}")
            lines.append(f"       Gamma: {record.gamma:.8f}, OI: {record.open_interest}")
            lines.append(f"       Exposure: ≈ ${record.gamma_exposure_usd:,.2f} per 1%")

    return "\n".join(lines)


def print_report(result: GEXResult, top: int, show_strikes: bool):
    print(f"\n{'='*60}")
    print(result.summary())
    print(f"{'='*60}\n")

    for bucket in result.expirations:
        print(format_expiration(bucket, top=top, show_strikes=show_strikes))
        print()


def cmd_calculate(args, config: GEXConfig):
    """Calculate GEX for a currency"""
    result = asyncio.run(calculate_gex(args.currency, config=config))

    if args.json:
        print(json.dumps(build_gex_response(result), indent=2))
    else:
        print_report(result, top=args.top, show_strikes=args.strikes)


def cmd_levels(args, config: GEXConfig):
    """Show flip level and max GEX strike"""
    result = asyncio.run(calculate_gex(args.currency, config=config))

    print(f"\n{'='*60}")
    print(f"KEY GAMMA LEVELS: {result.currency}")
    print(f"Index price: ${result.index_price:,.2f}")
    print(f"{'='*60}\n")

    if result.gex_flip_level is not None:
        print(f"GEX flip level: ${result.gex_flip_level:,.0f}")
    else:
        print("GEX flip level: none (net exposure never changes sign)")

    if result.max_gex_strike is not None:
        print(f"Max GEX strike: ${result.max_gex_strike:,.0f} "
              f"(net ${result.max_gex_value / 1e6:+,.2f}M per 1%)")

    print(f"\n{'='*60}\n")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Deribit GEX Command Line Tool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s calculate BTC
  %(prog)s calculate ETH --strikes --top 10
  %(prog)s calculate BTC --json
  %(prog)s levels BTC
        '''
    )
    parser.add_argument('--log-level', default=None, help='Overrides LOG_LEVEL')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Calculate command
    calc_parser = subparsers.add_parser('calculate', help='Calculate GEX by expiration')
    calc_parser.add_argument('currency', nargs='?', default=None,
                             help=f"Currency ({', '.join(SUPPORTED_CURRENCIES)}; default from GEX_CURRENCY)")
    calc_parser.add_argument('--json', action='store_true', help='Print the JSON response')
    calc_parser.add_argument('--top', type=int, default=5,
                             help='Top instruments per expiration (default: 5)')
    calc_parser.add_argument('--strikes', action='store_true', help='Show per-strike table')
    calc_parser.set_defaults(func=cmd_calculate)

    # Levels command
    levels_parser = subparsers.add_parser('levels', help='Show flip level and max GEX strike')
    levels_parser.add_argument('currency', nargs='?', default=None, help='Currency')
    levels_parser.set_defaults(func=cmd_levels)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = GEXConfig.from_env()
        configure_logging(args.log_level or config.log_level)
        args.func(args, config)
    except (GEXError, ValueError) as e:
        print(f"\n❌ Error: {e}\n")
        logger.error(f"Command failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
