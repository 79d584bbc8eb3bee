"""
Main CLI Module for Liquidity Sweep Analysis

Provides a command-line interface for running the sweep engine over
historical OHLC files.

Commands:
- sweeps: Replay a data file and report every liquidity sweep
- levels: Replay a data file and list the levels still live at the last bar

Usage:
    python -m src.cli.main sweeps --data es-5m.csv
    python -m src.cli.main sweeps --data es-5m.csv --term short --json
    python -m src.cli.main levels --data es-5m.csv --max-age 500
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from src.data.ohlc_loader import load_bars
from src.liquidity_sweeps.calibrate import calibrate, summarize
from src.liquidity_sweeps.sweep_config import DEFAULT_MAX_LEVEL_AGE, DetectionTerm, SweepConfig

logger = logging.getLogger(__name__)


def _format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%Y-%m-%d %H:%M')


def _build_config(args) -> SweepConfig:
    return SweepConfig(
        term=DetectionTerm.parse(args.term),
        max_level_age=args.max_age,
        skip_invalid_bars=args.skip_invalid,
    )


def _run(args):
    config = _build_config(args)
    logger.info(f"Loading {args.data} ({config.term.value}, max age {config.max_level_age})")
    bars = load_bars(args.data)
    engine, results = calibrate(bars, config)
    return config, bars, engine, results


def run_sweeps_command(args) -> bool:
    """Replay a data file and print every sweep."""
    try:
        config, bars, engine, results = _run(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return False

    sweeps = [event for result in results for event in result.sweeps]

    if args.json:
        print(json.dumps({
            "config": config.to_dict(),
            "bars": len(bars),
            "summary": summarize(results),
            "sweeps": [event.to_dict() for event in sweeps],
        }, indent=2))
        return True

    summary = summarize(results)
    print(f"Processed {len(bars)} bars ({config.term.value}, depth {config.depth})")
    print(f"Swings:      {summary['swings']['high']} high / {summary['swings']['low']} low")
    print(f"Sweeps:      {summary['sweeps']['resistance']} resistance / {summary['sweeps']['support']} support")
    print(f"Mitigations: {summary['mitigations']['resistance']} resistance / {summary['mitigations']['support']} support")
    print(f"Live levels: {len(engine.active_levels())}")

    if sweeps:
        print()
    for event in sweeps:
        level = event.level
        print(
            f"  bar {event.bar_index:>6} {_format_time(event.timestamp)}  "
            f"{level.kind.value:<10} {level.price:>12.2f}  origin bar {level.origin_index}"
        )
    return True


def run_levels_command(args) -> bool:
    """Replay a data file and list live levels at the last bar."""
    try:
        config, bars, engine, results = _run(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return False

    levels = engine.active_levels()
    if args.json:
        print(json.dumps({
            "last_bar_index": engine.last_bar_index,
            "resistance": [lv.to_dict() for lv in engine.resistance_levels],
            "support": [lv.to_dict() for lv in engine.support_levels],
        }, indent=2))
        return True

    print(f"Live levels at bar {engine.last_bar_index}: {len(levels)}")
    for level in levels:
        print(
            f"  {level.kind.value:<10} {level.price:>12.2f}  origin bar {level.origin_index:>6}"
            f"  {_format_time(level.origin_time)}{'  swept' if level.swept else ''}"
        )
    return True


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--data', required=True, help='OHLC CSV file to replay')
    parser.add_argument(
        '--term',
        default='long',
        choices=[t.name.lower() for t in DetectionTerm],
        help='Swing detection term: short (depth 1), intermediate (2), long (3)'
    )
    parser.add_argument(
        '--max-age',
        type=int,
        default=DEFAULT_MAX_LEVEL_AGE,
        help=f'Bars a level stays live after its origin (default: {DEFAULT_MAX_LEVEL_AGE})'
    )
    parser.add_argument(
        '--skip-invalid',
        action='store_true',
        help='Skip malformed bars instead of stopping at the first one'
    )
    parser.add_argument('--json', action='store_true', help='Emit JSON instead of text')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Liquidity sweep analysis over historical OHLC data',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    sweeps_parser = subparsers.add_parser('sweeps', help='Report liquidity sweeps')
    _add_common_arguments(sweeps_parser)

    levels_parser = subparsers.add_parser('levels', help='List live levels at the last bar')
    _add_common_arguments(levels_parser)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == 'sweeps':
        success = run_sweeps_command(args)
    else:
        success = run_levels_command(args)
    return 0 if success else 1


if __name__ == '__main__':
    sys.exit(main())
