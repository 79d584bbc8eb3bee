"""
Main entry point for the Sweep Replay Server.

Usage:
    python -m src.replay_server.main --data ./test_data/es-5m.csv
    python -m src.replay_server.main --data ./test_data/es-5m.csv --port 8080
"""

import argparse
import logging
from pathlib import Path

import uvicorn

from .api import app, init_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Sweep Replay - step liquidity sweep detection bar by bar"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--data",
        type=str,
        required=True,
        help="OHLC CSV file to replay (required)"
    )

    args = parser.parse_args()

    data_file = Path(args.data)
    if not data_file.is_file():
        print(f"Error: Data file not found: {data_file}")
        return 1

    try:
        s = init_app(str(data_file.resolve()))
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    print(f"\n{'='*60}")
    print("Sweep Replay")
    print(f"{'='*60}")
    print(f"Data file:      {data_file.resolve()}")
    print(f"Bars:           {len(s.source_bars)}")
    print(f"Server:         http://{args.host}:{args.port}/")
    print(f"{'='*60}\n")

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="info"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
