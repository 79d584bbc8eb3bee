"""
Shared test fixtures and helpers for liquidity sweep tests.
"""

from typing import List, Sequence, Tuple

import pytest
from src.liquidity_sweeps.types import Bar


def make_bar(
    index: int,
    open_: float,
    high: float,
    low: float,
    close: float,
    timestamp: int = None,
) -> Bar:
    """Helper to create Bar objects for testing.

    Args:
        index: Bar index in the sequence
        open_: Opening price
        high: High price
        low: Low price
        close: Closing price
        timestamp: Unix timestamp (defaults to 1700000000 + index * 60)

    Returns:
        Bar object for use in engine tests
    """
    return Bar(
        index=index,
        timestamp=timestamp or 1700000000 + index * 60,
        open=open_,
        high=high,
        low=low,
        close=close,
    )


def bars_from_ohlc(rows: Sequence[Tuple[float, float, float, float]]) -> List[Bar]:
    """Build a contiguous bar series from (open, high, low, close) rows."""
    return [make_bar(i, o, h, l, c) for i, (o, h, l, c) in enumerate(rows)]


# Swing high 100 at bar 5 (confirmed on bar 6 at depth 1), swing low 93 at
# bar 9 (confirmed on bar 10). Bar 10 wicks to 101 and closes 99: a sweep.
# Bar 11 closes 102: the resistance is mitigated.
SWEEP_SCENARIO_ROWS = [
    (94.0, 95.0, 93.0, 94.0),
    (95.0, 96.0, 94.0, 95.0),
    (96.0, 97.0, 95.0, 96.0),
    (97.0, 98.0, 96.0, 97.0),
    (98.0, 99.0, 97.0, 98.0),
    (99.0, 100.0, 98.0, 99.0),
    (97.0, 98.0, 96.0, 97.0),
    (96.0, 97.0, 95.0, 96.0),
    (95.0, 96.0, 94.0, 95.0),
    (94.0, 95.0, 93.0, 94.0),
    (98.0, 101.0, 97.0, 99.0),
    (99.0, 103.0, 98.5, 102.0),
    (102.0, 102.0, 100.0, 101.0),
]


@pytest.fixture
def sweep_scenario_bars() -> List[Bar]:
    return bars_from_ohlc(SWEEP_SCENARIO_ROWS)


@pytest.fixture
def sweep_scenario_csv(tmp_path) -> str:
    """The sweep scenario as a TradingView-style CSV file."""
    lines = ["time,open,high,low,close,Volume"]
    for i, (o, h, l, c) in enumerate(SWEEP_SCENARIO_ROWS):
        lines.append(f"{1700000000 + i * 60},{o},{h},{l},{c},100")
    p = tmp_path / "sweep_scenario.csv"
    p.write_text("\n".join(lines) + "\n")
    return str(p)


@pytest.fixture
def zigzag_bars() -> List[Bar]:
    """
    Forty bars oscillating between 100 and 110 with a period of 8.

    Produces alternating swing highs and lows at every depth-1 turn.
    """
    bars = []
    for i in range(40):
        phase = i % 8
        mid = 100.0 + (phase if phase <= 4 else 8 - phase) * 2.5
        bars.append(make_bar(i, mid, mid + 1.0, mid - 1.0, mid))
    return bars
