"""
Calibration functions for the sweep engine.

Provides batch processing of historical bars and DataFrame conversion utilities.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .engine import LiquiditySweepEngine
from .events import BarResult
from .sweep_config import SweepConfig
from .types import Bar

logger = logging.getLogger(__name__)


def calibrate(
    bars: List[Bar],
    config: SweepConfig = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[LiquiditySweepEngine, List[BarResult]]:
    """
    Run detection on historical bars.

    This is process_bar() in a loop - guarantees identical behavior
    to incremental playback.

    Args:
        bars: Historical bars to process, indexed from 0.
        config: Detection configuration (defaults to SweepConfig.default()).
        progress_callback: Optional callback(current, total) for progress reporting.

    Returns:
        Tuple of (engine with state, one BarResult per bar).

    Example:
        >>> engine, results = calibrate(bars)
        >>> print(f"{len(engine.active_levels())} live levels")
        >>> # Continue processing new bars
        >>> result = engine.process_bar(new_bar)
    """
    engine = LiquiditySweepEngine(config)
    results: List[BarResult] = []
    total = len(bars)

    for i, bar in enumerate(bars):
        results.append(engine.process_bar(bar))
        if progress_callback:
            progress_callback(i + 1, total)

    stats = engine.stats
    logger.info(
        f"Calibrated {stats.bars_processed} bars ({stats.bars_skipped} skipped): "
        f"{sum(stats.sweeps.values())} sweeps, "
        f"{len(engine.active_levels())} live levels"
    )
    return engine, results


def dataframe_to_bars(df: pd.DataFrame) -> List[Bar]:
    """
    Convert DataFrame with OHLC columns to Bar list.

    Handles various column naming conventions commonly used in market data.
    Bars are indexed sequentially from 0 regardless of the DataFrame index.

    Args:
        df: DataFrame with OHLC columns. Expects columns like:
            - open/Open, high/High, low/Low, close/Close
            - Optional: timestamp/time/date/datetime column, or a DatetimeIndex

    Returns:
        List of Bar objects suitable for process_bar() or calibrate().

    Example:
        >>> df, gaps = load_ohlc("es-5m.csv")
        >>> bars = dataframe_to_bars(df)
        >>> engine, results = calibrate(bars)
    """
    bars = []

    # Normalize column names to lowercase for consistent access
    col_map = {c.lower(): c for c in df.columns}
    ts_col = next(
        (col_map[name] for name in ["timestamp", "time", "date", "datetime"] if name in col_map),
        None,
    )

    for idx, row in df.iterrows():
        ts_value = row[ts_col] if ts_col is not None else idx
        timestamp = None
        if isinstance(ts_value, str):
            ts_value = pd.Timestamp(ts_value)
        if hasattr(ts_value, "timestamp"):
            timestamp = ts_value.timestamp()
        elif isinstance(ts_value, (int, float, np.integer, np.floating)) and ts_col is not None:
            timestamp = float(ts_value)

        # Default timestamp if not found
        if timestamp is None:
            timestamp = 1700000000 + len(bars) * 60  # Generate sequential timestamps

        bars.append(
            Bar(
                index=len(bars),
                timestamp=int(timestamp),
                open=float(row[col_map.get("open", "open")]),
                high=float(row[col_map.get("high", "high")]),
                low=float(row[col_map.get("low", "low")]),
                close=float(row[col_map.get("close", "close")]),
            )
        )

    return bars


def calibrate_from_dataframe(
    df: pd.DataFrame,
    config: SweepConfig = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[LiquiditySweepEngine, List[BarResult]]:
    """
    Convenience wrapper for DataFrame input.

    Converts DataFrame to Bar list and runs calibration.
    """
    bars = dataframe_to_bars(df)
    return calibrate(bars, config, progress_callback)


def summarize(results: List[BarResult]) -> Dict[str, Dict[str, int]]:
    """
    Count swings, levels, sweeps and mitigations by kind across results.

    Returns:
        Dict like {"swings": {"high": 12, "low": 10}, "sweeps": {...}, ...}
    """
    summary: Dict[str, Dict[str, int]] = {
        "swings": {"high": 0, "low": 0},
        "levels": {"resistance": 0, "support": 0},
        "sweeps": {"resistance": 0, "support": 0},
        "mitigations": {"resistance": 0, "support": 0},
        "expired": {"resistance": 0, "support": 0},
    }
    for result in results:
        for swing in result.new_swings:
            summary["swings"][swing.kind.value] += 1
        for level in result.new_levels:
            summary["levels"][level.kind.value] += 1
        for event in result.sweeps:
            summary["sweeps"][event.level.kind.value] += 1
        for event in result.mitigations:
            summary["mitigations"][event.level.kind.value] += 1
        for level in result.expired:
            summary["expired"][level.kind.value] += 1
    return summary
