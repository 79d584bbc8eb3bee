import logging
import os
from typing import List, Tuple

import numpy as np
import pandas as pd

from src.liquidity_sweeps.calibrate import dataframe_to_bars
from src.liquidity_sweeps.types import Bar

logger = logging.getLogger(__name__)

Gap = Tuple[pd.Timestamp, pd.Timestamp, float]

FORMAT_A_COLUMNS = ['date', 'time', 'open', 'high', 'low', 'close', 'volume']


def detect_format(filepath: str) -> str:
    """
    Detects the format of the CSV file.

    Args:
        filepath: Path to the CSV file.

    Returns:
        "format_a" for Semicolon-Separated Historical Data.
        "format_b" for TradingView Comma-Separated Data.

    Raises:
        ValueError: If format cannot be detected.
    """
    with open(filepath, 'r') as f:
        # Read first few lines to be robust against blank leading lines
        lines = [f.readline() for _ in range(10)]
    lines = [line.strip() for line in lines if line.strip()]

    if not lines:
        raise ValueError("File is empty")

    first_line = lines[0]

    if ';' in first_line:
        return "format_a"

    if ',' in first_line:
        lowered = first_line.lower()
        if "time" in lowered and "open" in lowered:
            return "format_b"

        # Numeric first field (Unix timestamp) without a header
        parts = first_line.split(',')
        if parts[0].replace('.', '', 1).isdigit():
            return "format_b"

    raise ValueError(
        "Could not detect CSV format. Expected semicolon-separated historical format "
        "or comma-separated TradingView format."
    )


def _read_format_a(filepath: str) -> pd.DataFrame:
    # DD/MM/YYYY;HH:MM:SS;Open;High;Low;Close;Volume, no header
    df = pd.read_csv(
        filepath,
        sep=';',
        header=None,
        names=FORMAT_A_COLUMNS,
        dtype={
            'date': str, 'time': str,
            'open': 'float64', 'high': 'float64', 'low': 'float64', 'close': 'float64',
            'volume': 'int64'
        },
        engine='c'
    )
    datetime_str = df['date'] + ' ' + df['time']
    df['timestamp'] = pd.to_datetime(datetime_str, format='%d/%m/%Y %H:%M:%S', utc=True)
    df.drop(columns=['date', 'time'], inplace=True)
    return df


def _read_format_b(filepath: str) -> pd.DataFrame:
    # time,open,high,low,close[,Volume] with header, time in unix seconds
    with open(filepath, 'r') as f:
        first_line = f.readline().lower()
    has_header = "time" in first_line and "open" in first_line

    if has_header:
        df = pd.read_csv(filepath, sep=',', engine='c')
        df.columns = df.columns.str.lower()
    else:
        df = pd.read_csv(filepath, sep=',', header=None, engine='c')
        df.columns = ['time', 'open', 'high', 'low', 'close', 'volume'][:len(df.columns)]

    required = {'time', 'open', 'high', 'low', 'close'}
    if not required.issubset(df.columns):
        raise ValueError(f"Missing required columns. Found: {df.columns.tolist()}")

    if 'volume' not in df.columns:
        df['volume'] = 0
    else:
        df['volume'] = df['volume'].fillna(0).astype('int64')

    df['timestamp'] = pd.to_datetime(df['time'], unit='s', utc=True)
    df.drop(columns=['time'], inplace=True)

    for c in ['open', 'high', 'low', 'close']:
        df[c] = df[c].astype('float64')
    return df


def _find_gaps(df: pd.DataFrame) -> List[Gap]:
    """Gaps are intervals longer than 1.5x the median bar interval."""
    gaps: List[Gap] = []
    if len(df) < 2:
        return gaps

    time_diff = df.index.to_series().diff()
    threshold = time_diff.median() * 1.5
    for end_time in df.index[time_diff > threshold]:
        loc = df.index.get_loc(end_time)
        if loc > 0:
            start_time = df.index[loc - 1]
            duration = (end_time - start_time).total_seconds() / 60.0
            gaps.append((start_time, end_time, duration))
    return gaps


def load_ohlc(filepath: str) -> Tuple[pd.DataFrame, List[Gap]]:
    """
    Loads OHLC data from a CSV file into a standardized DataFrame.

    Args:
        filepath: Path to the CSV file.

    Returns:
        Tuple containing:
            - DataFrame indexed by UTC timestamp with columns open, high, low, close, volume.
            - List of gaps (start, end, duration_minutes).

    Raises:
        FileNotFoundError, ValueError.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    if os.path.getsize(filepath) == 0:
        raise ValueError("File is empty")

    fmt = detect_format(filepath)

    try:
        df = _read_format_a(filepath) if fmt == "format_a" else _read_format_b(filepath)
    except (KeyError, ValueError, TypeError, pd.errors.ParserError) as e:
        raise ValueError(f"Error parsing file: {e}")

    df = (
        df[['timestamp', 'open', 'high', 'low', 'close', 'volume']]
        .set_index('timestamp')
        .sort_index(kind='mergesort')
    )

    # Keep last occurrence of a duplicated timestamp (most recent correction)
    duplicate_timestamps = df.index.duplicated(keep='last')
    if duplicate_timestamps.any():
        logger.debug(
            f"Duplicate timestamps in {os.path.basename(filepath)}: "
            f"{duplicate_timestamps.sum()} removed (kept last occurrence)"
        )
        df = df[~duplicate_timestamps]

    # low <= open, close <= high, finite prices, volume >= 0
    prices = df[['open', 'high', 'low', 'close']]
    valid_mask = (
        np.isfinite(prices).all(axis=1)
        & (df['low'] <= df['open']) & (df['open'] <= df['high'])
        & (df['low'] <= df['close']) & (df['close'] <= df['high'])
        & (df['volume'] >= 0)
    )

    if not valid_mask.all():
        invalid_count = int((~valid_mask).sum())
        total_count = len(df)
        if invalid_count / total_count > 0.01:
            raise ValueError(
                f"Too many invalid rows: {invalid_count}/{total_count} "
                f"({invalid_count / total_count:.2%})"
            )
        logger.warning(f"Dropping {invalid_count} invalid OHLC row(s) from {filepath}")
        df = df[valid_mask]

    return df, _find_gaps(df)


def load_bars(filepath: str) -> List[Bar]:
    """Load a CSV file straight into engine-ready bars indexed from 0."""
    df, gaps = load_ohlc(filepath)
    if gaps:
        logger.debug(f"{len(gaps)} gap(s) in {os.path.basename(filepath)}")
    return dataframe_to_bars(df)
