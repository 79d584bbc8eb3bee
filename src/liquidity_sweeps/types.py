"""Core data types for liquidity sweep analysis."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class Bar:
    """Single OHLC bar"""
    index: int
    timestamp: int
    open: float
    high: float
    low: float
    close: float

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class InvalidBarError(ValueError):
    """Raised when a bar violates the feed contract (ordering or finite OHLC)."""

    def __init__(self, bar: Bar, reason: str):
        self.bar = bar
        self.reason = reason
        super().__init__(f"Invalid bar {bar.index} (timestamp {bar.timestamp}): {reason}")




def validate_bar(bar: Bar, expected_index: int, prev_timestamp: Optional[int] = None) -> None:
    """
    Check a bar against the feed position.

    Args:
        bar: Incoming bar.
        expected_index: Index the next bar must carry (0 for the first bar).
        prev_timestamp: Timestamp of the last accepted bar, or None if no bar
            has been accepted yet.

    Raises:
        InvalidBarError: If any OHLC value is non-finite, high < low, the index
            is not the expected one, or the timestamp does not strictly increase.
    """
    for name in ("open", "high", "low", "close"):
        value = getattr(bar, name)
        if value is None or not math.isfinite(value):
            raise InvalidBarError(bar, f"{name} is not finite ({value!r})")

    if bar.high < bar.low:
        raise InvalidBarError(bar, f"high {bar.high} is below low {bar.low}")

    if bar.index != expected_index:
        raise InvalidBarError(bar, f"expected index {expected_index}, got {bar.index}")

    if prev_timestamp is not None and bar.timestamp <= prev_timestamp:
        raise InvalidBarError(
            bar, f"timestamp {bar.timestamp} does not follow {prev_timestamp}"
        )
