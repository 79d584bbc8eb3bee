"""
Drawing geometry for sweep events.

Pure projection from (level, bar) to opaque drawing records. Mitigation has
no geometry: a mitigated level simply stops appearing in the live lists.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .level_registry import Level, LevelKind
from .types import Bar


@dataclass(frozen=True)
class ReferenceLine:
    """Horizontal line from the level's origin bar to the sweeping bar."""
    origin_time: int
    end_time: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin_time": self.origin_time,
            "end_time": self.end_time,
            "price": self.price,
        }


@dataclass(frozen=True)
class HighlightBox:
    """Box around the sweep wick. price1 is the top edge, price2 the bottom."""
    time1: int
    price1: float
    time2: int
    price2: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time1": self.time1,
            "price1": self.price1,
            "time2": self.time2,
            "price2": self.price2,
        }


def build_reference_line(level: Level, bar: Bar) -> ReferenceLine:
    return ReferenceLine(origin_time=level.origin_time, end_time=bar.timestamp, price=level.price)


def build_highlight_box(level: Level, bar: Bar, prev_time: Optional[int]) -> HighlightBox:
    """
    Box spanning one bar before to one bar after the sweeping bar.

    The next bar has not arrived yet, so its time is extrapolated from the
    previous bar interval. With no previous bar both edges sit on the bar itself.

    Args:
        level: The swept level.
        bar: The sweeping bar.
        prev_time: Timestamp of the bar before, or None for the first bar.
    """
    if prev_time is None:
        time1 = time2 = bar.timestamp
    else:
        time1 = prev_time
        time2 = bar.timestamp + (bar.timestamp - prev_time)

    if level.kind is LevelKind.RESISTANCE:
        return HighlightBox(time1=time1, price1=bar.high, time2=time2, price2=level.price)
    return HighlightBox(time1=time1, price1=level.price, time2=time2, price2=bar.low)
