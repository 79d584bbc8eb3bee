"""
Multi-depth extrema pyramid.

Converts a per-bar stream of highs (or lows) into confirmed swing points.
Each depth level keeps the three most recent candidate points. When the
middle of those three is a strict extremum it is promoted one depth deeper;
a point that survives the deepest level is a confirmed swing.

At depth 1 a swing is confirmed one bar after it prints (once its right
neighbour exists). Each extra depth requires the swing to also be an
extremum among neighbouring swings of the previous depth, so confirmation
delay grows with depth but is always bounded by the data seen so far.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Tuple

logger = logging.getLogger(__name__)

BUFFER_CAPACITY = 3


class PyramidMode(Enum):
    """BULL looks for local maxima (swing highs), BEAR for local minima."""
    BULL = "bull"
    BEAR = "bear"


class SwingKind(Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class CandidatePoint:
    """A high or low value plus the bar it came from."""
    value: float
    origin_index: int
    origin_time: int = 0


@dataclass(frozen=True)
class Swing:
    """A confirmed local extremum emitted by the deepest pyramid level."""
    price: float
    origin_index: int
    kind: SwingKind
    origin_time: int = 0

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "origin_index": self.origin_index,
            "origin_time": self.origin_time,
            "kind": self.kind.value,
        }


def _is_strict_pivot(newer: float, middle: float, older: float, mode: PyramidMode) -> bool:
    # Ties never confirm, so flat runs cannot produce duplicate swings.
    if mode is PyramidMode.BULL:
        return middle > newer and middle > older
    return middle < newer and middle < older


class ExtremaPyramid:
    """
    Cascade of capacity-3 buffers, one per depth level.

    Buffers are most-recent-first: index 0 is the newest point, index 2 the
    oldest. Pushing into a full buffer discards its oldest point.

    Example:
        >>> pyramid = ExtremaPyramid(depth=1, mode=PyramidMode.BULL)
        >>> for i, high in enumerate([10, 12, 15, 12, 10]):
        ...     swing = pyramid.push(CandidatePoint(high, i))
        ...     if swing:
        ...         print(swing.price, swing.origin_index)
        15 2
    """

    def __init__(self, depth: int, mode: PyramidMode):
        if depth < 1:
            raise ValueError(f"depth must be >= 1, got {depth}")
        self.depth = depth
        self.mode = mode
        self.kind = SwingKind.HIGH if mode is PyramidMode.BULL else SwingKind.LOW
        self._levels: List[Deque[CandidatePoint]] = [
            deque(maxlen=BUFFER_CAPACITY) for _ in range(depth)
        ]

    def push(self, point: CandidatePoint, mode: Optional[PyramidMode] = None) -> Optional[Swing]:
        """
        Insert a point at depth 0 and run the cascade.

        Args:
            point: Candidate point for the current bar.
            mode: Optional explicit mode; must match the pyramid's mode.

        Returns:
            The confirmed Swing if the deepest level confirmed a pivot on this
            call, otherwise None.
        """
        if mode is not None and mode is not self.mode:
            raise ValueError(f"{self.mode.value} pyramid cannot evaluate in {mode.value} mode")

        self._levels[0].appendleft(point)
        confirmed: Optional[Swing] = None

        for d, buffer in enumerate(self._levels):
            if len(buffer) < BUFFER_CAPACITY:
                break
            newer, middle, older = buffer[0], buffer[1], buffer[2]
            if not _is_strict_pivot(newer.value, middle.value, older.value, self.mode):
                # Deeper buffers are unchanged since their last test.
                break

            if d < self.depth - 1:
                self._levels[d + 1].appendleft(middle)
            else:
                confirmed = Swing(
                    price=middle.value,
                    origin_index=middle.origin_index,
                    kind=self.kind,
                    origin_time=middle.origin_time,
                )
                logger.debug(
                    f"Swing {self.kind.value} confirmed at {middle.value} "
                    f"(bar {middle.origin_index}, depth {self.depth})"
                )

            # Keep only the newest point as the seed for the next comparison.
            buffer.pop()
            buffer.pop()

        return confirmed

    def buffers(self) -> Tuple[Tuple[CandidatePoint, ...], ...]:
        """Snapshot of every depth buffer, most recent first."""
        return tuple(tuple(buffer) for buffer in self._levels)

    def reset(self) -> None:
        for buffer in self._levels:
            buffer.clear()
