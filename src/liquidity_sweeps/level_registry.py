"""
Level registry.

Owns the live resistance and support levels derived from confirmed swings.
Both lists are most-recent-first. Levels leave the registry only through
prune(), once mitigated or older than the configured age ceiling.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Tuple

from .extrema_pyramid import Swing, SwingKind

logger = logging.getLogger(__name__)


class LevelKind(Enum):
    RESISTANCE = "resistance"  # from swing highs
    SUPPORT = "support"  # from swing lows

    @classmethod
    def for_swing(cls, kind: SwingKind) -> "LevelKind":
        return cls.RESISTANCE if kind is SwingKind.HIGH else cls.SUPPORT


@dataclass
class Level:
    """
    A price level tracked for sweeps and mitigation.

    Only the two lifecycle flags change after registration, and both only
    ever go from False to True.

    Attributes:
        price: Level price (the swing's high or low).
        origin_index: Bar index of the originating swing.
        kind: RESISTANCE (swing high) or SUPPORT (swing low).
        origin_time: Timestamp of the originating bar.
        mitigated: Price has closed through the level; removed at the next prune.
        swept: A wick breached the level and the close recovered. At most once.
        level_id: Deterministic ID from (kind, price, origin_index).
    """
    price: float
    origin_index: int
    kind: LevelKind
    origin_time: int = 0
    mitigated: bool = False
    swept: bool = False
    level_id: str = field(default="")

    def __post_init__(self) -> None:
        if not self.level_id:
            self.level_id = self.make_level_id(self.kind, self.price, self.origin_index)

    @staticmethod
    def make_level_id(kind: LevelKind, price: float, origin_index: int) -> str:
        """
        Generate deterministic level ID from immutable properties.

        Returns:
            ID like "level_resistance_4425.5_1234"
        """
        return f"level_{kind.value}_{price}_{origin_index}"

    @classmethod
    def from_swing(cls, swing: Swing) -> "Level":
        return cls(
            price=swing.price,
            origin_index=swing.origin_index,
            kind=LevelKind.for_swing(swing.kind),
            origin_time=swing.origin_time,
        )

    def age(self, current_index: int) -> int:
        return current_index - self.origin_index

    def mark_mitigated(self) -> None:
        self.mitigated = True

    def mark_swept(self) -> None:
        self.swept = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_id": self.level_id,
            "kind": self.kind.value,
            "price": self.price,
            "origin_index": self.origin_index,
            "origin_time": self.origin_time,
            "mitigated": self.mitigated,
            "swept": self.swept,
        }


class LevelRegistry:
    """
    Two most-recent-first collections of live levels.

    Example:
        >>> registry = LevelRegistry()
        >>> level = registry.register(Swing(100.0, 5, SwingKind.HIGH))
        >>> registry.resistance[0] is level
        True
    """

    def __init__(self):
        self._lists: Dict[LevelKind, Deque[Level]] = {
            LevelKind.RESISTANCE: deque(),
            LevelKind.SUPPORT: deque(),
        }

    @property
    def resistance(self) -> Tuple[Level, ...]:
        return tuple(self._lists[LevelKind.RESISTANCE])

    @property
    def support(self) -> Tuple[Level, ...]:
        return tuple(self._lists[LevelKind.SUPPORT])

    def levels(self, kind: LevelKind) -> Tuple[Level, ...]:
        return tuple(self._lists[kind])

    def active_levels(self) -> List[Level]:
        """All live levels, resistance first, each list newest first."""
        return list(self._lists[LevelKind.RESISTANCE]) + list(self._lists[LevelKind.SUPPORT])

    def __len__(self) -> int:
        return sum(len(levels) for levels in self._lists.values())

    def register(self, swing: Swing) -> Optional[Level]:
        """
        Push a level for a confirmed swing to the front of its list.

        Returns:
            The new Level, or None if the front entry already has the same
            price and origin.
        """
        levels = self._lists[LevelKind.for_swing(swing.kind)]
        if levels and levels[0].price == swing.price and levels[0].origin_index == swing.origin_index:
            logger.debug(f"Duplicate {swing.kind.value} swing at bar {swing.origin_index} ignored")
            return None

        level = Level.from_swing(swing)
        levels.appendleft(level)
        logger.debug(f"Registered {level.level_id}")
        return level

    def prune(self, current_index: int, max_age: int) -> List[Level]:
        """
        Remove mitigated levels and levels older than max_age.

        Walks each list from the tail (oldest) toward the front.

        Args:
            current_index: Index of the bar just evaluated.
            max_age: Age ceiling in bars.

        Returns:
            Removed levels, resistance first, oldest first within a kind.
        """
        removed: List[Level] = []
        for kind, levels in self._lists.items():
            kept: Deque[Level] = deque()
            for level in reversed(levels):
                if level.mitigated or level.age(current_index) > max_age:
                    removed.append(level)
                else:
                    kept.appendleft(level)
            self._lists[kind] = kept

        if removed:
            logger.debug(f"Pruned {len(removed)} level(s) at bar {current_index}")
        return removed

    def clear(self) -> None:
        for levels in self._lists.values():
            levels.clear()
