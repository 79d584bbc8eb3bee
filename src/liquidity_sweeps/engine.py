"""
Liquidity Sweep Engine

Processes one bar at a time via process_bar(). Per bar:

1. Validate the bar against the last accepted bar
2. Push the high into the swing-high pyramid and the low into the swing-low pyramid
3. Register a level for each confirmed swing
4. Evaluate every live level for mitigation and sweep
5. Prune mitigated and aged-out levels

No lookahead: the only delay is the pyramid's confirmation window, and no
bar before the current one is ever re-read. Calibration is just a loop
calling process_bar().

Each instrument needs its own engine; state is never shared.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .evaluator import SweepEvaluator
from .events import BarResult
from .extrema_pyramid import CandidatePoint, ExtremaPyramid, PyramidMode, Swing
from .level_registry import Level, LevelRegistry
from .sweep_config import SweepConfig
from .types import Bar, InvalidBarError, validate_bar

logger = logging.getLogger(__name__)


@dataclass
class EngineStats:
    """Running counters, for summaries and the replay server."""
    bars_processed: int = 0
    bars_skipped: int = 0
    swings: Dict[str, int] = field(default_factory=lambda: {"high": 0, "low": 0})
    sweeps: Dict[str, int] = field(default_factory=lambda: {"resistance": 0, "support": 0})
    mitigations: Dict[str, int] = field(default_factory=lambda: {"resistance": 0, "support": 0})
    expired: int = 0

    def to_dict(self) -> Dict:
        return {
            "bars_processed": self.bars_processed,
            "bars_skipped": self.bars_skipped,
            "swings": dict(self.swings),
            "sweeps": dict(self.sweeps),
            "mitigations": dict(self.mitigations),
            "expired": self.expired,
        }


class LiquiditySweepEngine:
    """
    Streaming swing, level and sweep detector for a single instrument.

    Example:
        >>> engine = LiquiditySweepEngine(SweepConfig.default())
        >>> for bar in bars:
        ...     result = engine.process_bar(bar)
        ...     for sweep in result.sweeps:
        ...         print(sweep.bar_index, sweep.level.price)
        >>> live = engine.active_levels()
    """

    def __init__(self, config: SweepConfig = None):
        """
        Initialize engine with configuration.

        Args:
            config: SweepConfig with detection parameters.
                   If None, uses SweepConfig.default().
        """
        self.config = config or SweepConfig.default()
        self.high_pyramid = ExtremaPyramid(self.config.depth, PyramidMode.BULL)
        self.low_pyramid = ExtremaPyramid(self.config.depth, PyramidMode.BEAR)
        self.registry = LevelRegistry()
        self.evaluator = SweepEvaluator()
        self.stats = EngineStats()
        self.last_bar: Optional[Bar] = None
        self.next_bar_index = 0

    @property
    def last_bar_index(self) -> int:
        return self.last_bar.index if self.last_bar is not None else -1

    @property
    def last_timestamp(self) -> Optional[int]:
        return self.last_bar.timestamp if self.last_bar is not None else None

    @property
    def resistance_levels(self) -> List[Level]:
        return list(self.registry.resistance)

    @property
    def support_levels(self) -> List[Level]:
        return list(self.registry.support)

    def active_levels(self) -> List[Level]:
        return self.registry.active_levels()

    def reset(self) -> None:
        """Drop all state; the next bar must be index 0."""
        self.high_pyramid.reset()
        self.low_pyramid.reset()
        self.registry.clear()
        self.stats = EngineStats()
        self.last_bar = None
        self.next_bar_index = 0

    def _register(self, swing: Optional[Swing], result: BarResult) -> None:
        if swing is None:
            return
        result.new_swings.append(swing)
        self.stats.swings[swing.kind.value] += 1
        if swing.price <= 0:
            return
        level = self.registry.register(swing)
        if level is not None:
            result.new_levels.append(level)

    def process_bar(self, bar: Bar) -> BarResult:
        """
        Process a single bar.

        Args:
            bar: The next bar of the feed (index = next_bar_index).

        Returns:
            BarResult with swings confirmed, levels registered, sweeps,
            mitigations and levels that aged out on this bar.

        Raises:
            InvalidBarError: If the bar is malformed and the config does not
                skip invalid bars. Pyramids and levels are untouched in either case;
                a skipped bar only advances next_bar_index when it sits in
                the expected slot.
        """
        try:
            validate_bar(bar, self.next_bar_index, self.last_timestamp)
        except InvalidBarError as e:
            if not self.config.skip_invalid_bars:
                raise
            logger.warning(f"Skipping bar: {e}")
            self.stats.bars_skipped += 1
            # A bad bar in its own slot consumes the slot; later bars continue from it.
            if bar.index == self.next_bar_index:
                self.next_bar_index += 1
            return BarResult(bar_index=bar.index, skipped=True)

        result = BarResult(bar_index=bar.index)
        prev_time = self.last_timestamp

        top = self.high_pyramid.push(CandidatePoint(bar.high, bar.index, bar.timestamp))
        bottom = self.low_pyramid.push(CandidatePoint(bar.low, bar.index, bar.timestamp))
        self._register(top, result)
        self._register(bottom, result)

        result.sweeps, result.mitigations = self.evaluator.evaluate_all(
            self.registry, bar, prev_time
        )

        for level in self.registry.prune(bar.index, self.config.max_level_age):
            if not level.mitigated:
                result.expired.append(level)

        for event in result.sweeps:
            self.stats.sweeps[event.level.kind.value] += 1
        for event in result.mitigations:
            self.stats.mitigations[event.level.kind.value] += 1
        self.stats.expired += len(result.expired)
        self.stats.bars_processed += 1
        self.last_bar = bar
        self.next_bar_index = bar.index + 1

        return result
