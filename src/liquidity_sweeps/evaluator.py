"""
Sweep and mitigation evaluation.

Tests every live level against the current bar:

- Mitigation: the close is through the level (above resistance, below
  support). Tested first on every bar while the level is alive, whether or
  not it was already swept.
- Sweep: the wick is through the level but the close recovers to the
  origin side. Tested only while the level has not been swept yet.

The two tests are independent. A close cannot be on both sides of one price,
so they never both fire on the same bar; if they did, the sweep would still
be emitted with its geometry and the level pruned after the bar.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .events import MitigationEvent, SweepEvent
from .geometry import build_highlight_box, build_reference_line
from .level_registry import Level, LevelKind, LevelRegistry
from .types import Bar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelOutcome:
    """Which transitions a single bar triggered on a single level."""
    mitigated: bool = False
    swept: bool = False


NO_OUTCOME = LevelOutcome()


def is_mitigated_by(level: Level, bar: Bar) -> bool:
    if level.kind is LevelKind.RESISTANCE:
        return bar.close > level.price
    return bar.close < level.price


def is_swept_by(level: Level, bar: Bar) -> bool:
    if level.kind is LevelKind.RESISTANCE:
        return bar.high > level.price and bar.close < level.price
    return bar.low < level.price and bar.close > level.price


class SweepEvaluator:
    """
    Applies the per-bar lifecycle rules to registry levels.

    Stateless; all lifecycle state lives on the Level objects themselves.
    Aging is left to LevelRegistry.prune(), which runs after evaluation, so a
    level is still tested on the bar where it first exceeds the age ceiling.
    """

    def _should_skip(self, level: Level, bar: Bar) -> bool:
        if not math.isfinite(level.price):
            logger.debug(f"Skipping {level.level_id}: non-finite price")
            return True
        if bar.index <= level.origin_index:
            logger.debug(f"Skipping {level.level_id}: bar {bar.index} does not follow origin")
            return True
        return False

    def evaluate(self, level: Level, bar: Bar) -> LevelOutcome:
        """
        Evaluate one level against one bar and update its flags.

        Returns:
            The transitions that happened on this bar. A level that was
            already mitigated, or is skipped, yields NO_OUTCOME.
        """
        if level.mitigated or self._should_skip(level, bar):
            return NO_OUTCOME

        mitigated = is_mitigated_by(level, bar)
        if mitigated:
            level.mark_mitigated()

        swept = False
        if not level.swept and is_swept_by(level, bar):
            level.mark_swept()
            swept = True

        return LevelOutcome(mitigated=mitigated, swept=swept)

    def evaluate_all(
        self,
        registry: LevelRegistry,
        bar: Bar,
        prev_time: Optional[int] = None,
    ) -> Tuple[List[SweepEvent], List[MitigationEvent]]:
        """
        Evaluate every live level against the bar.

        Resistance levels are evaluated before support levels, each from the
        oldest level to the newest, which fixes the event order.

        Args:
            registry: Registry holding the live levels.
            bar: Current bar.
            prev_time: Timestamp of the previous bar, for sweep box geometry.

        Returns:
            Tuple of (sweep events, mitigation events) in evaluation order.
        """
        sweeps: List[SweepEvent] = []
        mitigations: List[MitigationEvent] = []

        for kind in (LevelKind.RESISTANCE, LevelKind.SUPPORT):
            for level in reversed(registry.levels(kind)):
                outcome = self.evaluate(level, bar)
                if outcome.mitigated:
                    mitigations.append(MitigationEvent(
                        bar_index=bar.index,
                        timestamp=bar.timestamp,
                        level=level,
                    ))
                if outcome.swept:
                    event = SweepEvent(
                        bar_index=bar.index,
                        timestamp=bar.timestamp,
                        level=level,
                        reference_line=build_reference_line(level, bar),
                        highlight_box=build_highlight_box(level, bar, prev_time),
                    )
                    sweeps.append(event)
                    logger.debug(f"Sweep of {level.level_id} on bar {bar.index}")

        return sweeps, mitigations
