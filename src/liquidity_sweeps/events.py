"""
Liquidity Sweep Events

Event types emitted by the sweep engine. Each event captures one state
change in a level's lifecycle on a specific bar.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Literal, Optional

from .extrema_pyramid import Swing
from .geometry import HighlightBox, ReferenceLine
from .level_registry import Level


@dataclass
class LevelEvent:
    """
    Base event from the sweep engine.

    Attributes:
        event_type: Discriminator for event type routing/filtering.
        bar_index: Bar index that triggered the event.
        timestamp: Unix timestamp of the triggering bar.
        level: Copy of the affected level, flags as of this bar.
    """

    event_type: str
    bar_index: int
    timestamp: int
    level: Level

    def __post_init__(self) -> None:
        # The registry keeps mutating its own Level; freeze what this bar saw.
        self.level = replace(self.level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "bar_index": self.bar_index,
            "timestamp": self.timestamp,
            "level": self.level.to_dict(),
        }


@dataclass
class LevelRegisteredEvent(LevelEvent):
    """Emitted when a confirmed swing registers a new level."""

    event_type: Literal["LEVEL_REGISTERED"] = field(default="LEVEL_REGISTERED", init=False)


@dataclass
class SweepEvent(LevelEvent):
    """
    Emitted when a bar wicks through a level but closes back on its origin side.

    Example:
        >>> from src.liquidity_sweeps.level_registry import LevelKind
        >>> level = Level(price=100.0, origin_index=5, kind=LevelKind.RESISTANCE)
        >>> event = SweepEvent(
        ...     bar_index=10,
        ...     timestamp=1700000600,
        ...     level=level,
        ...     reference_line=ReferenceLine(1700000300, 1700000600, 100.0),
        ...     highlight_box=HighlightBox(1700000540, 101.0, 1700000660, 100.0),
        ... )
        >>> event.event_type
        'LIQUIDITY_SWEEP'
    """

    event_type: Literal["LIQUIDITY_SWEEP"] = field(default="LIQUIDITY_SWEEP", init=False)
    reference_line: Optional[ReferenceLine] = None
    highlight_box: Optional[HighlightBox] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reference_line"] = self.reference_line.to_dict() if self.reference_line else None
        data["highlight_box"] = self.highlight_box.to_dict() if self.highlight_box else None
        return data

    def get_explanation(self) -> str:
        """Human-readable explanation of the sweep."""
        side = "above" if self.level.kind.value == "resistance" else "below"
        return (
            f"Wick {side} {self.level.kind.value} {self.level.price:.2f} "
            f"(bar {self.level.origin_index}) closed back inside"
        )


@dataclass
class MitigationEvent(LevelEvent):
    """Emitted when a bar closes through a level. Carries no geometry."""

    event_type: Literal["LEVEL_MITIGATED"] = field(default="LEVEL_MITIGATED", init=False)


@dataclass
class BarResult:
    """
    Everything one processed bar produced.

    Aggregation across bars is left to the caller.
    """
    bar_index: int
    new_swings: List[Swing] = field(default_factory=list)
    new_levels: List[Level] = field(default_factory=list)
    sweeps: List[SweepEvent] = field(default_factory=list)
    mitigations: List[MitigationEvent] = field(default_factory=list)
    expired: List[Level] = field(default_factory=list)
    skipped: bool = False

    @property
    def has_events(self) -> bool:
        return bool(self.new_levels or self.sweeps or self.mitigations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bar_index": self.bar_index,
            "new_swings": [s.to_dict() for s in self.new_swings],
            "new_levels": [lv.to_dict() for lv in self.new_levels],
            "sweeps": [e.to_dict() for e in self.sweeps],
            "mitigations": [e.to_dict() for e in self.mitigations],
            "expired": [lv.to_dict() for lv in self.expired],
            "skipped": self.skipped,
        }
