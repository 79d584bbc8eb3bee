"""
Pydantic models for the sweep replay API.

All request/response schemas for replay endpoints.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..liquidity_sweeps.events import LevelEvent, SweepEvent
from ..liquidity_sweeps.level_registry import Level
from ..liquidity_sweeps.types import Bar


# ============================================================================
# Core Bar Models
# ============================================================================


class BarResponse(BaseModel):
    """A single OHLC bar for chart display."""
    index: int
    timestamp: int
    open: float
    high: float
    low: float
    close: float

    @classmethod
    def from_bar(cls, bar: Bar) -> "BarResponse":
        return cls(
            index=bar.index,
            timestamp=bar.timestamp,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
        )


class BarsResponse(BaseModel):
    bars: List[BarResponse]
    total_bars: int


# ============================================================================
# Level / Event Models
# ============================================================================


class LevelResponse(BaseModel):
    """A live or retired price level."""
    level_id: str
    kind: str  # "resistance" or "support"
    price: float
    origin_index: int
    origin_time: int
    mitigated: bool
    swept: bool

    @classmethod
    def from_level(cls, level: Level) -> "LevelResponse":
        return cls(**level.to_dict())


class ReferenceLineResponse(BaseModel):
    origin_time: int
    end_time: int
    price: float


class HighlightBoxResponse(BaseModel):
    time1: int
    price1: float
    time2: int
    price2: float


class LevelEventResponse(BaseModel):
    """A level lifecycle event: LEVEL_REGISTERED, LIQUIDITY_SWEEP or LEVEL_MITIGATED."""
    event_type: str
    bar_index: int
    timestamp: int
    level: LevelResponse
    reference_line: Optional[ReferenceLineResponse] = None
    highlight_box: Optional[HighlightBoxResponse] = None

    @classmethod
    def from_event(cls, event: LevelEvent) -> "LevelEventResponse":
        response = cls(
            event_type=event.event_type,
            bar_index=event.bar_index,
            timestamp=event.timestamp,
            level=LevelResponse.from_level(event.level),
        )
        if isinstance(event, SweepEvent):
            response.reference_line = ReferenceLineResponse(**event.reference_line.to_dict())
            response.highlight_box = HighlightBoxResponse(**event.highlight_box.to_dict())
        return response


# ============================================================================
# Replay Models
# ============================================================================


class SweepInitRequest(BaseModel):
    """Request to (re)start replay from bar 0."""
    term: str = "long"
    max_level_age: int = Field(2000, ge=1)


class SweepInitResponse(BaseModel):
    config: Dict[str, Any]
    total_bars: int
    current_bar_index: int


class SweepAdvanceRequest(BaseModel):
    """Request to advance playback."""
    advance_by: int = Field(1, ge=1)


class ProcessedBarResponse(BaseModel):
    """One bar processed during advance, with what it produced."""
    bar: BarResponse
    new_levels: List[LevelResponse] = Field(default_factory=list)
    sweeps: List[LevelEventResponse] = Field(default_factory=list)
    mitigations: List[LevelEventResponse] = Field(default_factory=list)
    expired: List[LevelResponse] = Field(default_factory=list)


class SweepAdvanceResponse(BaseModel):
    bars: List[ProcessedBarResponse]
    current_bar_index: int
    end_of_data: bool


class LevelsResponse(BaseModel):
    bar_index: int
    resistance: List[LevelResponse]
    support: List[LevelResponse]


class EventsResponse(BaseModel):
    events: List[LevelEventResponse]


class CandidatePointResponse(BaseModel):
    value: float
    origin_index: int


class SweepStateResponse(BaseModel):
    """Engine internals for debugging."""
    last_bar_index: int
    config: Dict[str, Any]
    stats: Dict[str, Any]
    high_pyramid: List[List[CandidatePointResponse]]
    low_pyramid: List[List[CandidatePointResponse]]
