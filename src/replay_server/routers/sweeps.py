"""
Sweep replay router.

Provides endpoints for stepping the sweep engine through the loaded data:
- POST /api/sweeps/init - Start (or restart) replay before the first bar
- POST /api/sweeps/advance - Process the next N bars
- GET /api/sweeps/levels - Live resistance and support levels
- GET /api/sweeps/events - Lifecycle events since init
- GET /api/sweeps/state - Engine internals (pyramid buffers, counters)
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from ...liquidity_sweeps.engine import LiquiditySweepEngine
from ...liquidity_sweeps.events import LevelRegisteredEvent
from ...liquidity_sweeps.extrema_pyramid import ExtremaPyramid
from ...liquidity_sweeps.sweep_config import DetectionTerm, SweepConfig
from ...liquidity_sweeps.types import InvalidBarError, validate_bar
from ..schemas import (
    BarResponse,
    CandidatePointResponse,
    EventsResponse,
    LevelEventResponse,
    LevelResponse,
    LevelsResponse,
    ProcessedBarResponse,
    SweepAdvanceRequest,
    SweepAdvanceResponse,
    SweepInitRequest,
    SweepInitResponse,
    SweepStateResponse,
)
from .cache import get_cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sweeps"])


def _require_engine() -> LiquiditySweepEngine:
    cache = get_cache()
    if not cache.is_initialized():
        raise HTTPException(
            status_code=400,
            detail="Replay not initialized. Call /api/sweeps/init."
        )
    return cache.engine


def _pyramid_snapshot(pyramid: ExtremaPyramid):
    return [
        [CandidatePointResponse(value=p.value, origin_index=p.origin_index) for p in buffer]
        for buffer in pyramid.buffers()
    ]


@router.post("/api/sweeps/init", response_model=SweepInitResponse)
def init_sweeps(request: SweepInitRequest):
    """
    Create a fresh engine for the loaded data file.

    No bar is processed: the replay sits at bar -1 and the first advance
    processes bar 0. Any previous replay position and event history is
    discarded.
    """
    from ..api import get_state

    s = get_state()
    try:
        term = DetectionTerm.parse(request.term)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    config = SweepConfig(term=term, max_level_age=request.max_level_age)
    cache = get_cache()
    with cache.lock:
        cache.engine = LiquiditySweepEngine(config)
        cache.events = []

    logger.info(f"Replay initialized: {term.value}, max age {config.max_level_age}")
    return SweepInitResponse(
        config=config.to_dict(),
        total_bars=len(s.source_bars),
        current_bar_index=-1,
    )


@router.post("/api/sweeps/advance", response_model=SweepAdvanceResponse)
def advance_sweeps(request: SweepAdvanceRequest):
    """
    Process the next advance_by bars.

    Stops early at the end of the data. Returns every processed bar together
    with the levels, sweeps and mitigations it produced. The whole batch is
    validated first, so a malformed bar fails the request with 400 before
    any bar of the batch is processed.
    """
    from ..api import get_state

    s = get_state()
    cache = get_cache()
    processed = []

    with cache.lock:
        engine = _require_engine()
        start = engine.next_bar_index
        end = min(start + request.advance_by, len(s.source_bars))
        batch = s.source_bars[start:end]

        expected_index, prev_timestamp = engine.next_bar_index, engine.last_timestamp
        try:
            for bar in batch:
                validate_bar(bar, expected_index, prev_timestamp)
                expected_index, prev_timestamp = bar.index + 1, bar.timestamp
        except InvalidBarError as e:
            raise HTTPException(status_code=400, detail=str(e))

        for bar in batch:
            result = engine.process_bar(bar)

            for level in result.new_levels:
                cache.events.append(LevelRegisteredEvent(
                    bar_index=bar.index,
                    timestamp=bar.timestamp,
                    level=level,
                ))
            cache.events.extend(result.sweeps)
            cache.events.extend(result.mitigations)

            processed.append(ProcessedBarResponse(
                bar=BarResponse.from_bar(bar),
                new_levels=[LevelResponse.from_level(lv) for lv in result.new_levels],
                sweeps=[LevelEventResponse.from_event(e) for e in result.sweeps],
                mitigations=[LevelEventResponse.from_event(e) for e in result.mitigations],
                expired=[LevelResponse.from_level(lv) for lv in result.expired],
            ))

        current = engine.last_bar_index

    return SweepAdvanceResponse(
        bars=processed,
        current_bar_index=current,
        end_of_data=current >= len(s.source_bars) - 1,
    )


@router.get("/api/sweeps/levels", response_model=LevelsResponse)
def get_levels():
    """Live levels at the current replay position, newest first."""
    cache = get_cache()
    with cache.lock:
        engine = _require_engine()
        return LevelsResponse(
            bar_index=engine.last_bar_index,
            resistance=[LevelResponse.from_level(lv) for lv in engine.resistance_levels],
            support=[LevelResponse.from_level(lv) for lv in engine.support_levels],
        )


@router.get("/api/sweeps/events", response_model=EventsResponse)
def get_events(
    since_bar: int = Query(0, description="Only return events from this bar index onwards"),
    event_type: str = Query(None, description="Filter by event type, e.g. LIQUIDITY_SWEEP"),
):
    """Lifecycle events accumulated since init."""
    cache = get_cache()
    with cache.lock:
        _require_engine()
        events = [
            LevelEventResponse.from_event(e)
            for e in cache.events
            if e.bar_index >= since_bar and (event_type is None or e.event_type == event_type)
        ]
    return EventsResponse(events=events)


@router.get("/api/sweeps/state", response_model=SweepStateResponse)
def get_sweep_state():
    """Engine internals: pyramid buffers and running counters."""
    cache = get_cache()
    with cache.lock:
        engine = _require_engine()
        return SweepStateResponse(
            last_bar_index=engine.last_bar_index,
            config=engine.config.to_dict(),
            stats=engine.stats.to_dict(),
            high_pyramid=_pyramid_snapshot(engine.high_pyramid),
            low_pyramid=_pyramid_snapshot(engine.low_pyramid),
        )
